from __future__ import annotations

from django.conf import settings
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode


def build_password_reset_link(user) -> str:
    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{uid}/{token}"


def send_password_reset_email(*, user):
    hours = settings.PASSWORD_RESET_TIMEOUT // 3600
    body_lines = [
        f"Hi {user.full_name or user.email},",
        "",
        "We received a request to reset your U-Homes password.",
        f"Choose a new password here: {build_password_reset_link(user)}",
        f"The link expires in {hours} hours and stops working once it has been used.",
        "",
        "If you did not ask for this, you can ignore this email.",
    ]
    send_mail(
        "Reset your U-Homes password",
        "\n".join(body_lines),
        settings.DEFAULT_FROM_EMAIL,
        [user.email],
        fail_silently=False,
    )
