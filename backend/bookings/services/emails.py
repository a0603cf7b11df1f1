from __future__ import annotations

from django.conf import settings
from django.core.mail import send_mail

from bookings.models import Booking


def _format_from_email(agency_name: str) -> str:
    default_from = settings.DEFAULT_FROM_EMAIL
    email_addr = default_from
    if '<' in default_from and default_from.endswith('>'):
        email_addr = default_from.split('<', 1)[1].rstrip('>')
    return f"{agency_name} via U-Homes <{email_addr}>"


def send_booking_confirmation_email(*, booking: Booking):
    tenant = booking.tenant
    if not tenant.email:
        return

    property_obj = booking.property
    agent_profile = getattr(booking.agent, "agent_profile", None)
    agency_name = (agent_profile.agency_name if agent_profile else "") or booking.agent.full_name or "Your agent"
    subject = f"Booking request received: {property_obj.title}"

    body_lines = [
        f"Hi {tenant.full_name or tenant.email},",
        "",
        f"Your booking request for {property_obj.title} in {property_obj.location} has been received.",
        f"Move-in date: {booking.move_in_date:%B %d, %Y}. Duration: {booking.duration}.",
        f"Amount due: {settings.DEFAULT_CURRENCY} {booking.amount}.",
        "",
        "Next steps:",
        f" • Track your booking: {settings.FRONTEND_URL.rstrip('/')}/bookings/{booking.id}",
        " • Complete payment from the booking page once you are ready.",
        "",
        "— The U-Homes Team",
    ]
    send_mail(
        subject,
        "\n".join(body_lines),
        _format_from_email(agency_name),
        [tenant.email],
        fail_silently=False,
    )
