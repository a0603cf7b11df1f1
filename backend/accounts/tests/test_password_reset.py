import re
from smtplib import SMTPException

import pytest
from django.core import mail

from accounts import api as accounts_api
from notifications.models import Notification


def _reset_link_parts(message):
    match = re.search(r"/reset-password/([^/\s]+)/([^/\s]+)", message.body)
    assert match, message.body
    return match.group(1), match.group(2)


def _request_reset(api_client, email, path="/api/auth/forgot-password/"):
    return api_client.post(path, {"email": email}, format="json")


@pytest.mark.django_db
def test_forgot_password_emails_a_reset_link(api_client, student, settings):
    settings.FRONTEND_URL = "https://app.test"

    response = _request_reset(api_client, "Student@Example.com")

    assert response.status_code == 200
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == [student.email]
    assert "https://app.test/reset-password/" in mail.outbox[0].body


@pytest.mark.django_db
def test_forgot_password_does_not_reveal_unknown_accounts(api_client, student):
    known = _request_reset(api_client, student.email)
    unknown = _request_reset(api_client, "nobody@example.com")

    assert unknown.status_code == 200
    assert unknown.json() == known.json()
    assert len(mail.outbox) == 1


@pytest.mark.django_db
def test_resend_reset_token_sends_another_link(api_client, student):
    _request_reset(api_client, student.email)
    response = _request_reset(api_client, student.email, path="/api/auth/resend-reset-token/")

    assert response.status_code == 200
    assert len(mail.outbox) == 2


@pytest.mark.django_db
def test_reset_sets_password_and_notifies(api_client, student):
    _request_reset(api_client, student.email)
    uid, token = _reset_link_parts(mail.outbox[0])

    response = api_client.post(
        "/api/auth/reset-password/",
        {"uid": uid, "token": token, "new_password": "freshpass123"},
        format="json",
    )

    assert response.status_code == 204
    student.refresh_from_db()
    assert student.check_password("freshpass123")
    notification = Notification.objects.get(type=Notification.PASSWORD_RESET)
    assert notification.user == student

    login = api_client.post(
        "/api/auth/login/", {"email": student.email, "password": "freshpass123"}, format="json"
    )
    assert login.status_code == 200


@pytest.mark.django_db
def test_reset_link_works_only_once(api_client, student):
    _request_reset(api_client, student.email)
    uid, token = _reset_link_parts(mail.outbox[0])
    payload = {"uid": uid, "token": token, "new_password": "freshpass123"}
    api_client.post("/api/auth/reset-password/", payload, format="json")

    payload["new_password"] = "anotherpass123"
    response = api_client.post("/api/auth/reset-password/", payload, format="json")

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "token"
    student.refresh_from_db()
    assert student.check_password("freshpass123")


@pytest.mark.django_db
def test_reset_rejects_garbage_uid(api_client, student):
    response = api_client.post(
        "/api/auth/reset-password/",
        {"uid": "!!", "token": "abc-123", "new_password": "freshpass123"},
        format="json",
    )

    assert response.status_code == 400
    assert not Notification.objects.filter(type=Notification.PASSWORD_RESET).exists()


@pytest.mark.django_db
def test_forgot_password_hides_mail_failures(api_client, student, monkeypatch, caplog):
    def refuse(*, user):
        raise SMTPException("relay down")

    monkeypatch.setattr(accounts_api, "send_password_reset_email", refuse)

    response = _request_reset(api_client, student.email)

    assert response.status_code == 200
    assert "Could not send password reset email" in caplog.text
