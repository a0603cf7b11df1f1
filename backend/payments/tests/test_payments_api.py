import hashlib
import hmac
import json
from decimal import Decimal

import pytest

from accounts.models import AgentProfile
from bookings.models import Booking
from notifications.models import Notification
from payments.models import Payment, Transaction
from payments.services import paystack
from payments.services.payments import apply_charge_outcome


def _init_payload(booking, **overrides):
    payload = {
        "booking_id": booking.id,
        "amount": "450000.00",
        "email": "student@example.com",
        "currency": "ngn",
        "payment_method": "card",
        "description": "First year rent",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def pending_payment(api_client, booking, student):
    api_client.force_authenticate(user=student)
    response = api_client.post("/api/payments/", _init_payload(booking), format="json")
    assert response.status_code == 201
    return Payment.objects.get(pk=response.json()["payment"]["id"])


def _fail_verification(monkeypatch):
    monkeypatch.setattr(
        paystack,
        "verify_transaction",
        lambda reference: paystack.VerificationResult(reference=reference, status="failed"),
    )


@pytest.mark.django_db
def test_initialize_creates_pending_payment_and_transaction(api_client, booking, student, settings):
    settings.FRONTEND_URL = "https://app.test"
    api_client.force_authenticate(user=student)

    response = api_client.post("/api/payments/", _init_payload(booking), format="json")

    assert response.status_code == 201
    body = response.json()
    assert body["authorization_url"].startswith("https://app.test/payments/preview?")
    assert body["payment"]["status"] == Payment.PENDING
    assert body["payment"]["currency"] == "NGN"
    assert body["payment"]["metadata"] == {"booking_id": booking.id}

    payment = Payment.objects.get(reference=body["reference"])
    transaction = Transaction.objects.get(payment=payment)
    assert transaction.status == Payment.PENDING
    assert transaction.amount == Decimal("450000.00")
    notification = Notification.objects.get(type=Notification.PAYMENT_CREATED)
    assert notification.user == student
    assert notification.related_object_id == payment.id


@pytest.mark.django_db
def test_initialize_rejects_someone_elses_booking(api_client, booking, other_agent):
    api_client.force_authenticate(user=other_agent)

    response = api_client.post("/api/payments/", _init_payload(booking), format="json")

    assert response.status_code == 403
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_initialize_rejects_paid_booking(api_client, booking, student):
    booking.payment_status = Booking.PAYMENT_PAID
    booking.save(update_fields=["payment_status"])
    api_client.force_authenticate(user=student)

    response = api_client.post("/api/payments/", _init_payload(booking), format="json")

    assert response.status_code == 409


@pytest.mark.django_db
def test_initialize_requires_positive_amount_and_method(api_client, booking, student):
    api_client.force_authenticate(user=student)

    response = api_client.post(
        "/api/payments/",
        {"booking_id": booking.id, "amount": "0", "email": "student@example.com"},
        format="json",
    )

    assert response.status_code == 400
    assert {error["field"] for error in response.json()["errors"]} == {"amount", "payment_method"}


@pytest.mark.django_db
def test_provider_failure_on_initialize_is_bad_gateway(api_client, booking, student, monkeypatch, settings):
    settings.PAYSTACK_USE_STUB = False
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"

    def boom(method, url, **kwargs):
        raise paystack.requests.ConnectionError("down")

    monkeypatch.setattr(paystack.requests, "request", boom)
    api_client.force_authenticate(user=student)

    response = api_client.post("/api/payments/", _init_payload(booking), format="json")

    assert response.status_code == 502
    assert response.json() == {"detail": "Could not reach the payment provider."}
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_successful_verification_marks_booking_paid(api_client, pending_payment, booking, agent, student):
    response = api_client.post(f"/api/payments/{pending_payment.id}/verify/")

    assert response.status_code == 200
    assert response.json()["status"] == Payment.COMPLETED
    pending_payment.refresh_from_db()
    booking.refresh_from_db()
    assert pending_payment.transaction.status == Payment.COMPLETED
    assert booking.payment_status == Booking.PAYMENT_PAID
    assert booking.status == Booking.PENDING
    assert AgentProfile.objects.get(user=agent).total_revenue == Decimal("450000.00")
    completed = Notification.objects.filter(type=Notification.PAYMENT_COMPLETED)
    assert {notification.user for notification in completed} == {student, agent}


@pytest.mark.django_db
def test_failed_verification_leaves_booking_untouched(api_client, pending_payment, booking, student, monkeypatch):
    _fail_verification(monkeypatch)

    response = api_client.post(f"/api/payments/{pending_payment.id}/verify/")

    assert response.status_code == 200
    assert response.json()["status"] == Payment.FAILED
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_PENDING
    assert Transaction.objects.get(payment=pending_payment).status == Payment.FAILED
    assert Notification.objects.get(type=Notification.PAYMENT_FAILED).user == student


@pytest.mark.django_db
def test_charge_outcome_is_applied_once(pending_payment, agent):
    apply_charge_outcome(payment_id=pending_payment.id, succeeded=True)
    payment = apply_charge_outcome(payment_id=pending_payment.id, succeeded=False)

    assert payment.status == Payment.COMPLETED
    assert AgentProfile.objects.get(user=agent).total_revenue == Decimal("450000.00")
    assert Notification.objects.filter(type=Notification.PAYMENT_FAILED).count() == 0


@pytest.mark.django_db
def test_verify_by_reference(api_client, pending_payment):
    response = api_client.post(
        "/api/payments/verify-by-reference/",
        {"reference": pending_payment.reference},
        format="json",
    )
    missing = api_client.post("/api/payments/verify-by-reference/", {"reference": "nope"}, format="json")

    assert response.status_code == 200
    assert response.json()["status"] == Payment.COMPLETED
    assert missing.status_code == 404


@pytest.mark.django_db
def test_callback_redirects_to_frontend(api_client, pending_payment, settings):
    settings.FRONTEND_URL = "https://app.test/"
    api_client.force_authenticate(user=None)

    response = api_client.get("/api/payments/callback/", {"trxref": pending_payment.reference})

    assert response.status_code == 302
    assert response["Location"] == f"https://app.test/payment/success?reference={pending_payment.reference}"


@pytest.mark.django_db
def test_callback_with_failed_charge_redirects_to_failure(api_client, pending_payment, settings, monkeypatch):
    settings.FRONTEND_URL = "https://app.test"
    _fail_verification(monkeypatch)

    response = api_client.get("/api/payments/callback/", {"reference": pending_payment.reference})

    assert response.status_code == 302
    assert response["Location"].startswith("https://app.test/payment/failed?")


@pytest.mark.django_db
def test_callback_for_unknown_reference_redirects_to_failure(api_client, settings):
    settings.FRONTEND_URL = "https://app.test"

    response = api_client.get("/api/payments/callback/", {"reference": "missing"})

    assert response["Location"] == "https://app.test/payment/failed?reference=missing"


@pytest.mark.django_db
def test_refund_reverses_booking_payment(api_client, pending_payment, booking, agent):
    api_client.post(f"/api/payments/{pending_payment.id}/verify/")

    response = api_client.post(f"/api/payments/{pending_payment.id}/refund/")

    assert response.status_code == 200
    assert response.json()["status"] == Payment.REFUNDED
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_REFUNDED
    assert AgentProfile.objects.get(user=agent).total_revenue == Decimal("0.00")
    assert Notification.objects.filter(type=Notification.PAYMENT_REFUNDED).count() == 2


@pytest.mark.django_db
def test_pending_payment_cannot_be_refunded(api_client, pending_payment):
    response = api_client.post(f"/api/payments/{pending_payment.id}/refund/")

    assert response.status_code == 400


@pytest.mark.django_db
def test_admin_status_override_obeys_transitions(api_client, pending_payment, admin_user):
    api_client.force_authenticate(user=admin_user)

    completed = api_client.patch(f"/api/payments/{pending_payment.id}/status/", {"status": "completed"}, format="json")
    back_to_pending = api_client.patch(
        f"/api/payments/{pending_payment.id}/status/", {"status": "pending"}, format="json"
    )

    assert completed.status_code == 200
    assert completed.json()["status"] == Payment.COMPLETED
    assert back_to_pending.status_code == 409
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.COMPLETED


@pytest.mark.django_db
def test_status_override_is_admin_only(api_client, pending_payment):
    response = api_client.patch(f"/api/payments/{pending_payment.id}/status/", {"status": "completed"}, format="json")

    assert response.status_code == 403


@pytest.mark.django_db
def test_payment_list_is_scoped_and_filterable(api_client, pending_payment, other_agent):
    api_client.post(f"/api/payments/{pending_payment.id}/verify/")

    completed = api_client.get("/api/payments/", {"status": "completed", "min_amount": "1000"})
    too_expensive = api_client.get("/api/payments/", {"min_amount": "500000"})
    transactions = api_client.get("/api/transactions/")

    api_client.force_authenticate(user=other_agent)
    others = api_client.get("/api/payments/")

    assert [item["id"] for item in completed.json()["results"]] == [pending_payment.id]
    assert too_expensive.json()["results"] == []
    assert transactions.json()["results"][0]["reference"] == pending_payment.reference
    assert others.json()["pagination"]["total"] == 0


def _signed_post(api_client, body, secret="sk_test_123"):
    payload = json.dumps(body).encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()
    return api_client.post(
        "/api/webhooks/paystack/",
        data=payload,
        content_type="application/json",
        HTTP_X_PAYSTACK_SIGNATURE=signature,
    )


@pytest.mark.django_db
def test_webhook_completes_pending_payment(api_client, pending_payment, booking, settings):
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"
    api_client.force_authenticate(user=None)

    response = _signed_post(
        api_client,
        {"event": "charge.success", "data": {"reference": pending_payment.reference, "amount": 45000000}},
    )

    assert response.status_code == 200
    pending_payment.refresh_from_db()
    booking.refresh_from_db()
    assert pending_payment.status == Payment.COMPLETED
    assert booking.payment_status == Booking.PAYMENT_PAID


@pytest.mark.django_db
def test_webhook_ignores_unknown_reference(api_client, settings):
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"

    response = _signed_post(api_client, {"event": "charge.success", "data": {"reference": "missing"}})

    assert response.status_code == 200


@pytest.mark.django_db
def test_webhook_rejects_bad_signature(api_client, pending_payment, settings):
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"

    response = _signed_post(
        api_client,
        {"event": "charge.success", "data": {"reference": pending_payment.reference}},
        secret="wrong",
    )

    assert response.status_code == 400
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.PENDING


@pytest.mark.django_db
def test_webhook_without_secret_is_server_error(api_client, settings):
    settings.PAYSTACK_SECRET_KEY = ""

    response = _signed_post(api_client, {"event": "charge.success", "data": {}})

    assert response.status_code == 500


@pytest.mark.django_db
def test_webhook_with_short_charge_fails_payment(api_client, pending_payment, booking, settings):
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"

    response = _signed_post(
        api_client,
        {"event": "charge.success", "data": {"reference": pending_payment.reference, "amount": 1}},
    )

    assert response.status_code == 200
    pending_payment.refresh_from_db()
    booking.refresh_from_db()
    assert pending_payment.status == Payment.FAILED
    assert booking.payment_status == Booking.PAYMENT_PENDING


@pytest.mark.django_db
def test_second_payment_for_booking_is_refused_while_first_is_open(api_client, pending_payment, booking):
    response = api_client.post("/api/payments/", _init_payload(booking), format="json")

    assert response.status_code == 409
    assert Payment.objects.filter(booking=booking).count() == 1


@pytest.mark.django_db
def test_new_payment_allowed_after_failed_attempt(api_client, pending_payment, booking, monkeypatch):
    _fail_verification(monkeypatch)
    api_client.post(f"/api/payments/{pending_payment.id}/verify/")

    response = api_client.post("/api/payments/", _init_payload(booking), format="json")

    assert response.status_code == 201


@pytest.mark.django_db
def test_duplicate_completed_payment_does_not_double_count(api_client, pending_payment, booking, student, agent):
    # a second charge that slipped past the guard, e.g. created before it existed
    duplicate = Payment.objects.create(
        user=student,
        booking=booking,
        email=student.email,
        amount=booking.amount,
        payment_method="card",
        reference="ref_duplicate",
    )
    Transaction.objects.create(
        payment=duplicate, user=student, reference=duplicate.reference, amount=duplicate.amount, currency="NGN"
    )

    api_client.post(f"/api/payments/{pending_payment.id}/verify/")
    api_client.post(f"/api/payments/{duplicate.id}/verify/")
    assert AgentProfile.objects.get(user=agent).total_revenue == Decimal("450000.00")

    api_client.post(f"/api/payments/{pending_payment.id}/refund/")

    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_PAID
    assert AgentProfile.objects.get(user=agent).total_revenue == Decimal("450000.00")


@pytest.mark.django_db
def test_payment_amount_must_match_booking(api_client, booking, student):
    api_client.force_authenticate(user=student)

    response = api_client.post("/api/payments/", _init_payload(booking, amount="0.01"), format="json")

    assert response.status_code == 400
    assert "booking amount" in response.json()["detail"]
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_verified_amount_mismatch_fails_payment(api_client, pending_payment, booking, monkeypatch):
    monkeypatch.setattr(
        paystack,
        "verify_transaction",
        lambda reference: paystack.VerificationResult(reference=reference, status="success", amount_kobo=1),
    )

    response = api_client.post(f"/api/payments/{pending_payment.id}/verify/")

    assert response.json()["status"] == Payment.FAILED
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_PENDING


@pytest.mark.django_db
def test_verified_matching_amount_completes_payment(api_client, pending_payment, monkeypatch):
    monkeypatch.setattr(
        paystack,
        "verify_transaction",
        lambda reference: paystack.VerificationResult(reference=reference, status="success", amount_kobo=45000000),
    )

    response = api_client.post(f"/api/payments/{pending_payment.id}/verify/")

    assert response.json()["status"] == Payment.COMPLETED
