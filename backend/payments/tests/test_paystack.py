import hashlib
import hmac
import types
from decimal import Decimal

import pytest
import requests

from core.exceptions import PaymentProviderError
from payments.services import paystack


def _fake_response(status_code=200, body=None):
    return types.SimpleNamespace(status_code=status_code, json=lambda: body or {})


def test_to_kobo_rounds_to_minor_unit():
    assert paystack.to_kobo(Decimal("450000.00")) == 45000000
    assert paystack.to_kobo(Decimal("10.005")) == 1001
    assert paystack.to_kobo(25) == 2500


def test_initialize_stub_returns_preview_url(settings):
    settings.PAYSTACK_USE_STUB = True
    settings.FRONTEND_URL = "https://app.test"

    result = paystack.initialize_transaction(
        email="student@example.com",
        amount=Decimal("1500.00"),
        currency="NGN",
        callback_url="https://api.test/api/payments/callback/",
    )

    assert result.reference.startswith("ref_test_")
    assert result.authorization_url.startswith("https://app.test/payments/preview?")
    assert "amount=150000" in result.authorization_url


def test_initialize_calls_paystack_when_configured(monkeypatch, settings):
    settings.PAYSTACK_USE_STUB = False
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"
    settings.PAYSTACK_BASE_URL = "https://api.paystack.test"
    captured = {}

    def fake_request(method, url, **kwargs):
        captured.update(method=method, url=url, **kwargs)
        return _fake_response(
            body={
                "status": True,
                "data": {
                    "reference": "ref_live_1",
                    "authorization_url": "https://checkout.paystack.com/abc",
                    "access_code": "abc",
                },
            }
        )

    monkeypatch.setattr(paystack.requests, "request", fake_request)

    result = paystack.initialize_transaction(
        email="student@example.com",
        amount=Decimal("1500.00"),
        currency="NGN",
        callback_url="https://api.test/api/payments/callback/",
    )

    assert result.reference == "ref_live_1"
    assert result.authorization_url == "https://checkout.paystack.com/abc"
    assert captured["method"] == "POST"
    assert captured["url"] == "https://api.paystack.test/transaction/initialize"
    assert captured["headers"]["Authorization"] == "Bearer sk_test_123"
    assert captured["json"] == {
        "email": "student@example.com",
        "amount": 150000,
        "currency": "NGN",
        "callback_url": "https://api.test/api/payments/callback/",
    }


def test_verify_maps_paystack_status(monkeypatch, settings):
    settings.PAYSTACK_USE_STUB = False
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"

    monkeypatch.setattr(
        paystack.requests,
        "request",
        lambda method, url, **kwargs: _fake_response(
            body={"status": True, "data": {"reference": "ref_1", "status": "abandoned", "amount": 150000}}
        ),
    )

    result = paystack.verify_transaction("ref_1")

    assert result.status == "abandoned"
    assert result.succeeded is False
    assert result.amount_kobo == 150000


def test_provider_rejection_raises_payment_provider_error(monkeypatch, settings):
    settings.PAYSTACK_USE_STUB = False
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"

    monkeypatch.setattr(
        paystack.requests,
        "request",
        lambda method, url, **kwargs: _fake_response(400, {"status": False, "message": "Invalid key"}),
    )

    with pytest.raises(PaymentProviderError) as excinfo:
        paystack.verify_transaction("ref_1")

    assert excinfo.value.detail == "Invalid key"
    assert excinfo.value.status_code == 502


def test_network_failure_raises_payment_provider_error(monkeypatch, settings):
    settings.PAYSTACK_USE_STUB = False
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"

    def boom(method, url, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(paystack.requests, "request", boom)

    with pytest.raises(PaymentProviderError):
        paystack.refund_transaction(reference="ref_1", amount=Decimal("10.00"))


def test_stub_is_used_when_no_secret_key(settings):
    settings.PAYSTACK_USE_STUB = False
    settings.PAYSTACK_SECRET_KEY = ""

    assert paystack.verify_transaction("ref_1").succeeded is True


def test_webhook_signature_is_hmac_sha512(settings):
    settings.PAYSTACK_SECRET_KEY = "sk_test_123"
    payload = b'{"event":"charge.success"}'
    signature = hmac.new(b"sk_test_123", payload, hashlib.sha512).hexdigest()

    assert paystack.verify_webhook_signature(payload, signature) is True
    assert paystack.verify_webhook_signature(payload, "0" * 128) is False
    assert paystack.verify_webhook_signature(payload, None) is False


def test_webhook_signature_requires_secret(settings):
    settings.PAYSTACK_SECRET_KEY = ""

    with pytest.raises(RuntimeError):
        paystack.verify_webhook_signature(b"{}", "sig")


def test_configured_key_reaches_paystack_without_stub_flag(monkeypatch, settings):
    del settings.PAYSTACK_USE_STUB
    settings.PAYSTACK_SECRET_KEY = "sk_live_123"
    settings.PAYSTACK_BASE_URL = "https://api.paystack.test"
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url))
        return _fake_response(body={"status": True, "data": {"reference": "ref_1", "status": "failed", "amount": 0}})

    monkeypatch.setattr(paystack.requests, "request", fake_request)

    result = paystack.verify_transaction("ref_1")

    assert calls == [("GET", "https://api.paystack.test/transaction/verify/ref_1")]
    assert result.succeeded is False
