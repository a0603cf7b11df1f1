from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from uuid import uuid4

import requests
from django.conf import settings

from core.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)


@dataclass
class InitializedTransaction:
    reference: str
    authorization_url: str
    access_code: str = ""


@dataclass
class VerificationResult:
    """
    Outcome of `GET /transaction/verify/{reference}`; `status` is Paystack's charge status.

    `amount_kobo` is None only for stubbed verifications, which report no charged amount.
    """

    reference: str
    status: str
    amount_kobo: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


def to_kobo(amount: Decimal | int | float) -> int:
    """Convert a major-unit amount (naira) to the minor unit the gateway expects."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _get_secret_key() -> Optional[str]:
    key = getattr(settings, "PAYSTACK_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "PAYSTACK_USE_STUB", False):
        return True
    return _get_secret_key() is None


def build_checkout_preview_url(*, reference: str, amount_kobo: int) -> str:
    return (
        f"{settings.FRONTEND_URL.rstrip('/')}/payments/preview?"
        f"reference={reference}&amount={amount_kobo}"
    )


def _headers() -> dict[str, str]:
    secret_key = _get_secret_key()
    if not secret_key:
        raise RuntimeError("PAYSTACK_SECRET_KEY is not configured.")
    return {
        "Authorization": f"Bearer {secret_key}",
        "Content-Type": "application/json",
    }


def _request(method: str, path: str, **kwargs) -> dict[str, Any]:
    url = f"{settings.PAYSTACK_BASE_URL.rstrip('/')}{path}"
    try:
        response = requests.request(
            method,
            url,
            headers=_headers(),
            timeout=settings.PAYSTACK_TIMEOUT_SECONDS,
            **kwargs,
        )
    except requests.RequestException as exc:
        logger.exception("Paystack %s %s failed: %s", method, path, exc)
        raise PaymentProviderError("Could not reach the payment provider.") from exc

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code >= 400 or not body.get("status", False):
        message = body.get("message") or f"Payment provider returned HTTP {response.status_code}."
        logger.warning("Paystack %s %s rejected: %s", method, path, message)
        raise PaymentProviderError(message)
    return body


def initialize_transaction(*, email: str, amount: Decimal, currency: str, callback_url: str) -> InitializedTransaction:
    """
    Open a checkout with the gateway (or a stub equivalent when no key is configured).

    Tests and local development do not hit Paystack; the stub returns a
    predictable reference and a frontend preview URL so the rest of the
    payment flow behaves as if the gateway had responded.
    """

    amount_kobo = to_kobo(amount)
    if _should_use_stub():
        reference = f"ref_test_{uuid4().hex}"
        return InitializedTransaction(
            reference=reference,
            authorization_url=build_checkout_preview_url(reference=reference, amount_kobo=amount_kobo),
            access_code=f"ac_test_{uuid4().hex[:12]}",
        )

    body = _request(
        "POST",
        "/transaction/initialize",
        json={
            "email": email,
            "amount": amount_kobo,
            "currency": currency,
            "callback_url": callback_url,
        },
    )
    data = body.get("data") or {}
    return InitializedTransaction(
        reference=data["reference"],
        authorization_url=data["authorization_url"],
        access_code=data.get("access_code", ""),
    )


def verify_transaction(reference: str) -> VerificationResult:
    if _should_use_stub():
        return VerificationResult(reference=reference, status="success", raw={"stub": True})

    body = _request("GET", f"/transaction/verify/{reference}")
    data = body.get("data") or {}
    return VerificationResult(
        reference=data.get("reference", reference),
        status=data.get("status", "failed"),
        amount_kobo=int(data.get("amount") or 0),
        raw=data,
    )


def refund_transaction(*, reference: str, amount: Decimal) -> dict[str, Any]:
    if _should_use_stub():
        return {"status": True, "data": {"transaction": reference, "status": "processed"}}

    return _request("POST", "/refund", json={"transaction": reference, "amount": to_kobo(amount)})


def verify_webhook_signature(payload: bytes, signature: str | None) -> bool:
    """Paystack signs the raw body with HMAC-SHA512 keyed by the secret key."""
    secret_key = _get_secret_key()
    if not secret_key:
        raise RuntimeError("PAYSTACK_SECRET_KEY is not configured.")
    if not signature:
        return False
    expected = hmac.new(secret_key.encode("utf-8"), payload, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)
