from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models import F

from accounts.models import AgentProfile
from bookings.models import Booking
from core.exceptions import BadRequest, Conflict, Forbidden, NotFound
from notifications.models import Notification
from notifications.services import create_notification
from payments.models import Payment, Transaction
from payments.services import paystack

logger = logging.getLogger(__name__)


def build_callback_url() -> str:
    return f"{settings.API_BASE_URL.rstrip('/')}/api/payments/callback/"


def _transition(payment: Payment, status: str) -> None:
    if not payment.can_transition_to(status):
        raise Conflict(f"Payment {payment.reference} cannot move from {payment.status} to {status}.")
    payment.status = status
    payment.save(update_fields=["status", "updated_at"])
    Transaction.objects.filter(payment=payment).update(status=status, updated_at=payment.updated_at)


def _adjust_agent_revenue(booking: Booking, delta: Decimal) -> None:
    profile, _ = AgentProfile.objects.get_or_create(user=booking.agent)
    AgentProfile.objects.filter(pk=profile.pk).update(total_revenue=F("total_revenue") + delta)


def initialize_payment(*, user, data: dict[str, Any]) -> Payment:
    """Open a checkout with the gateway and record a pending Payment + Transaction pair."""

    booking: Booking | None = data.get("booking")
    if booking is not None:
        if booking.tenant_id != user.id:
            raise Forbidden("You can only pay for your own bookings.")
        if booking.status == Booking.CANCELLED:
            raise BadRequest("Cancelled bookings cannot be paid for.")
        if booking.payment_status != Booking.PAYMENT_PENDING:
            raise Conflict("This booking has already been paid for.")
        if booking.payments.filter(status__in=[Payment.PENDING, Payment.COMPLETED]).exists():
            raise Conflict("This booking already has a payment in progress; verify it before starting another.")
        if data["amount"] != booking.amount:
            raise BadRequest(f"Payment amount must equal the booking amount of {booking.amount}.")

    amount = data["amount"]
    currency = (data.get("currency") or settings.DEFAULT_CURRENCY).upper()
    initialized = paystack.initialize_transaction(
        email=data["email"],
        amount=amount,
        currency=currency,
        callback_url=build_callback_url(),
    )

    metadata = dict(data.get("metadata") or {})
    if booking is not None:
        metadata.setdefault("booking_id", booking.id)

    with transaction.atomic():
        payment = Payment.objects.create(
            user=user,
            booking=booking,
            email=data["email"],
            amount=amount,
            currency=currency,
            payment_method=data["payment_method"],
            description=data.get("description", ""),
            metadata=metadata,
            reference=initialized.reference,
            authorization_url=initialized.authorization_url,
            status=Payment.PENDING,
        )
        Transaction.objects.create(
            payment=payment,
            user=user,
            reference=payment.reference,
            amount=payment.amount,
            currency=payment.currency,
            description=payment.description,
            status=payment.status,
            metadata=payment.metadata,
        )
        create_notification(
            user=user,
            type=Notification.PAYMENT_CREATED,
            title="Payment Initiated",
            message=f"Payment of {currency} {amount} has been initiated. Please complete payment.",
            related_object_id=payment.id,
            metadata={"amount": str(amount), "currency": currency, "booking_id": booking.id if booking else None},
        )

    logger.info("Payment %s initialized with reference %s", payment.id, payment.reference)
    return payment


def _complete(payment: Payment) -> None:
    _transition(payment, Payment.COMPLETED)
    create_notification(
        user=payment.user,
        type=Notification.PAYMENT_COMPLETED,
        title="Payment Successful",
        message=f"Your payment of {payment.currency} {payment.amount} was successful!",
        related_object_id=payment.id,
        metadata={"amount": str(payment.amount), "currency": payment.currency},
    )

    if payment.booking_id is None:
        return
    booking = Booking.objects.select_for_update().select_related("agent", "property").get(pk=payment.booking_id)
    if booking.payment_status == Booking.PAYMENT_PAID:
        logger.warning("Booking %s already paid; payment %s not applied to it", booking.id, payment.id)
        return
    booking.payment_status = Booking.PAYMENT_PAID
    booking.save(update_fields=["payment_status", "updated_at"])
    _adjust_agent_revenue(booking, payment.amount)
    create_notification(
        user=booking.agent,
        type=Notification.PAYMENT_COMPLETED,
        title="Payment Received",
        message=f"Payment received for booking {booking.id} ({booking.property.title}).",
        related_object_id=booking.id,
        metadata={"amount": str(payment.amount), "currency": payment.currency},
    )
    logger.info("Booking %s payment status updated to paid", booking.id)


def _fail(payment: Payment) -> None:
    _transition(payment, Payment.FAILED)
    create_notification(
        user=payment.user,
        type=Notification.PAYMENT_FAILED,
        title="Payment Failed",
        message=f"Your payment of {payment.currency} {payment.amount} failed. Please try again.",
        related_object_id=payment.id,
        metadata={"amount": str(payment.amount), "currency": payment.currency},
    )


def apply_charge_outcome(*, payment_id: int, succeeded: bool) -> Payment:
    """
    Move a pending payment to completed or failed under a row lock.

    Payments that are no longer pending are returned unchanged, so a webhook
    and a browser callback for the same charge apply it only once.
    """

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .select_related("user", "booking", "booking__agent", "booking__property")
            .get(pk=payment_id)
        )
        if payment.status != Payment.PENDING:
            return payment
        if succeeded:
            _complete(payment)
        else:
            _fail(payment)

    logger.info("Payment %s processed, status: %s", payment.id, payment.status)
    return payment


def _amount_matches(payment: Payment, amount_kobo: int | None) -> bool:
    if amount_kobo is None:
        return True
    if amount_kobo != paystack.to_kobo(payment.amount):
        logger.warning(
            "Payment %s charged %s kobo, expected %s; treating as failed",
            payment.id,
            amount_kobo,
            paystack.to_kobo(payment.amount),
        )
        return False
    return True


def verify_payment(payment: Payment) -> Payment:
    if payment.status != Payment.PENDING:
        return payment
    result = paystack.verify_transaction(payment.reference)
    succeeded = result.succeeded and _amount_matches(payment, result.amount_kobo)
    return apply_charge_outcome(payment_id=payment.id, succeeded=succeeded)


def verify_payment_by_reference(reference: str) -> Payment:
    if not reference:
        raise BadRequest("A payment reference is required.")
    try:
        payment = Payment.objects.get(reference=reference)
    except Payment.DoesNotExist:
        raise NotFound("Payment not found.")
    return verify_payment(payment)


def refund_payment(*, payment: Payment, actor) -> Payment:
    if payment.user_id != actor.id and not actor.is_admin:
        raise Forbidden("You do not have permission to refund this payment.")
    if payment.status != Payment.COMPLETED:
        raise BadRequest("Only completed payments can be refunded.")

    paystack.refund_transaction(reference=payment.reference, amount=payment.amount)

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .select_related("user", "booking", "booking__agent", "booking__property")
            .get(pk=payment.pk)
        )
        _transition(payment, Payment.REFUNDED)
        create_notification(
            user=payment.user,
            type=Notification.PAYMENT_REFUNDED,
            title="Payment Refunded",
            message=f"Your payment of {payment.currency} {payment.amount} has been refunded.",
            related_object_id=payment.id,
            metadata={"amount": str(payment.amount), "currency": payment.currency},
        )
        booking = None
        if payment.booking_id is not None:
            booking = Booking.objects.select_for_update().select_related("agent", "property").get(pk=payment.booking_id)
            still_paid = booking.payments.filter(status=Payment.COMPLETED).exists()
            if booking.payment_status != Booking.PAYMENT_PAID or still_paid:
                booking = None
        if booking is not None:
            booking.payment_status = Booking.PAYMENT_REFUNDED
            booking.save(update_fields=["payment_status", "updated_at"])
            _adjust_agent_revenue(booking, -payment.amount)
            create_notification(
                user=booking.agent,
                type=Notification.PAYMENT_REFUNDED,
                title="Payment Refunded",
                message=f"Payment refunded for booking {booking.id} ({booking.property.title}).",
                related_object_id=booking.id,
                metadata={"amount": str(payment.amount), "currency": payment.currency},
            )

    logger.info("Payment %s refunded", payment.id)
    return payment


def set_payment_status(*, payment: Payment, status: str) -> Payment:
    """Administrative override; still bound by the payment transition table."""

    if status == payment.status:
        return payment
    if status == Payment.REFUNDED:
        raise BadRequest("Refunds must go through the refund endpoint.")
    if not payment.can_transition_to(status):
        raise Conflict(f"Payment {payment.reference} cannot move from {payment.status} to {status}.")

    logger.info("Payment %s status forced to %s", payment.id, status)
    return apply_charge_outcome(payment_id=payment.id, succeeded=status == Payment.COMPLETED)


WEBHOOK_OUTCOMES = {
    "charge.success": True,
    "charge.failed": False,
}


def handle_webhook_event(event: str, data: dict[str, Any]) -> Payment | None:
    if event not in WEBHOOK_OUTCOMES:
        logger.info("Ignoring Paystack webhook event %s", event)
        return None

    reference = data.get("reference")
    if not reference:
        logger.error("Paystack webhook %s is missing a reference", event)
        return None

    payment = Payment.objects.filter(reference=reference).first()
    if payment is None:
        logger.warning("Payment not found for webhook reference %s", reference)
        return None

    succeeded = WEBHOOK_OUTCOMES[event]
    if succeeded:
        amount = data.get("amount")
        succeeded = _amount_matches(payment, int(amount) if amount is not None else 0)
    return apply_charge_outcome(payment_id=payment.id, succeeded=succeeded)
