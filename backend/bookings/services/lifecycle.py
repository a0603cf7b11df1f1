from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from django.db import transaction
from django.db.models import Count, Q, QuerySet, Sum

from bookings.models import Booking
from bookings.services.emails import send_booking_confirmation_email
from core.exceptions import BadRequest, Conflict, Forbidden
from notifications.models import Notification
from notifications.services import create_notification

logger = logging.getLogger(__name__)


def bookings_visible_to(user) -> QuerySet[Booking]:
    """Admins see every booking, agents the ones on their listings, students their own."""

    queryset = Booking.objects.select_related("property", "tenant", "agent").order_by("-created_at", "-id")
    if user.is_admin:
        return queryset
    if user.is_agent:
        return queryset.filter(agent=user)
    return queryset.filter(tenant=user)


def create_booking(*, tenant, data: dict[str, Any]) -> Booking:
    if not tenant.is_student:
        raise Forbidden("Only students can create bookings.")

    property_obj = data["property"]
    with transaction.atomic():
        booking = Booking.objects.create(
            property=property_obj,
            tenant=tenant,
            agent=property_obj.agent,
            move_in_date=data["move_in_date"],
            move_out_date=data.get("move_out_date"),
            duration=data["duration"],
            gender=data["gender"],
            amount=data["amount"],
            special_request=data.get("special_request", ""),
            status=Booking.PENDING,
            payment_status=Booking.PAYMENT_PENDING,
        )
        create_notification(
            user=booking.agent,
            type=Notification.BOOKING_CREATED,
            title="New Booking Request",
            message=f"{tenant.full_name or tenant.email} requested {property_obj.title} from {booking.move_in_date:%B %d, %Y}.",
            related_object_id=booking.id,
            metadata={"property_id": property_obj.id, "tenant_id": tenant.id},
        )
        transaction.on_commit(lambda: _send_confirmation(booking))

    logger.info("Booking %s created by tenant %s for property %s", booking.id, tenant.pk, property_obj.id)
    return booking


def _send_confirmation(booking: Booking) -> None:
    # runs after commit, so a send failure is logged only
    try:
        send_booking_confirmation_email(booking=booking)
    except Exception:
        logger.exception("Could not send confirmation email for booking %s", booking.id)


def update_booking_status(*, booking: Booking, status: str, actor) -> Booking:
    if booking.agent_id != actor.id:
        raise Forbidden("Only the assigned agent can update this booking.")
    if status == booking.status:
        return booking
    if not booking.can_transition_to(status):
        raise Conflict(f"Cannot move a {booking.status} booking to {status}.")

    previous = booking.status
    with transaction.atomic():
        booking.status = status
        booking.save(update_fields=["status", "updated_at"])
        create_notification(
            user=booking.tenant,
            type=Notification.BOOKING_UPDATED,
            title="Booking Updated",
            message=f"Your booking for {booking.property.title} is now {status}.",
            related_object_id=booking.id,
            metadata={"previous_status": previous, "status": status},
        )

    logger.info("Booking %s moved from %s to %s by %s", booking.id, previous, status, actor.pk)
    return booking


def cancel_booking(*, booking: Booking, actor) -> Booking:
    if not (actor.is_admin or booking.involves(actor)):
        raise Forbidden("You do not have permission to cancel this booking.")
    if booking.status == Booking.CANCELLED:
        return booking
    if booking.status == Booking.COMPLETED:
        raise BadRequest("Completed bookings cannot be cancelled.")

    with transaction.atomic():
        booking.status = Booking.CANCELLED
        booking.save(update_fields=["status", "updated_at"])
        recipient = booking.agent if actor.id == booking.tenant_id else booking.tenant
        create_notification(
            user=recipient,
            type=Notification.BOOKING_DELETED,
            title="Booking Cancelled",
            message=f"The booking for {booking.property.title} was cancelled.",
            related_object_id=booking.id,
            metadata={"cancelled_by": actor.id},
        )

    logger.info("Booking %s cancelled by %s", booking.id, actor.pk)
    return booking


def agent_booking_summary(agent) -> dict[str, Any]:
    bookings = Booking.objects.filter(agent=agent)
    counts = bookings.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(status=Booking.PENDING)),
        confirmed=Count("id", filter=Q(status=Booking.CONFIRMED)),
        cancelled=Count("id", filter=Q(status=Booking.CANCELLED)),
        completed=Count("id", filter=Q(status=Booking.COMPLETED)),
        awaiting_payment=Count(
            "id",
            filter=Q(payment_status=Booking.PAYMENT_PENDING) & ~Q(status=Booking.CANCELLED),
        ),
    )
    revenue = bookings.filter(payment_status=Booking.PAYMENT_PAID).aggregate(total=Sum("amount"))["total"]
    counts["revenue"] = revenue or Decimal("0")
    return counts
