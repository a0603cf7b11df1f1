from __future__ import annotations

import logging
from typing import Any

from django.utils import timezone

from core.exceptions import NotFound
from notifications.models import Notification

logger = logging.getLogger(__name__)


def create_notification(
    *,
    user,
    type: str,
    title: str,
    message: str,
    related_object_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    """Persist an unread notification; connected streams pick it up on their next poll."""

    notification = Notification.objects.create(
        user=user,
        type=type,
        title=title,
        message=message,
        related_object_id=related_object_id,
        metadata=metadata or {},
        read=False,
    )
    logger.info("Notification %s (%s) created for user %s", notification.id, type, user.pk)
    return notification


def unread_count(user) -> int:
    return Notification.objects.filter(user=user, read=False).count()


def mark_as_read(*, notification_id: int, user) -> Notification:
    try:
        notification = Notification.objects.get(pk=notification_id, user=user)
    except Notification.DoesNotExist:
        raise NotFound("Notification not found.")

    if not notification.read:
        notification.read = True
        notification.save(update_fields=["read", "updated_at"])
    return notification


def mark_all_as_read(user) -> int:
    return Notification.objects.filter(user=user, read=False).update(read=True, updated_at=timezone.now())


def delete_notification(*, notification_id: int, user) -> None:
    deleted, _ = Notification.objects.filter(pk=notification_id, user=user).delete()
    if not deleted:
        raise NotFound("Notification not found.")
