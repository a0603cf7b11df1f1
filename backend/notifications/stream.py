"""
Server-sent event stream of a user's notifications.

EventSource clients reconnect on their own when the response ends. Each frame
carries the notification id, so the browser's ``Last-Event-ID`` header lets a
reconnecting client resume where it left off. The server tells the client how
long to wait before reconnecting: the delay doubles with every attempt the
client reports, and once the attempt budget is spent the view answers 204,
which makes EventSource stop for good.

The attempt count arrives as the ``attempt`` query parameter and the server
keeps no record of it. A plain EventSource reconnects to the same URL, so it
resends the same value every time; only a client that rebuilds the URL with
an incremented ``attempt`` gets the growing delay and the final 204. Clients
that omit it are retried at the base delay indefinitely.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Iterator

from rest_framework.utils.encoders import JSONEncoder

from notifications.models import Notification
from notifications.serializers import NotificationSerializer

logger = logging.getLogger(__name__)

KEEP_ALIVE_FRAME = ": keep-alive\n\n"


def reconnect_delay_ms(attempt: int, *, base_ms: int, max_attempts: int) -> int | None:
    """Return the retry hint for a client on its ``attempt``-th reconnect, or None when out of attempts."""
    if attempt < 0:
        attempt = 0
    if attempt >= max_attempts:
        return None
    return base_ms * (2 ** attempt)


def format_event(*, data: str, event: str | None = None, event_id: int | None = None) -> str:
    lines = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    if event:
        lines.append(f"event: {event}")
    for chunk in data.splitlines() or [""]:
        lines.append(f"data: {chunk}")
    return "\n".join(lines) + "\n\n"


def latest_notification_id(user) -> int:
    latest = Notification.objects.filter(user=user).order_by("-id").values_list("id", flat=True).first()
    return latest or 0


def notification_events(
    user,
    *,
    after_id: int,
    retry_ms: int,
    poll_interval: float,
    max_duration: float,
) -> Iterator[str]:
    """Yield SSE frames for notifications newer than ``after_id`` until ``max_duration`` elapses."""

    yield f"retry: {retry_ms}\n\n"

    deadline = time.monotonic() + max_duration
    last_id = after_id
    while True:
        pending = list(
            Notification.objects.filter(user=user, id__gt=last_id).order_by("id")
        )
        for notification in pending:
            payload = json.dumps(NotificationSerializer(notification).data, cls=JSONEncoder)
            yield format_event(data=payload, event="notification", event_id=notification.id)
            last_id = notification.id

        if time.monotonic() >= deadline:
            break
        if not pending:
            yield KEEP_ALIVE_FRAME
        time.sleep(poll_interval)

    logger.debug("Notification stream for user %s closed at id %s", user.pk, last_id)
