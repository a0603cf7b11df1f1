import json

from django.conf import settings
from django.http import StreamingHttpResponse
from rest_framework import mixins, permissions, renderers, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authentication import QueryParamJWTAuthentication
from core.pagination import PageLimitPagination
from notifications import services
from notifications.models import Notification
from notifications.serializers import NotificationSerializer
from notifications.stream import latest_notification_id, notification_events, reconnect_delay_ms


class NotificationViewSet(mixins.ListModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    """The caller's own notifications; other users' rows are invisible (404)."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = PageLimitPagination
    filter_backends: list = []
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        queryset = Notification.objects.filter(user=self.request.user)
        read = self.request.query_params.get("read")
        if read == "true":
            queryset = queryset.filter(read=True)
        elif read == "false":
            queryset = queryset.filter(read=False)
        return queryset.order_by("-created_at", "-id")

    def destroy(self, request, *args, **kwargs):
        services.delete_notification(notification_id=kwargs["pk"], user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        return Response({"unread_count": services.unread_count(request.user)})

    @action(detail=True, methods=["patch"], url_path="read")
    def mark_read(self, request, pk=None):
        notification = services.mark_as_read(notification_id=pk, user=request.user)
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=["patch"], url_path="read-all")
    def mark_all_read(self, request):
        count = services.mark_all_as_read(request.user)
        return Response({"count": count})


class EventStreamRenderer(renderers.BaseRenderer):
    media_type = "text/event-stream"
    format = "event-stream"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b""
        return json.dumps(data).encode(self.charset)


class NotificationStreamView(APIView):
    """Long-lived text/event-stream connection pushing new notifications to the caller."""

    authentication_classes = [QueryParamJWTAuthentication]
    permission_classes = [permissions.IsAuthenticated]
    renderer_classes = [renderers.JSONRenderer, EventStreamRenderer]

    def get(self, request, *args, **kwargs):
        try:
            attempt = int(request.query_params.get("attempt", 0))
        except (TypeError, ValueError):
            attempt = 0

        retry_ms = reconnect_delay_ms(
            attempt,
            base_ms=settings.NOTIFICATION_STREAM_RETRY_BASE_MS,
            max_attempts=settings.NOTIFICATION_STREAM_MAX_ATTEMPTS,
        )
        if retry_ms is None:
            return Response(status=status.HTTP_204_NO_CONTENT)

        last_event_id = request.headers.get("Last-Event-ID") or request.query_params.get("last_event_id")
        try:
            after_id = int(last_event_id)
        except (TypeError, ValueError):
            after_id = latest_notification_id(request.user)

        response = StreamingHttpResponse(
            notification_events(
                request.user,
                after_id=after_id,
                retry_ms=retry_ms,
                poll_interval=settings.NOTIFICATION_STREAM_POLL_SECONDS,
                max_duration=settings.NOTIFICATION_STREAM_MAX_SECONDS,
            ),
            content_type="text/event-stream",
        )
        response["Cache-Control"] = "no-cache"
        response["X-Accel-Buffering"] = "no"
        return response
