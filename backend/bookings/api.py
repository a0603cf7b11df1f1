from django.shortcuts import get_object_or_404
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.models import User
from bookings.models import Booking
from bookings.serializers import BookingCreateSerializer, BookingSerializer, BookingStatusSerializer
from bookings.services.lifecycle import (
    agent_booking_summary,
    bookings_visible_to,
    cancel_booking,
    create_booking,
    update_booking_status,
)
from core.pagination import PageLimitPagination
from core.permissions import IsAgent, IsStudent


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = PageLimitPagination
    filterset_fields = ["status", "payment_status"]
    ordering_fields = ["created_at", "move_in_date", "amount"]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return bookings_visible_to(self.request.user)

    def get_permissions(self):
        if self.action == "create":
            return [permissions.IsAuthenticated(), IsStudent()]
        if self.action == "summary":
            return [permissions.IsAuthenticated(), IsAgent()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = create_booking(tenant=request.user, data=serializer.validated_data)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        booking = self.get_object()
        booking = cancel_booking(booking=booking, actor=request.user)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        booking = self.get_object()
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = update_booking_status(
            booking=booking,
            status=serializer.validated_data["status"],
            actor=request.user,
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=False, methods=["get"], url_path=r"agent/(?P<agent_id>\d+)")
    def agent_bookings(self, request, agent_id=None):
        agent = get_object_or_404(User, pk=agent_id, role=User.AGENT)
        if not request.user.is_admin and request.user.id != agent.id:
            raise PermissionDenied("You can only view your own bookings.")
        queryset = self.filter_queryset(
            Booking.objects.filter(agent=agent)
            .select_related("property", "tenant", "agent")
            .order_by("-created_at", "-id")
        )
        return Response(BookingSerializer(queryset, many=True).data)

    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request):
        summary = agent_booking_summary(request.user)
        summary["revenue"] = f"{summary['revenue']:.2f}"
        return Response(summary)
