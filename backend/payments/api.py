import json
import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import HttpResponseRedirect
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFound, ServiceError
from core.pagination import PageLimitPagination
from core.permissions import IsAdmin
from payments.filters import PaymentFilter, TransactionFilter
from payments.models import Payment, Transaction
from payments.serializers import (
    PaymentCreateSerializer,
    PaymentReferenceSerializer,
    PaymentSerializer,
    PaymentStatusSerializer,
    TransactionSerializer,
)
from payments.services import paystack
from payments.services.payments import (
    handle_webhook_event,
    initialize_payment,
    refund_payment,
    set_payment_status,
    verify_payment,
    verify_payment_by_reference,
)

logger = logging.getLogger(__name__)


class PaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = PageLimitPagination
    filterset_class = PaymentFilter
    search_fields = ["reference", "description"]
    ordering_fields = ["created_at", "amount"]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        queryset = Payment.objects.all()
        if not self.request.user.is_admin:
            queryset = queryset.filter(user=self.request.user)
        return queryset

    def get_permissions(self):
        if self.action == "update_status":
            return [permissions.IsAuthenticated(), IsAdmin()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = initialize_payment(user=request.user, data=serializer.validated_data)
        return Response(
            {
                "payment": PaymentSerializer(payment).data,
                "authorization_url": payment.authorization_url,
                "reference": payment.reference,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="verify")
    def verify(self, request, pk=None):
        payment = verify_payment(self.get_object())
        return Response(PaymentSerializer(payment).data)

    @action(detail=False, methods=["post"], url_path="verify-by-reference")
    def verify_by_reference(self, request):
        serializer = PaymentReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reference = serializer.validated_data["reference"]
        if not self.get_queryset().filter(reference=reference).exists():
            raise NotFound("Payment not found.")
        payment = verify_payment_by_reference(reference)
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        payment = refund_payment(payment=self.get_object(), actor=request.user)
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = set_payment_status(payment=self.get_object(), status=serializer.validated_data["status"])
        return Response(PaymentSerializer(payment).data)


class PaymentCallbackView(APIView):
    """Browser landing point after checkout; verifies the charge then bounces to the frontend."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def get(self, request, *args, **kwargs):
        reference = request.query_params.get("reference") or request.query_params.get("trxref") or ""
        outcome = "failed"
        try:
            payment = verify_payment_by_reference(reference)
        except ServiceError as exc:
            logger.warning("Payment callback for reference %r failed: %s", reference, exc.detail)
        else:
            if payment.status == Payment.COMPLETED:
                outcome = "success"

        query = urlencode({"reference": reference})
        return HttpResponseRedirect(f"{settings.FRONTEND_URL.rstrip('/')}/payment/{outcome}?{query}")


class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = TransactionSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = PageLimitPagination
    filterset_class = TransactionFilter
    ordering_fields = ["created_at", "amount"]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        queryset = Transaction.objects.all()
        if not self.request.user.is_admin:
            queryset = queryset.filter(user=self.request.user)
        return queryset


class PaystackWebhookView(APIView):
    """Receive Paystack charge events signed with the account's secret key."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        signature = request.META.get("HTTP_X_PAYSTACK_SIGNATURE")
        try:
            valid = paystack.verify_webhook_signature(payload, signature)
        except RuntimeError as exc:
            logger.error("Paystack webhook rejected: %s", exc)
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        if not valid:
            logger.warning("Invalid Paystack signature.")
            return Response(status=status.HTTP_400_BAD_REQUEST)

        try:
            event = json.loads(payload)
        except ValueError:
            event = None
        if not isinstance(event, dict):
            logger.warning("Invalid payload received on Paystack webhook.")
            return Response(status=status.HTTP_400_BAD_REQUEST)

        handle_webhook_event(event.get("event", ""), event.get("data") or {})
        return Response(status=status.HTTP_200_OK)
