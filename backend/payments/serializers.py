from decimal import Decimal

from rest_framework import serializers

from bookings.models import Booking
from payments.models import Payment, Transaction


class PaymentCreateSerializer(serializers.Serializer):
    booking_id = serializers.PrimaryKeyRelatedField(
        queryset=Booking.objects.select_related("property", "agent"),
        source="booking",
        required=False,
        allow_null=True,
    )
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    email = serializers.EmailField()
    currency = serializers.CharField(max_length=10, required=False, allow_blank=True)
    payment_method = serializers.CharField(max_length=50)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    metadata = serializers.DictField(required=False, default=dict)


class PaymentSerializer(serializers.ModelSerializer):
    booking_id = serializers.IntegerField(read_only=True, allow_null=True)
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "user_id",
            "booking_id",
            "email",
            "amount",
            "currency",
            "payment_method",
            "description",
            "metadata",
            "reference",
            "authorization_url",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    payment_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "payment_id",
            "reference",
            "amount",
            "currency",
            "description",
            "status",
            "metadata",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Payment.STATUSES)


class PaymentReferenceSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=200)
