from decimal import Decimal

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer
from bookings.models import Booking
from properties.models import Property
from properties.serializers import PropertySummarySerializer


class BookingCreateSerializer(serializers.Serializer):
    property_id = serializers.PrimaryKeyRelatedField(queryset=Property.objects.all(), source="property")
    move_in_date = serializers.DateField()
    move_out_date = serializers.DateField(required=False, allow_null=True)
    duration = serializers.CharField(max_length=50)
    gender = serializers.ChoiceField(choices=Booking.GENDERS)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    special_request = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_property_id(self, value: Property) -> Property:
        if not value.is_available:
            raise serializers.ValidationError("This property is not available for booking.")
        return value

    def validate(self, attrs):
        move_out_date = attrs.get("move_out_date")
        if move_out_date and move_out_date <= attrs["move_in_date"]:
            raise serializers.ValidationError({"move_out_date": "Move-out date must be after the move-in date."})
        return attrs


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.STATUSES)


class BookingSerializer(serializers.ModelSerializer):
    property = PropertySummarySerializer(read_only=True)
    tenant = UserSummarySerializer(read_only=True)
    agent = UserSummarySerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "property",
            "tenant",
            "agent",
            "move_in_date",
            "move_out_date",
            "duration",
            "gender",
            "amount",
            "special_request",
            "status",
            "payment_status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
