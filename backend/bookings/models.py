from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Booking(models.Model):
    """A student's reservation against a property; cancelled rather than deleted."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    STATUSES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (CANCELLED, "Cancelled"),
        (COMPLETED, "Completed"),
    ]

    PAYMENT_PENDING = "pending"
    PAYMENT_PAID = "paid"
    PAYMENT_REFUNDED = "refunded"
    PAYMENT_STATUSES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_REFUNDED, "Refunded"),
    ]

    MALE = "male"
    FEMALE = "female"
    GENDERS = [
        (MALE, "Male"),
        (FEMALE, "Female"),
    ]

    # status -> statuses the assigned agent may move it to
    STATUS_TRANSITIONS = {
        PENDING: {CONFIRMED, CANCELLED},
        CONFIRMED: {COMPLETED, CANCELLED},
        CANCELLED: set(),
        COMPLETED: set(),
    }

    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    tenant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="tenant_bookings",
    )
    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="agent_bookings",
    )
    move_in_date = models.DateField()
    move_out_date = models.DateField(null=True, blank=True)
    duration = models.CharField(max_length=50)
    gender = models.CharField(max_length=10, choices=GENDERS)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    special_request = models.TextField(blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    payment_status = models.CharField(max_length=12, choices=PAYMENT_STATUSES, default=PAYMENT_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.property.title} booking for {self.tenant}"

    def can_transition_to(self, status: str) -> bool:
        return status in self.STATUS_TRANSITIONS.get(self.status, set())

    def involves(self, user) -> bool:
        return user.id in {self.tenant_id, self.agent_id}
