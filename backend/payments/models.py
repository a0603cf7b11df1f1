from django.conf import settings
from django.db import models


class Payment(models.Model):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    STATUSES = [
        (PENDING, "Pending"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
        (REFUNDED, "Refunded"),
    ]

    # status -> statuses it may move to; completed never returns to pending
    STATUS_TRANSITIONS = {
        PENDING: {COMPLETED, FAILED},
        COMPLETED: {REFUNDED},
        FAILED: set(),
        REFUNDED: set(),
    }

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    email = models.EmailField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=10, default="NGN")
    payment_method = models.CharField(max_length=50)
    description = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    reference = models.CharField(max_length=200, unique=True)
    authorization_url = models.URLField(max_length=500, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.reference} ({self.status})"

    def save(self, *args, **kwargs):
        if self.currency:
            self.currency = self.currency.upper()
        super().save(*args, **kwargs)

    def can_transition_to(self, status: str) -> bool:
        return status in self.STATUS_TRANSITIONS.get(self.status, set())


class Transaction(models.Model):
    """Ledger row mirroring a payment's amount and status."""

    payment = models.OneToOneField("Payment", on_delete=models.CASCADE, related_name="transaction")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    reference = models.CharField(max_length=200, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=10)
    description = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=12, choices=Payment.STATUSES, default=Payment.PENDING)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Transaction {self.reference} ({self.status})"
