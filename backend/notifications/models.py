from django.conf import settings
from django.db import models


class Notification(models.Model):
    BOOKING_CREATED = "booking_created"
    BOOKING_UPDATED = "booking_updated"
    BOOKING_DELETED = "booking_deleted"
    PAYMENT_CREATED = "payment_created"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_REFUNDED = "payment_refunded"
    PROPERTY_REVIEWED = "property_reviewed"
    ACCOUNT_UPDATED = "account_updated"
    PASSWORD_RESET = "password_reset"
    TYPES = [
        (BOOKING_CREATED, "Booking created"),
        (BOOKING_UPDATED, "Booking updated"),
        (BOOKING_DELETED, "Booking deleted"),
        (PAYMENT_CREATED, "Payment created"),
        (PAYMENT_COMPLETED, "Payment completed"),
        (PAYMENT_FAILED, "Payment failed"),
        (PAYMENT_REFUNDED, "Payment refunded"),
        (PROPERTY_REVIEWED, "Property reviewed"),
        (ACCOUNT_UPDATED, "Account updated"),
        (PASSWORD_RESET, "Password reset"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=30, choices=TYPES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    read = models.BooleanField(default=False)
    related_object_id = models.PositiveBigIntegerField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "read", "-created_at"], name="notif_user_read_created_idx"),
        ]

    def __str__(self):
        return f"{self.type} -> {self.user}"
