from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Property(models.Model):
    """A rentable listing owned by an agent."""

    SINGLE = "single"
    SHARED = "shared"
    SELF_CONTAIN = "self_contain"
    ROOM_TYPES = [
        (SINGLE, "Single room"),
        (SHARED, "Shared room"),
        (SELF_CONTAIN, "Self contain"),
    ]

    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="properties",
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    location = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    room_type = models.CharField(max_length=20, choices=ROOM_TYPES)
    wifi = models.BooleanField(default=False)
    kitchen = models.BooleanField(default=False)
    security = models.BooleanField(default=False)
    parking = models.BooleanField(default=False)
    power_24_7 = models.BooleanField(default=False)
    gym = models.BooleanField(default=False)
    is_available = models.BooleanField(default=True)
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal("0"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]
        verbose_name_plural = "properties"

    def __str__(self):
        return f"{self.title} ({self.location})"


class PropertyImage(models.Model):
    property = models.ForeignKey("Property", on_delete=models.CASCADE, related_name="images")
    image = models.ImageField(upload_to="property-images/")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Image for {self.property}"
