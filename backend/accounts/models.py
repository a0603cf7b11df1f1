from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    STUDENT = "student"
    AGENT = "agent"
    ADMIN = "admin"
    ROLES = [
        (STUDENT, "Student"),
        (AGENT, "Agent"),
        (ADMIN, "Admin"),
    ]

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=200, blank=True)
    phone_number = models.CharField(max_length=30, unique=True, null=True, blank=True)
    role = models.CharField(max_length=12, choices=ROLES, default=STUDENT)
    is_verified = models.BooleanField(default=False)

    @property
    def is_student(self) -> bool:
        return self.role == self.STUDENT

    @property
    def is_agent(self) -> bool:
        return self.role == self.AGENT

    @property
    def is_admin(self) -> bool:
        return self.role == self.ADMIN or self.is_superuser

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower()
        if self.role == self.ADMIN:
            self.is_staff = True
        super().save(*args, **kwargs)

    def __str__(self):
        return self.full_name or self.email


class StudentProfile(models.Model):
    YEARS = [(year, f"{year} level") for year in ("100", "200", "300", "400", "500")]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="student_profile",
    )
    university = models.CharField(max_length=200, blank=True)
    year_of_study = models.CharField(max_length=3, choices=YEARS, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Student profile for {self.user}"


class AgentProfile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="agent_profile",
    )
    agency_name = models.CharField(max_length=200, blank=True)
    identity_document = models.FileField(upload_to="identity-documents/", blank=True, null=True)
    identity_verified = models.BooleanField(default=False)
    total_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Agent profile for {self.user}"
