from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import AgentProfile, StudentProfile, User
from bookings.models import Booking
from notifications.models import Notification
from notifications.services import create_notification
from properties.models import Property


SEED_PASSWORD = "UHomes123!"
SUPERUSER_EMAIL = "admin@uhomes.test"
SUPERUSER_PASSWORD = "AdminUHomes123!"


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating users & profiles"))
            agent = self._ensure_user(
                email="agent@uhomes.test",
                full_name="Ada Agent",
                phone_number="08030000001",
                role=User.AGENT,
            )
            AgentProfile.objects.update_or_create(
                user=agent,
                defaults={"agency_name": "Campus Lets", "identity_verified": True},
            )
            second_agent = self._ensure_user(
                email="lettings@uhomes.test",
                full_name="Leke Lettings",
                phone_number="08030000002",
                role=User.AGENT,
            )
            AgentProfile.objects.update_or_create(user=second_agent, defaults={"agency_name": "Hostel Hub"})

            student = self._ensure_user(
                email="student@uhomes.test",
                full_name="Sade Student",
                phone_number="08030000003",
                role=User.STUDENT,
            )
            StudentProfile.objects.update_or_create(
                user=student,
                defaults={"university": "University of Lagos", "year_of_study": "200"},
            )
            self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating properties"))
            Booking.objects.all().delete()
            Property.objects.filter(agent__in=[agent, second_agent]).delete()

            akoka = self._create_property(
                agent=agent,
                title="Akoka Self Contain",
                location="Akoka, Yaba",
                price=Decimal("450000.00"),
                room_type=Property.SELF_CONTAIN,
                wifi=True,
                kitchen=True,
                security=True,
            )
            self._create_property(
                agent=agent,
                title="Bariga Shared Room",
                location="Bariga",
                price=Decimal("180000.00"),
                room_type=Property.SHARED,
                security=True,
            )
            self._create_property(
                agent=second_agent,
                title="Sabo Single Room",
                location="Sabo, Yaba",
                price=Decimal("250000.00"),
                room_type=Property.SINGLE,
                wifi=True,
                power_24_7=True,
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating bookings"))
            booking = Booking.objects.create(
                property=akoka,
                tenant=student,
                agent=agent,
                move_in_date=timezone.localdate() + timedelta(days=14),
                duration="1 year",
                gender=Booking.FEMALE,
                amount=akoka.price,
                special_request="Ground floor if possible.",
            )
            create_notification(
                user=agent,
                type=Notification.BOOKING_CREATED,
                title="New Booking Request",
                message=f"{student.full_name} requested {akoka.title}.",
                related_object_id=booking.id,
                metadata={"booking_id": booking.id, "property_id": akoka.id},
            )

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_user(self, *, email: str, full_name: str, phone_number: str, role: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "full_name": full_name,
                "phone_number": phone_number,
                "role": role,
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        else:
            fields_to_update = {}
            if user.full_name != full_name:
                fields_to_update["full_name"] = full_name
            if user.role != role:
                fields_to_update["role"] = role
            if fields_to_update:
                for attr, value in fields_to_update.items():
                    setattr(user, attr, value)
                user.save(update_fields=list(fields_to_update.keys()))
            if not user.has_usable_password():
                user.set_password(SEED_PASSWORD)
                user.save(update_fields=["password"])
        return user

    def _create_property(self, *, agent: User, title: str, location: str, price: Decimal, room_type: str, **amenities) -> Property:
        return Property.objects.create(
            agent=agent,
            title=title,
            location=location,
            price=price,
            room_type=room_type,
            description=f"Sample listing for {title}.",
            **amenities,
        )

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "full_name": "Admin User",
                "role": User.ADMIN,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
