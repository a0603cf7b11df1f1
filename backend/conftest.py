from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import AgentProfile, StudentProfile, User
from bookings.models import Booking
from properties.models import Property


def make_user(email: str, *, role: str = User.STUDENT, **extra) -> User:
    return User.objects.create_user(
        username=email,
        email=email,
        password="examplepass",
        role=role,
        full_name=extra.pop("full_name", email.split("@")[0].title()),
        **extra,
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def student(db):
    user = make_user("student@example.com", full_name="Sade Student")
    StudentProfile.objects.create(user=user, university="UNILAG", year_of_study="200")
    return user


@pytest.fixture
def agent(db):
    user = make_user("agent@example.com", role=User.AGENT, full_name="Ada Agent")
    AgentProfile.objects.create(user=user, agency_name="Campus Lets")
    return user


@pytest.fixture
def other_agent(db):
    user = make_user("other-agent@example.com", role=User.AGENT, full_name="Obi Other")
    AgentProfile.objects.create(user=user, agency_name="Hostel Hub")
    return user


@pytest.fixture
def admin_user(db):
    return make_user("admin@example.com", role=User.ADMIN, full_name="Ama Admin")


@pytest.fixture
def listing(agent):
    return Property.objects.create(
        agent=agent,
        title="Akoka Self Contain",
        description="Quiet room close to the main gate.",
        location="Akoka, Yaba",
        price=Decimal("450000.00"),
        room_type=Property.SELF_CONTAIN,
        wifi=True,
    )


@pytest.fixture
def booking(listing, student):
    return Booking.objects.create(
        property=listing,
        tenant=student,
        agent=listing.agent,
        move_in_date=timezone.localdate() + timedelta(days=14),
        duration="1 year",
        gender=Booking.FEMALE,
        amount=Decimal("450000.00"),
    )
