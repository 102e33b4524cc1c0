"""
Root conftest.py: shared fixtures for the entire test suite.

Celery runs eagerly under ``pulseplush.settings_test`` (see pyproject.toml),
so ``.delay()`` needs no broker.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating test users.
  - ``create_donor`` factory fixture for users with a donor profile.
  - ``create_request`` factory fixture for blood requests.
  - ``auth_client`` fixture returning a client authenticated with a JWT.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

# Kathmandu
KTM_LAT = 27.7172
KTM_LON = 85.3240


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        user = create_user(username="alice", full_name="Alice Rai")
    """
    from accounts.models import CustomUser

    _counter = 0

    def _factory(*, username: str | None = None, password: str = "TestPass123!",
                 email: str | None = None, **kwargs) -> CustomUser:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"
        return CustomUser.objects.create_user(username=username, password=password, email=email, **kwargs)

    return _factory


@pytest.fixture()
def create_donor(create_user):
    """
    Factory fixture for a user with a DonorProfile.

    Usage::

        donor = create_donor(blood_type="O-", latitude=27.7, longitude=85.3)
    """
    from donors.models import DonorProfile

    def _factory(*, blood_type: str = "O+", latitude=KTM_LAT, longitude=KTM_LON,
                 is_available: bool = True, is_verified: bool = True, user=None, **kwargs) -> DonorProfile:
        full_name = kwargs.pop("full_name", "")
        if user is None:
            user = create_user(full_name=full_name)
        return DonorProfile.objects.create(
            user=user,
            blood_type=blood_type,
            latitude=latitude,
            longitude=longitude,
            is_available=is_available,
            is_verified=is_verified,
            district=kwargs.pop("district", "Kathmandu"),
            **kwargs,
        )

    return _factory


@pytest.fixture()
def create_request(create_user):
    """Factory fixture for a BloodRequest stored directly through the ORM."""
    from blood_requests.models import BloodRequest

    def _factory(*, requester=None, blood_type: str = "A+", urgency_level: str = "Medium",
                 latitude=KTM_LAT, longitude=KTM_LON, **kwargs) -> BloodRequest:
        if requester is None:
            requester = create_user(full_name="Requester")
        defaults = {
            "units_needed": 2,
            "appointment_date": timezone.now() + timedelta(days=1),
            "phone_number": "9800000000",
            "district": "Kathmandu",
            "hospital_name": "Bir Hospital",
            "description": "Surgery scheduled",
        }
        defaults.update(kwargs)
        return BloodRequest.objects.create(
            requester=requester,
            blood_type=blood_type,
            urgency_level=urgency_level,
            latitude=latitude,
            longitude=longitude,
            **defaults,
        )

    return _factory


@pytest.fixture()
def auth_client(api_client):
    """
    Returns a helper that authenticates ``api_client`` as ``user`` with a
    JWT access token and hands the client back.
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _login(user) -> APIClient:
        token = AccessToken.for_user(user)
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return api_client

    return _login
