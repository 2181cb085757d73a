"""Shared pytest fixtures and factories for ITAM tests."""

import pytest

from django.conf import settings

from assets.factories import (
    AssetFactory,
    LocationFactory,
    UserFactory,
)

# Plain static storage for tests (no collectstatic manifest needed)
settings.STORAGES["staticfiles"] = {
    "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
}

# Use in-memory cache for tests (avoids Redis connection errors)
settings.CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}


@pytest.fixture(autouse=True)
def _clear_cache():
    """Clear the in-memory cache before each test.

    Prevents rate-limit counters (django_ratelimit) from bleeding
    across tests.
    """
    from django.core.cache import cache

    cache.clear()


# --- User fixtures ---


@pytest.fixture
def password():
    return "testpass123!"


@pytest.fixture
def user(db, password):
    return UserFactory(
        username="testuser",
        email="test@example.com",
        password=password,
        display_name="Test User",
    )


@pytest.fixture
def admin_user(db, password):
    return UserFactory(
        username="admin",
        email="admin@example.com",
        password=password,
        display_name="IT Admin",
        role="ADMIN",
        is_staff=True,
    )


@pytest.fixture
def superuser(db, password):
    return UserFactory(
        username="root",
        email="root@example.com",
        password=password,
        is_staff=True,
        is_superuser=True,
    )


@pytest.fixture
def second_user(db, password):
    return UserFactory(
        username="employee",
        email="employee@example.com",
        password=password,
        display_name="Employee Person",
    )


@pytest.fixture
def client_logged_in(client, user, password):
    client.login(username=user.username, password=password)
    return client


@pytest.fixture
def admin_client(client, admin_user, password):
    client.login(username=admin_user.username, password=password)
    return client


@pytest.fixture
def superuser_client(client, superuser, password):
    client.login(username=superuser.username, password=password)
    return client


# --- Core model fixtures ---


@pytest.fixture
def location(db):
    return LocationFactory(
        name="Head Office",
        description="Second floor comms room",
    )


@pytest.fixture
def asset(location):
    return AssetFactory(
        type="LAPTOP",
        serial_number="SN-LAPTOP-1",
        description="ThinkPad T14",
        location=location,
        state="AVAILABLE",
    )


@pytest.fixture
def ready_asset(location):
    return AssetFactory(
        type="DESKTOP",
        serial_number="SN-DESKTOP-1",
        description="OptiPlex 7010",
        location=location,
        state="READY_TO_GO",
    )


@pytest.fixture
def holding_asset(location):
    return AssetFactory(
        type="MOBILE_PHONE",
        serial_number="SN-PHONE-1",
        description="iPhone 15",
        location=location,
        state="HOLDING",
    )


@pytest.fixture
def issued_asset(location, second_user):
    return AssetFactory(
        type="LAPTOP",
        serial_number="SN-LAPTOP-ISSUED",
        description="MacBook Air",
        location=location,
        state="ISSUED",
        assigned_user=second_user,
    )


@pytest.fixture
def archived_asset(location):
    return AssetFactory(
        type="MONITOR",
        serial_number="SN-MONITOR-OLD",
        description="Dell 24in",
        location=location,
        state="AVAILABLE",
        is_archived=True,
    )
