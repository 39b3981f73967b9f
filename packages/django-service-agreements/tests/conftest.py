"""Pytest configuration for django-service-agreements tests."""

from datetime import date
from decimal import Decimal

import django
import pytest
from django.conf import settings


def pytest_configure():
    if not settings.configured:
        settings.configure(
            DEBUG=True,
            SECRET_KEY="test-secret-key-for-service-agreements",
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME": ":memory:",
                }
            },
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "django.contrib.sessions",
                "django.contrib.messages",
                "django.contrib.admin",
                "django_service_agreements",
                "tests.testapp",
            ],
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            USE_TZ=True,
            TIME_ZONE="UTC",
            AUTH_USER_MODEL="auth.User",
        )
    django.setup()


@pytest.fixture
def user(db, django_user_model):
    """Create a test user."""
    return django_user_model.objects.create_user(
        username="testuser",
        password="testpass123",
    )


@pytest.fixture
def business(db):
    """Create a test business."""
    from tests.testapp.models import Business
    return Business.objects.create(name="Acme AS")


@pytest.fixture
def make_agreement(business, user):
    """Factory for agreements created through the service layer."""
    from django_service_agreements.services import create_agreement

    def _make(**overrides):
        values = {
            "business": business,
            "title": "Managed hosting",
            "start_date": date(2024, 1, 15),
            "price": Decimal("500.00"),
            "billing_cycle": "monthly",
            "created_by": user,
        }
        values.update(overrides)
        return create_agreement(**values)

    return _make
