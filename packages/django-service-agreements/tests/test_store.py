"""Tests for the agreement store."""
from datetime import date
from unittest import mock

import pytest
from django.db import DatabaseError

from django_service_agreements.exceptions import (
    AgreementNotFound,
    AgreementPersistenceError,
    ServiceAgreementError,
)
from django_service_agreements.models import ServiceAgreement
from django_service_agreements.store import AgreementStore


@pytest.fixture
def store():
    return AgreementStore()


@pytest.mark.django_db
class TestAgreementStoreGet:
    """Test suite for AgreementStore.get()."""

    def test_get_returns_fresh_record(self, store, make_agreement):
        agreement = make_agreement()
        ServiceAgreement.objects.filter(pk=agreement.pk).update(title="Changed elsewhere")
        assert store.get(agreement.pk).title == "Changed elsewhere"

    def test_get_missing(self, store):
        with pytest.raises(AgreementNotFound) as exc_info:
            store.get(12345)
        assert "12345" in str(exc_info.value)

    def test_get_malformed_id(self, store):
        with pytest.raises(AgreementNotFound):
            store.get("not-a-number")

    def test_get_database_failure(self, store):
        with mock.patch.object(
            ServiceAgreement.objects, "get", side_effect=DatabaseError("connection lost")
        ):
            with pytest.raises(AgreementPersistenceError) as exc_info:
                store.get(1)
        assert exc_info.value.operation == "load"
        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert isinstance(exc_info.value, ServiceAgreementError)


@pytest.mark.django_db
class TestAgreementStoreUpdate:
    """Test suite for AgreementStore.update()."""

    def test_update_writes_fields(self, store, make_agreement):
        agreement = make_agreement()
        updated = store.update(agreement.pk, {"start_date": date(2025, 1, 1), "status": "pending"})
        assert updated.start_date == date(2025, 1, 1)
        agreement.refresh_from_db()
        assert agreement.status == "pending"

    def test_update_only_touches_given_fields(self, store, make_agreement):
        agreement = make_agreement(description="Keep me")
        store.update(agreement.pk, {"title": "New title"})
        agreement.refresh_from_db()
        assert agreement.title == "New title"
        assert agreement.description == "Keep me"

    def test_on_locked_sees_previous_values(self, store, make_agreement):
        agreement = make_agreement()
        seen = []
        store.update(
            agreement.pk,
            {"title": "After"},
            on_locked=lambda previous: seen.append(previous.title),
        )
        assert seen == ["Managed hosting"]

    def test_on_locked_failure_rolls_back(self, store, make_agreement):
        agreement = make_agreement()

        def fail(previous):
            raise DatabaseError("history insert failed")

        with pytest.raises(AgreementPersistenceError) as exc_info:
            store.update(agreement.pk, {"title": "After"}, on_locked=fail)
        assert exc_info.value.operation == "update"
        agreement.refresh_from_db()
        assert agreement.title == "Managed hosting"

    def test_update_missing(self, store, db):
        with pytest.raises(AgreementNotFound):
            store.update(999, {"title": "Nope"})
