"""Agreement store.

The only place that talks to the database on behalf of the lifecycle
engine. Database failures surface as AgreementPersistenceError so callers
can tell them apart from validation failures.
"""

import logging

from django.db import DatabaseError, transaction

from .exceptions import AgreementNotFound, AgreementPersistenceError
from .models import ServiceAgreement

logger = logging.getLogger(__name__)


class AgreementStore:
    """Record repository for service agreements: get and update by id."""

    model = ServiceAgreement

    def get(self, agreement_id) -> ServiceAgreement:
        """
        Load an agreement fresh from the database.

        Raises:
            AgreementNotFound: If no (non-deleted) agreement has this id
            AgreementPersistenceError: If the database read fails
        """
        try:
            return self.model.objects.get(pk=agreement_id)
        except self.model.DoesNotExist:
            raise AgreementNotFound(agreement_id)
        except (ValueError, TypeError):
            # Malformed ids cannot match any row
            raise AgreementNotFound(agreement_id)
        except DatabaseError as exc:
            logger.exception("Failed to load service agreement %s", agreement_id)
            raise AgreementPersistenceError("load", agreement_id, exc) from exc

    def update(self, agreement_id, fields: dict, on_locked=None) -> ServiceAgreement:
        """
        Replace the given fields on one agreement in a single transaction.

        Args:
            agreement_id: The agreement to update
            fields: Field name -> new value
            on_locked: Optional callable(agreement) run inside the same
                transaction after the row is locked and before it is
                written; receives the pre-update record

        Returns:
            The updated agreement

        Raises:
            AgreementNotFound: If the agreement disappeared
            AgreementPersistenceError: If the database write fails
        """
        try:
            with transaction.atomic():
                try:
                    agreement = self.model.objects.select_for_update().get(pk=agreement_id)
                except self.model.DoesNotExist:
                    raise AgreementNotFound(agreement_id)

                if on_locked is not None:
                    on_locked(agreement)

                for name, value in fields.items():
                    setattr(agreement, name, value)
                agreement.save(update_fields=[*fields.keys(), "updated_at"])
                return agreement
        except DatabaseError as exc:
            logger.exception("Failed to update service agreement %s", agreement_id)
            raise AgreementPersistenceError("update", agreement_id, exc) from exc


default_store = AgreementStore()
