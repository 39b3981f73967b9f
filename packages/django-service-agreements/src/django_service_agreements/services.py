"""Service agreement service layer.

All write operations go through these functions.
Direct model manipulation bypasses invariants and is unsupported.

Functions:
- create_agreement(): Validate and create an agreement
- update_agreement(): Validate and apply an ordinary edit
- renew_agreement(): Roll an agreement into a new period
- create_agreement_type(): Add a user-managed agreement type
- update_agreement_type(): Edit a type, carrying a rename to its agreements
- delete_agreement_type(): Remove a type no agreement uses
- get_renewal_history(): Past renewals, newest first
"""

import logging

from django.contrib.contenttypes.models import ContentType
from django.db import DatabaseError, transaction

from .choices import AgreementStatus, BillingCycle
from .exceptions import AgreementPersistenceError, AgreementTypeNotFound, AgreementValidationError
from .models import AgreementRenewal, AgreementType, ServiceAgreement, normalize_type_name
from .recurrence import as_date
from .store import default_store
from .validation import RenewalInput, validate_agreement_fields, validate_renewal

logger = logging.getLogger(__name__)

# Fields an ordinary edit may change
EDITABLE_FIELDS = (
    "title",
    "description",
    "business",
    "status",
    "agreement_type",
    "start_date",
    "end_date",
    "renewal_date",
    "price",
    "billing_cycle",
)


def create_agreement(
    business,
    title: str,
    start_date,
    price,
    created_by,
    billing_cycle: str = BillingCycle.MONTHLY,
    status: str = AgreementStatus.ACTIVE,
    agreement_type: str = "",
    description: str = "",
    end_date=None,
    renewal_date=None,
) -> ServiceAgreement:
    """
    Create a service agreement.

    Args:
        business: The customer business (any saved model instance)
        title: Agreement title (REQUIRED)
        start_date: First day of the first period (REQUIRED)
        price: Price per period, must be positive
        created_by: User creating the agreement
        billing_cycle: monthly, quarterly, biannually, annually or one-time
        status: Initial stored status
        agreement_type: Name of an AgreementType
        description: Free text
        end_date: Last day of the period (None = ongoing)
        renewal_date: When to review for renewal (ignored for one-time)

    Returns:
        The created ServiceAgreement

    Raises:
        AgreementValidationError: If any invariant is violated
        AgreementPersistenceError: If the insert fails
    """
    cleaned = validate_agreement_fields({
        "title": title,
        "description": description,
        "business": business,
        "status": status,
        "agreement_type": agreement_type,
        "start_date": start_date,
        "end_date": end_date,
        "renewal_date": renewal_date,
        "price": price,
        "billing_cycle": billing_cycle,
    })

    try:
        agreement = ServiceAgreement.objects.create(created_by=created_by, **cleaned)
    except DatabaseError as exc:
        logger.exception("Failed to create service agreement %r", title)
        raise AgreementPersistenceError("create", None, exc) from exc

    logger.info("Created service agreement %s (%s)", agreement.pk, agreement.billing_cycle)
    return agreement


def update_agreement(agreement_id, fields: dict, store=None) -> ServiceAgreement:
    """
    Apply an ordinary edit to an agreement.

    The edited fields are merged over a fresh copy of the record and the
    whole record is revalidated before anything is written.

    Args:
        agreement_id: The agreement to edit
        fields: Field name -> new value (see EDITABLE_FIELDS)
        store: AgreementStore to use (defaults to the ORM store)

    Returns:
        The updated ServiceAgreement

    Raises:
        AgreementValidationError: On unknown fields or violated invariants
        AgreementNotFound: If the agreement does not exist
        AgreementPersistenceError: If the store fails
    """
    store = store or default_store

    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise AgreementValidationError(
            f"cannot edit field(s): {', '.join(sorted(unknown))}",
            field=sorted(unknown)[0],
        )

    agreement = store.get(agreement_id)
    merged = {name: getattr(agreement, name) for name in EDITABLE_FIELDS}
    merged.update(fields)
    cleaned = validate_agreement_fields(merged)

    business = cleaned.pop("business")
    changes = {
        name: value for name, value in cleaned.items()
        if getattr(agreement, name) != value
    }
    if "business" in fields:
        changes["business_content_type"] = ContentType.objects.get_for_model(business)
        changes["business_id"] = str(business.pk)

    if not changes:
        return agreement

    updated = store.update(agreement_id, changes)
    logger.info(
        "Updated service agreement %s: %s", agreement_id, ", ".join(sorted(changes))
    )
    return updated


def renew_agreement(
    agreement_id,
    renewal: RenewalInput,
    now,
    renewed_by=None,
    store=None,
) -> ServiceAgreement:
    """
    Renew an agreement into a new period.

    Replaces status, start_date, end_date, renewal_date and price with the
    validated input. Title, description, business, type, billing cycle and
    provenance are preserved. The agreement is re-read from the store, so
    repeating a renewal with the same input leaves the same final state.

    Args:
        agreement_id: The agreement to renew
        renewal: Confirmed renewal input (see suggest_renewal())
        now: The caller's current date, recorded on the history row
        renewed_by: User performing the renewal (optional)
        store: AgreementStore to use (defaults to the ORM store)

    Returns:
        The renewed ServiceAgreement

    Raises:
        AgreementValidationError: If the input violates an invariant
            (raised before any write)
        AgreementNotFound: If the agreement does not exist
        AgreementPersistenceError: If the store fails
    """
    store = store or default_store
    agreement = store.get(agreement_id)

    try:
        fields = validate_renewal(renewal, agreement.price, agreement.billing_cycle)
    except AgreementValidationError as exc:
        logger.warning("Rejected renewal of service agreement %s: %s", agreement_id, exc)
        raise

    if all(getattr(agreement, name) == value for name, value in fields.items()):
        logger.info("Service agreement %s already renewed with this input", agreement_id)
        return agreement

    def record_history(previous: ServiceAgreement):
        AgreementRenewal.objects.create(
            agreement=previous,
            previous_status=previous.status,
            previous_start_date=previous.start_date,
            previous_end_date=previous.end_date,
            previous_renewal_date=previous.renewal_date,
            previous_price=previous.price,
            new_status=fields["status"],
            new_start_date=fields["start_date"],
            new_end_date=fields["end_date"],
            new_renewal_date=fields["renewal_date"],
            new_price=fields["price"],
            renewed_on=as_date(now),
            renewed_by=renewed_by,
        )

    renewed = store.update(agreement_id, fields, on_locked=record_history)
    logger.info(
        "Renewed service agreement %s: %s from %s (%s)",
        agreement_id, renewed.status, renewed.start_date, renewed.price,
    )
    return renewed


def _clean_type_name(name: str, label: str) -> str:
    """Check name and label are present; return the normalized name."""
    if not (name or "").strip():
        raise AgreementValidationError("name required", field="name")
    if not (label or "").strip():
        raise AgreementValidationError("label required", field="label")

    normalized = normalize_type_name(name)
    if not normalized:
        raise AgreementValidationError(
            "name must contain at least one alphanumeric character", field="name"
        )
    return normalized


def _get_type_for_update(type_id) -> AgreementType:
    try:
        return AgreementType.objects.select_for_update().get(pk=type_id)
    except (AgreementType.DoesNotExist, ValueError, TypeError):
        raise AgreementTypeNotFound(type_id)


def create_agreement_type(
    name: str,
    label: str,
    description: str = "",
    is_active: bool = True,
) -> AgreementType:
    """
    Create a user-managed agreement type.

    The name is normalized to lowercase letters, digits and underscores.

    Raises:
        AgreementValidationError: If name or label is blank, or the name
            is already taken
    """
    normalized = _clean_type_name(name, label)

    with transaction.atomic():
        if AgreementType.objects.filter(name=normalized).exists():
            raise AgreementValidationError(
                "an agreement type with this name already exists", field="name"
            )
        return AgreementType.objects.create(
            name=normalized,
            label=label.strip(),
            description=description,
            is_active=is_active,
        )


def update_agreement_type(
    type_id,
    name: str,
    label: str,
    description: str = "",
    is_active: bool = True,
) -> AgreementType:
    """
    Edit an agreement type.

    A rename is carried over to every agreement stored with the old name,
    in the same transaction, so no agreement points at a missing type.

    Args:
        type_id: Primary key of the type
        name: New name (normalized like create_agreement_type())
        label: New label
        description: New description
        is_active: Whether the type is offered for new agreements

    Returns:
        The updated AgreementType

    Raises:
        AgreementValidationError: If name or label is blank, or another
            type already has the name
        AgreementTypeNotFound: If the type does not exist
    """
    normalized = _clean_type_name(name, label)

    with transaction.atomic():
        agreement_type = _get_type_for_update(type_id)
        old_name = agreement_type.name

        if AgreementType.objects.filter(name=normalized).exclude(pk=agreement_type.pk).exists():
            raise AgreementValidationError(
                "an agreement type with this name already exists", field="name"
            )

        agreement_type.name = normalized
        agreement_type.label = label.strip()
        agreement_type.description = description
        agreement_type.is_active = is_active
        agreement_type.save()

        if old_name != normalized:
            moved = ServiceAgreement.all_objects.filter(agreement_type=old_name).update(
                agreement_type=normalized
            )
            logger.info(
                "Renamed agreement type %r to %r on %s agreement(s)", old_name, normalized, moved
            )

    return agreement_type


def delete_agreement_type(type_id) -> None:
    """
    Delete an agreement type that no agreement uses.

    Raises:
        AgreementValidationError: If any agreement is stored with the type
        AgreementTypeNotFound: If the type does not exist
    """
    with transaction.atomic():
        agreement_type = _get_type_for_update(type_id)
        in_use = agreement_type.usage_count()
        if in_use:
            raise AgreementValidationError(
                f"agreement type is used by {in_use} agreement(s)", field="name"
            )
        agreement_type.delete()

    logger.info("Deleted agreement type %r", agreement_type.name)


def get_renewal_history(agreement: ServiceAgreement):
    """Renewal history rows for an agreement, newest first."""
    return agreement.renewals.all()
