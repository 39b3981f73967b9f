"""Invariant checks for agreement periods and renewal input.

Validation is fail-fast: the first violated rule raises
AgreementValidationError and nothing is written.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from .choices import AgreementStatus, BillingCycle, RENEWABLE_STATUSES
from .exceptions import AgreementValidationError
from .recurrence import as_date


@dataclass(frozen=True)
class RenewalInput:
    """Values a user confirms on the renew form."""

    new_status: str
    new_start_date: date | None
    new_end_date: date | None = None
    new_renewal_date: date | None = None
    new_price: Decimal | None = None


def coerce_date(value, field: str) -> date | None:
    """Accept a date, a datetime or an ISO string; blank means absent."""
    if value in (None, ""):
        return None
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise AgreementValidationError(f"invalid date: {value}", field=field)
    return as_date(value)


def coerce_price(value) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise AgreementValidationError("price must be a number", field="price")


def validate_period(start_date, end_date, renewal_date, price) -> None:
    """
    Check the period invariants shared by create, update and renew.

    Raises:
        AgreementValidationError: On the first violated rule
    """
    if start_date is None:
        raise AgreementValidationError("start date required", field="start_date")
    if end_date is not None and end_date < start_date:
        raise AgreementValidationError("end before start", field="end_date")
    if renewal_date is not None and renewal_date < start_date:
        raise AgreementValidationError("renewal before start", field="renewal_date")
    if price is None or price <= 0:
        raise AgreementValidationError("price must be positive", field="price")


def validate_renewal(renewal: RenewalInput, current_price, billing_cycle) -> dict:
    """
    Validate renewal input against the agreement being renewed.

    An omitted or zero price keeps the current price. A negative price is
    rejected. One-time agreements never carry a renewal date.

    Args:
        renewal: The confirmed renewal input
        current_price: Price of the current period
        billing_cycle: Cycle of the agreement (unchanged by renewal)

    Returns:
        Dict of the five fields a renewal replaces

    Raises:
        AgreementValidationError: On the first violated rule
    """
    if renewal.new_status not in RENEWABLE_STATUSES:
        raise AgreementValidationError(
            "status must be active or pending", field="status"
        )

    start_date = coerce_date(renewal.new_start_date, "start_date")
    end_date = coerce_date(renewal.new_end_date, "end_date")
    renewal_date = coerce_date(renewal.new_renewal_date, "renewal_date")
    price = coerce_price(renewal.new_price)
    if price is None or price == 0:
        price = current_price

    validate_period(start_date, end_date, renewal_date, price)

    if billing_cycle == BillingCycle.ONE_TIME:
        renewal_date = None

    return {
        "status": renewal.new_status,
        "start_date": start_date,
        "end_date": end_date,
        "renewal_date": renewal_date,
        "price": price,
    }


def validate_agreement_fields(fields: dict) -> dict:
    """
    Validate a full set of agreement fields for create or update.

    Mirrors the add/edit form rules: title, start date and a saved
    business are required, status and cycle must be known choices, and the period
    invariants hold.

    Returns:
        The fields with dates and price coerced, and the renewal date
        cleared for one-time agreements
    """
    cleaned = dict(fields)

    if not (cleaned.get("title") or "").strip():
        raise AgreementValidationError("title required", field="title")

    cleaned["start_date"] = coerce_date(cleaned.get("start_date"), "start_date")
    cleaned["end_date"] = coerce_date(cleaned.get("end_date"), "end_date")
    cleaned["renewal_date"] = coerce_date(cleaned.get("renewal_date"), "renewal_date")
    cleaned["price"] = coerce_price(cleaned.get("price"))

    if cleaned["start_date"] is None:
        raise AgreementValidationError("start date required", field="start_date")
    business = cleaned.get("business")
    if business is None or business.pk is None:
        raise AgreementValidationError("business required", field="business")
    if cleaned.get("status") not in AgreementStatus.values:
        raise AgreementValidationError("invalid status", field="status")
    if cleaned.get("billing_cycle") not in BillingCycle.values:
        raise AgreementValidationError("invalid billing cycle", field="billing_cycle")

    validate_period(
        cleaned["start_date"],
        cleaned["end_date"],
        cleaned["renewal_date"],
        cleaned["price"],
    )

    if cleaned["billing_cycle"] == BillingCycle.ONE_TIME:
        cleaned["renewal_date"] = None

    return cleaned
