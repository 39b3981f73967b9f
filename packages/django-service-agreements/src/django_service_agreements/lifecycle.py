"""Date-derived classification of service agreements.

Pure functions of (agreement, now). ``now`` is always passed in by the
caller; nothing here reads the clock, and nothing writes the stored
status. The stored status and the date-derived flags may disagree (an
agreement can be stored as active and still be expired by date).

Functions:
- classify(): Expired / pending renewal / active / canceled / next invoice
- renewal_warning(), invoice_warning(): Display thresholds
- can_renew(): Whether the renew action applies
- suggest_renewal(): Pre-filled renew form values
"""

from dataclasses import dataclass
from datetime import date

from .choices import AgreementStatus, BillingCycle
from .conf import get_setting
from .recurrence import (
    as_date,
    next_occurrence_on_or_after,
    projected_end_date,
    projected_renewal_date,
)
from .validation import RenewalInput

OVERDUE = "overdue"
SOON = "soon"


@dataclass(frozen=True)
class Classification:
    """Date-derived view of one agreement at one moment."""

    is_expired: bool
    is_pending_renewal: bool
    is_active: bool
    is_canceled: bool
    next_invoice_date: date | None


def is_expired(agreement, now) -> bool:
    return agreement.end_date is not None and as_date(now) > agreement.end_date


def is_pending_renewal(agreement, now) -> bool:
    return agreement.renewal_date is not None and as_date(now) >= agreement.renewal_date


def is_active(agreement) -> bool:
    return agreement.status == AgreementStatus.ACTIVE


def is_canceled(agreement) -> bool:
    return agreement.status == AgreementStatus.CANCELED


def next_invoice_date(agreement, now) -> date | None:
    """
    Next billing date strictly after now.

    None unless the agreement is stored as active and is neither expired
    by date nor canceled. One-time agreements are never invoiced again.
    """
    if not is_active(agreement) or is_expired(agreement, now) or is_canceled(agreement):
        return None
    if agreement.billing_cycle == BillingCycle.ONE_TIME:
        return None
    return next_occurrence_on_or_after(
        agreement.start_date, agreement.billing_cycle, as_date(now)
    )


def classify(agreement, now) -> Classification:
    """Classification query for list and detail screens."""
    return Classification(
        is_expired=is_expired(agreement, now),
        is_pending_renewal=is_pending_renewal(agreement, now),
        is_active=is_active(agreement),
        is_canceled=is_canceled(agreement),
        next_invoice_date=next_invoice_date(agreement, now),
    )


def days_until(target: date, now) -> int:
    """Whole days between now and target, regardless of direction."""
    return abs((target - as_date(now)).days)


def renewal_warning(agreement, now) -> str | None:
    """
    "overdue" if the renewal date has passed, "soon" if it is in the
    future and within the renewal warning window, else None.
    """
    renewal_date = agreement.renewal_date
    if renewal_date is None:
        return None
    today = as_date(now)
    if renewal_date < today:
        return OVERDUE
    if renewal_date > today and days_until(renewal_date, today) <= get_setting("RENEWAL_WARNING_DAYS"):
        return SOON
    return None


def invoice_warning(agreement, now) -> str | None:
    """
    "overdue" if the next invoice date has passed, "soon" if it falls
    within the invoice warning window, else None.
    """
    invoice_date = next_invoice_date(agreement, now)
    if invoice_date is None:
        return None
    today = as_date(now)
    if invoice_date < today:
        return OVERDUE
    if days_until(invoice_date, today) <= get_setting("INVOICE_WARNING_DAYS"):
        return SOON
    return None


def can_renew(agreement, now) -> bool:
    """Renewal is offered once the renewal date arrives or the period ends."""
    return is_pending_renewal(agreement, now) or is_expired(agreement, now)


def suggest_renewal(agreement, now) -> RenewalInput:
    """
    Default renew form values: a new period starting now at the current price.

    These are suggestions for display; renew_agreement() validates
    whatever the user finally submits.
    """
    start_date = as_date(now)
    return RenewalInput(
        new_status=AgreementStatus.ACTIVE,
        new_start_date=start_date,
        new_end_date=projected_end_date(start_date, agreement.billing_cycle),
        new_renewal_date=projected_renewal_date(start_date, agreement.billing_cycle),
        new_price=agreement.price,
    )
