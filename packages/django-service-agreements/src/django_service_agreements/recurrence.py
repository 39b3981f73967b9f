"""Billing cycle recurrence arithmetic.

Pure functions, no I/O and no clock reads. Every function takes the
reference date from its caller.

Month-end policy: adding months clamps to the last valid day of the
target month (dateutil.relativedelta semantics), so 2024-01-31 plus one
month is 2024-02-29. Occurrence series are chained: each occurrence is the
previous one plus one cycle, so a monthly series starting on Jan 31 runs
Feb 29, Mar 29, Apr 29, ... once a short month has clamped it.

Functions:
- add_cycle(): Advance a date by one billing period
- next_occurrence_on_or_after(): First occurrence strictly after a date
- projected_end_date(): End of a period starting on a date
- projected_renewal_date(): Renewal date for a period starting on a date
- project(): All three projections at once
"""

from dataclasses import dataclass
from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from .choices import BillingCycle, CYCLE_MONTHS

# Last day of the month that exists in every month
SAFE_DAY = 28


@dataclass(frozen=True)
class Projection:
    """Projected dates for a period starting on a given date."""

    projected_end_date: date | None
    projected_renewal_date: date | None
    next_occurrence: date | None


def as_date(value) -> date | None:
    """Reduce a datetime to its date; pass dates and None through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _cycle_months(billing_cycle) -> int:
    try:
        return CYCLE_MONTHS[billing_cycle]
    except KeyError:
        if billing_cycle == BillingCycle.ONE_TIME:
            raise ValueError("one-time agreements have no billing period")
        raise ValueError(f"Unknown billing cycle: {billing_cycle!r}")


def add_cycle(value: date, billing_cycle) -> date:
    """
    Advance a date by one billing period.

    Args:
        value: The date to advance
        billing_cycle: monthly, quarterly, biannually or annually

    Returns:
        The date one period later, clamped to the end of short months

    Raises:
        ValueError: For one-time or unknown cycles
    """
    return as_date(value) + relativedelta(months=_cycle_months(billing_cycle))


def next_occurrence_on_or_after(start_date: date, billing_cycle, reference_date: date) -> date | None:
    """
    Return the first occurrence of the series strictly after reference_date.

    The series is start_date, add_cycle(start_date), add_cycle of that, ...
    If start_date itself is after reference_date, start_date is returned.

    Args:
        start_date: First date of the series
        billing_cycle: Cycle of the series
        reference_date: The date the occurrence must be strictly after

    Returns:
        The occurrence date, or None for one-time agreements
    """
    if billing_cycle == BillingCycle.ONE_TIME:
        return None

    occurrence = as_date(start_date)
    reference_date = as_date(reference_date)
    step = _cycle_months(billing_cycle)

    # Days after the 28th can still be clamped, so walk them one cycle at a time.
    while occurrence <= reference_date and occurrence.day > SAFE_DAY:
        occurrence = add_cycle(occurrence, billing_cycle)
    if occurrence > reference_date:
        return occurrence

    # From here no step clamps, so n chained cycles equal one jump of n cycles.
    elapsed_months = (
        (reference_date.year - occurrence.year) * 12
        + reference_date.month - occurrence.month
    )
    periods = elapsed_months // step
    candidate = occurrence + relativedelta(months=periods * step)
    while candidate <= reference_date:
        periods += 1
        candidate = occurrence + relativedelta(months=periods * step)
    return candidate


def projected_end_date(start_date: date, billing_cycle) -> date:
    """End date of a period starting on start_date (one-time: zero length)."""
    if billing_cycle == BillingCycle.ONE_TIME:
        return as_date(start_date)
    return add_cycle(start_date, billing_cycle)


def projected_renewal_date(start_date: date, billing_cycle) -> date | None:
    """Renewal date of a period starting on start_date (one-time: none)."""
    if billing_cycle == BillingCycle.ONE_TIME:
        return None
    return projected_end_date(start_date, billing_cycle)


def project(start_date: date, billing_cycle, now: date) -> Projection:
    """Projection query used by screens that suggest period dates."""
    return Projection(
        projected_end_date=projected_end_date(start_date, billing_cycle),
        projected_renewal_date=projected_renewal_date(start_date, billing_cycle),
        next_occurrence=next_occurrence_on_or_after(start_date, billing_cycle, now),
    )
