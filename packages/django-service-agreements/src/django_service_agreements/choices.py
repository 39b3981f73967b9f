"""Status and billing cycle choices for service agreements."""

from django.db import models


class AgreementStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    PENDING = "pending", "Pending"
    EXPIRED = "expired", "Expired"
    CANCELED = "canceled", "Canceled"
    PENDING_RENEWAL = "pending_renewal", "Pending Renewal"


class BillingCycle(models.TextChoices):
    MONTHLY = "monthly", "Monthly"
    QUARTERLY = "quarterly", "Quarterly"
    BIANNUALLY = "biannually", "Biannually"
    ANNUALLY = "annually", "Annually"
    ONE_TIME = "one-time", "One-time"


# Statuses a renewal may move an agreement into
RENEWABLE_STATUSES = (AgreementStatus.ACTIVE, AgreementStatus.PENDING)

# Calendar months per recurring cycle
CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.BIANNUALLY: 6,
    BillingCycle.ANNUALLY: 12,
}
