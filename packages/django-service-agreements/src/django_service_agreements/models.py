"""Service agreement models.

ServiceAgreement is the persisted record of a recurring (or one-time)
service sold to a business. Its status is stored as entered; date-derived
flags (expired, pending renewal) are computed by the lifecycle module
and never written back.

Write through services only:
- create_agreement()
- update_agreement()
- renew_agreement()
"""

import os
import re

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import IntegrityError, models, transaction
from django.db.models import F, Q

from .choices import AgreementStatus, BillingCycle
from .exceptions import ImmutableRenewalError, SingletonDeletionError


def normalize_type_name(name: str) -> str:
    """Reduce a type name to lowercase letters, digits and underscores."""
    return re.sub(r"[^a-z0-9_]", "", (name or "").lower())


class AgreementType(models.Model):
    """
    User-managed label for a kind of agreement (support plan, hosting, ...).

    Informational only: no engine behavior depends on the type.
    """

    name = models.CharField(
        max_length=50,
        unique=True,
        help_text="Identifier stored on agreements (a-z, 0-9, _)",
    )
    label = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        app_label = "django_service_agreements"
        ordering = ["label"]

    def __str__(self):
        return self.label

    @classmethod
    def label_for(cls, name: str) -> str:
        """Label for a type name, or a humanized name if no type exists."""
        if not name:
            return ""
        agreement_type = cls.objects.filter(name=name).first()
        if agreement_type is not None:
            return agreement_type.label
        return name.replace("_", " ").capitalize()

    def usage_count(self) -> int:
        """Agreements (soft-deleted included) stored with this type name."""
        return ServiceAgreement.all_objects.filter(agreement_type=self.name).count()


class ServiceAgreementQuerySet(models.QuerySet):
    """Custom queryset for ServiceAgreement model."""

    def for_business(self, business):
        """Return agreements held by the given business."""
        content_type = ContentType.objects.get_for_model(business)
        return self.filter(
            business_content_type=content_type,
            business_id=str(business.pk),
        )

    def with_status(self, status):
        return self.filter(status=status)

    def ended_before(self, day):
        """Agreements whose end date lies before the given day."""
        return self.filter(end_date__isnull=False, end_date__lt=day)

    def renewal_due_by(self, day):
        """Agreements whose renewal date is on or before the given day."""
        return self.filter(renewal_date__isnull=False, renewal_date__lte=day)


class ServiceAgreementManager(models.Manager):
    """Manager excluding soft-deleted agreements."""

    def get_queryset(self):
        return ServiceAgreementQuerySet(self.model, using=self._db).filter(
            deleted_at__isnull=True
        )

    def for_business(self, business):
        return self.get_queryset().for_business(business)


class ServiceAgreement(models.Model):
    """
    A service agreement between the company and a business.

    Fields:
    - business: The customer business (GenericFK, owned elsewhere)
    - status: Stored status, may disagree with date-derived flags
    - agreement_type: Name of an AgreementType (informational)
    - start_date / end_date / renewal_date: Current period
    - price, billing_cycle: What is charged and how often

    Write through services only:
        from django_service_agreements.services import renew_agreement

    Query examples:
        ServiceAgreement.objects.for_business(acme)
        ServiceAgreement.objects.get_queryset().renewal_due_by(today)
    """

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")

    # Business - GenericFK with CharField for UUID support
    business_content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        related_name="+",
        help_text="Content type of the business",
    )
    business_id = models.CharField(
        max_length=255,
        help_text="ID of the business (CharField for UUID support)",
    )
    business = GenericForeignKey("business_content_type", "business_id")

    status = models.CharField(
        max_length=20,
        choices=AgreementStatus.choices,
        default=AgreementStatus.ACTIVE,
    )
    agreement_type = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Name of an AgreementType",
    )

    start_date = models.DateField(help_text="First day of the current period")
    end_date = models.DateField(
        null=True,
        blank=True,
        help_text="Last day of the current period (null = ongoing)",
    )
    renewal_date = models.DateField(
        null=True,
        blank=True,
        help_text="When the agreement should be reviewed for renewal",
    )

    price = models.DecimalField(max_digits=12, decimal_places=2)
    billing_cycle = models.CharField(
        max_length=20,
        choices=BillingCycle.choices,
        default=BillingCycle.MONTHLY,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="service_agreements_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ServiceAgreementManager()
    all_objects = models.Manager()

    class Meta:
        app_label = "django_service_agreements"
        indexes = [
            models.Index(fields=["business_content_type", "business_id"]),
            models.Index(fields=["status"]),
            models.Index(fields=["renewal_date"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(price__gt=0),
                name="service_agreements_price_positive",
            ),
            models.CheckConstraint(
                condition=Q(end_date__isnull=True) | Q(end_date__gte=F("start_date")),
                name="service_agreements_end_not_before_start",
            ),
            models.CheckConstraint(
                condition=Q(renewal_date__isnull=True) | Q(renewal_date__gte=F("start_date")),
                name="service_agreements_renewal_not_before_start",
            ),
        ]
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        """Ensure the GenericFK id is a string."""
        if self.business_id is not None:
            self.business_id = str(self.business_id)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.title} ({self.get_status_display()})"

    @property
    def type_label(self) -> str:
        return AgreementType.label_for(self.agreement_type)


class AgreementRenewal(models.Model):
    """
    Immutable history of renewals.

    One row per successful renewal, written in the same transaction as
    the agreement update. Never modified after creation.
    """

    agreement = models.ForeignKey(
        ServiceAgreement,
        on_delete=models.CASCADE,
        related_name="renewals",
    )

    previous_status = models.CharField(max_length=20, choices=AgreementStatus.choices)
    previous_start_date = models.DateField()
    previous_end_date = models.DateField(null=True, blank=True)
    previous_renewal_date = models.DateField(null=True, blank=True)
    previous_price = models.DecimalField(max_digits=12, decimal_places=2)

    new_status = models.CharField(max_length=20, choices=AgreementStatus.choices)
    new_start_date = models.DateField()
    new_end_date = models.DateField(null=True, blank=True)
    new_renewal_date = models.DateField(null=True, blank=True)
    new_price = models.DecimalField(max_digits=12, decimal_places=2)

    renewed_on = models.DateField(help_text="Business date the renewal was made")
    renewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "django_service_agreements"
        ordering = ["-created_at", "-pk"]

    def save(self, *args, **kwargs):
        """Enforce immutability - renewals are ledger records."""
        if not self._state.adding:
            raise ImmutableRenewalError(self.pk)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Agreement {self.agreement_id} renewed {self.renewed_on}"


class AgreementDisplaySettings(models.Model):
    """
    Currency and date display settings (singleton, pk=1).

    Blank fields fall back to environment variables, then to defaults:

        display = AgreementDisplaySettings.get_instance()
        display.get_with_fallback("currency_symbol")  # "NOK"
    """

    CURRENCY_POSITIONS = [("before", "Before amount"), ("after", "After amount")]
    DATE_FORMATS = [
        ("d.m.Y", "31.12.2024"),
        ("d/m/Y", "31/12/2024"),
        ("m/d/Y", "12/31/2024"),
        ("Y-m-d", "2024-12-31"),
    ]

    currency_symbol = models.CharField(max_length=10, blank=True)
    currency_position = models.CharField(max_length=10, blank=True, choices=CURRENCY_POSITIONS)
    decimal_separator = models.CharField(max_length=1, blank=True)
    thousands_separator = models.CharField(max_length=1, blank=True)
    date_format = models.CharField(max_length=10, blank=True, choices=DATE_FORMATS)

    ENV_FALLBACKS = {
        "currency_symbol": "AGREEMENTS_CURRENCY_SYMBOL",
        "currency_position": "AGREEMENTS_CURRENCY_POSITION",
        "decimal_separator": "AGREEMENTS_DECIMAL_SEPARATOR",
        "thousands_separator": "AGREEMENTS_THOUSANDS_SEPARATOR",
        "date_format": "AGREEMENTS_DATE_FORMAT",
    }

    DEFAULTS = {
        "currency_symbol": "NOK",
        "currency_position": "after",
        "decimal_separator": ",",
        "thousands_separator": " ",
        "date_format": "d.m.Y",
    }

    class Meta:
        app_label = "django_service_agreements"
        verbose_name = "display settings"
        verbose_name_plural = "display settings"

    def __str__(self):
        return "Agreement display settings"

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise SingletonDeletionError("Cannot delete agreement display settings")

    @classmethod
    def get_instance(cls):
        """Get or create the settings row, tolerating a concurrent create."""
        try:
            with transaction.atomic():
                obj, _ = cls.objects.get_or_create(pk=1)
                return obj
        except IntegrityError:
            return cls.objects.get(pk=1)

    def get_with_fallback(self, field_name: str):
        """Database value if set, else environment variable, else default."""
        db_value = getattr(self, field_name, None)
        if db_value not in (None, ""):
            return db_value

        env_var = self.ENV_FALLBACKS.get(field_name)
        if env_var:
            env_value = os.environ.get(env_var, "")
            if env_value:
                return env_value

        return self.DEFAULTS.get(field_name, "")
