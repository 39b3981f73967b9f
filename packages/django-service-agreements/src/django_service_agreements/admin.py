"""Django admin configuration for service agreements."""

from django import forms
from django.contrib import admin
from django.utils import timezone

from . import lifecycle, services
from .formatting import format_price_per_cycle
from .models import (
    AgreementDisplaySettings,
    AgreementRenewal,
    AgreementType,
    ServiceAgreement,
    normalize_type_name,
)


class AgreementRenewalInline(admin.TabularInline):
    """Inline for viewing renewal history."""

    model = AgreementRenewal
    extra = 0
    fields = [
        'renewed_on',
        'previous_start_date',
        'previous_price',
        'new_status',
        'new_start_date',
        'new_end_date',
        'new_price',
        'renewed_by',
    ]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ServiceAgreement)
class ServiceAgreementAdmin(admin.ModelAdmin):
    """Admin for ServiceAgreement model.

    Date-derived columns use today's local date, read once per row.
    Edits made here bypass the service layer; use it for inspection.
    """

    list_display = [
        'title',
        'status',
        'get_business',
        'start_date',
        'end_date',
        'renewal_date',
        'get_price',
        'is_expired',
        'is_pending_renewal',
        'next_invoice_date',
    ]
    list_filter = ['status', 'billing_cycle', 'agreement_type']
    search_fields = ['title', 'description']
    readonly_fields = ['created_by', 'created_at', 'updated_at']
    inlines = [AgreementRenewalInline]

    def get_business(self, obj):
        """Display the business."""
        return str(obj.business) if obj.business else '-'
    get_business.short_description = 'Business'

    def get_price(self, obj):
        return format_price_per_cycle(obj.price, obj.billing_cycle)
    get_price.short_description = 'Price'

    def is_expired(self, obj):
        return lifecycle.is_expired(obj, timezone.localdate())
    is_expired.boolean = True
    is_expired.short_description = 'Expired'

    def is_pending_renewal(self, obj):
        return lifecycle.is_pending_renewal(obj, timezone.localdate())
    is_pending_renewal.boolean = True
    is_pending_renewal.short_description = 'Renewal due'

    def next_invoice_date(self, obj):
        return lifecycle.next_invoice_date(obj, timezone.localdate()) or '-'
    next_invoice_date.short_description = 'Next invoice'


@admin.register(AgreementRenewal)
class AgreementRenewalAdmin(admin.ModelAdmin):
    """Admin for AgreementRenewal model (read-only)."""

    list_display = ['agreement', 'renewed_on', 'new_start_date', 'new_price', 'renewed_by']
    list_filter = ['renewed_on']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class AgreementTypeForm(forms.ModelForm):
    """Normalizes the name before the uniqueness check."""

    class Meta:
        model = AgreementType
        fields = ['name', 'label', 'description', 'is_active']

    def clean_name(self):
        name = normalize_type_name(self.cleaned_data.get('name'))
        if not name:
            raise forms.ValidationError("Name must contain at least one alphanumeric character.")
        return name


@admin.register(AgreementType)
class AgreementTypeAdmin(admin.ModelAdmin):
    """Admin for AgreementType model.

    Saves and deletes go through the service layer so renames reach the
    agreements using the type and types in use cannot be deleted.
    """

    form = AgreementTypeForm
    list_display = ['label', 'name', 'is_active', 'get_usage']
    list_filter = ['is_active']
    search_fields = ['name', 'label']

    def get_usage(self, obj):
        return obj.usage_count()
    get_usage.short_description = 'Agreements'

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop('delete_selected', None)
        return actions

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.usage_count():
            return False
        return super().has_delete_permission(request, obj)

    def save_model(self, request, obj, form, change):
        fields = {
            'name': obj.name,
            'label': obj.label,
            'description': obj.description,
            'is_active': obj.is_active,
        }
        if change:
            saved = services.update_agreement_type(obj.pk, **fields)
        else:
            saved = services.create_agreement_type(**fields)
        obj.pk = saved.pk

    def delete_model(self, request, obj):
        services.delete_agreement_type(obj.pk)


@admin.register(AgreementDisplaySettings)
class AgreementDisplaySettingsAdmin(admin.ModelAdmin):
    """Single-row settings: no add once it exists, never delete."""

    def has_add_permission(self, request):
        return not AgreementDisplaySettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
