"""Django Service Agreements - Billing-cycle and renewal engine.

Models:
    ServiceAgreement: Recurring or one-time service sold to a business
    AgreementRenewal: Immutable renewal history
    AgreementType: User-managed agreement labels
    AgreementDisplaySettings: Currency/date display settings (singleton)

Engine:
    classify: Date-derived flags and next invoice date
    project: Projected end/renewal dates and next occurrence
    renew_agreement: Validated renewal transition

Services (the only supported write path):
    create_agreement, update_agreement, renew_agreement,
    create_agreement_type, update_agreement_type, delete_agreement_type
"""

__version__ = "0.1.0"

__all__ = [
    # Models
    "ServiceAgreement",
    "AgreementRenewal",
    "AgreementType",
    "AgreementDisplaySettings",
    # Choices
    "AgreementStatus",
    "BillingCycle",
    # Engine
    "classify",
    "project",
    "suggest_renewal",
    "RenewalInput",
    # Services
    "create_agreement",
    "update_agreement",
    "renew_agreement",
    "create_agreement_type",
    "update_agreement_type",
    "delete_agreement_type",
    # Exceptions
    "ServiceAgreementError",
    "AgreementValidationError",
    "AgreementNotFound",
    "AgreementTypeNotFound",
    "AgreementPersistenceError",
]

_MODULES = {
    "ServiceAgreement": "models",
    "AgreementRenewal": "models",
    "AgreementType": "models",
    "AgreementDisplaySettings": "models",
    "AgreementStatus": "choices",
    "BillingCycle": "choices",
    "classify": "lifecycle",
    "suggest_renewal": "lifecycle",
    "project": "recurrence",
    "RenewalInput": "validation",
    "create_agreement": "services",
    "update_agreement": "services",
    "renew_agreement": "services",
    "create_agreement_type": "services",
    "update_agreement_type": "services",
    "delete_agreement_type": "services",
    "ServiceAgreementError": "exceptions",
    "AgreementValidationError": "exceptions",
    "AgreementNotFound": "exceptions",
    "AgreementTypeNotFound": "exceptions",
    "AgreementPersistenceError": "exceptions",
}


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in _MODULES:
        from importlib import import_module
        module = import_module(f".{_MODULES[name]}", __name__)
        return getattr(module, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
