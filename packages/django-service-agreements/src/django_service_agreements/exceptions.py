"""Custom exceptions for django-service-agreements."""


class ServiceAgreementError(Exception):
    """Base exception for service agreement errors."""
    pass


class AgreementValidationError(ServiceAgreementError):
    """Raised when agreement or renewal input violates an invariant.

    Callers re-display the form with the message next to ``field``.
    """

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)


class AgreementNotFound(ServiceAgreementError):
    """Raised when no agreement exists for the given id."""

    def __init__(self, agreement_id):
        self.agreement_id = agreement_id
        super().__init__(f"Service agreement '{agreement_id}' does not exist")


class AgreementTypeNotFound(ServiceAgreementError):
    """Raised when no agreement type exists for the given id."""

    def __init__(self, type_id):
        self.type_id = type_id
        super().__init__(f"Agreement type '{type_id}' does not exist")


class AgreementPersistenceError(ServiceAgreementError):
    """Raised when the store fails to read or write an agreement."""

    def __init__(self, operation: str, agreement_id=None, cause: Exception | None = None):
        self.operation = operation
        self.agreement_id = agreement_id
        self.cause = cause
        super().__init__(
            f"Could not {operation} service agreement '{agreement_id}': {cause}"
        )


class ImmutableRenewalError(ServiceAgreementError):
    """Raised when attempting to modify a renewal history record."""

    def __init__(self, renewal_id):
        self.renewal_id = renewal_id
        super().__init__(
            f"Cannot modify renewal {renewal_id} - renewal records are immutable."
        )


class SingletonDeletionError(ServiceAgreementError):
    """Raised when attempting to delete the display settings row."""
    pass
