"""
Error taxonomy for the care engine.

Validation failures block a call before anything is written. Store failures
are passed through untouched. Link inconsistencies are logged by the caller
of the store and never raised.
"""


class CareEngineError(Exception):
    """Base class for every error the engine raises."""


class ValidationError(CareEngineError, ValueError):
    """A submission broke a required-field or recurrence rule."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class NotAuthenticatedError(CareEngineError):
    """No caller identity was supplied for a mutating operation."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class StoreError(CareEngineError):
    """Opaque failure reported by the entity store."""


class LinkageInconsistency(CareEngineError):
    """A document-link write failed after its appointment write succeeded."""

    def __init__(self, appointment_id: str, cause: BaseException) -> None:
        super().__init__(f"Document links for appointment {appointment_id} not written: {cause}")
        self.appointment_id = appointment_id
        self.cause = cause
