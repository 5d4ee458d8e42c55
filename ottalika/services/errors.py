"""Workflow error taxonomy.

Every error carries a stable ``code`` and the HTTP status the API layer maps it to.
Precondition errors are raised before any write, so callers can retry safely.
"""

from typing import Any, Dict


class AppError(Exception):
    """Base application error."""

    code = "app_error"
    http_status = 400

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self, include_detail: bool = False) -> Dict[str, Any]:
        """Serialize into the standard failure envelope."""
        body: Dict[str, Any] = {
            "success": False,
            "code": self.code,
            "message": self.message,
        }
        if include_detail and self.detail:
            body["detail"] = self.detail
        return body


class ValidationError(AppError):
    """Missing or malformed input."""

    code = "validation_error"
    http_status = 422


class InsufficientAmount(ValidationError):
    """Submitted amount is below the contracted rent."""

    code = "insufficient_amount"
    http_status = 400


class MissingActor(AppError):
    """A mutating call was made without an actor identity."""

    code = "missing_actor"
    http_status = 401

    def __init__(self, message: str = "An authenticated actor is required"):
        super().__init__(message)


class NotFound(AppError):
    """Unknown apartment, building, payment or complaint."""

    code = "not_found"
    http_status = 404


class PreconditionFailed(AppError):
    """Entity is not in the state the requested transition requires."""

    code = "precondition_failed"
    http_status = 409


class DuplicatePayment(PreconditionFailed):
    code = "duplicate_payment"


class AlreadyVerified(PreconditionFailed):
    code = "already_verified"


class InvalidState(PreconditionFailed):
    code = "invalid_state"


class ManagerNotResolved(PreconditionFailed):
    code = "manager_not_resolved"


class AlreadyConfirmed(PreconditionFailed):
    code = "already_confirmed"


class NotDeletable(PreconditionFailed):
    code = "not_deletable"


class NoActiveRenter(PreconditionFailed):
    code = "no_active_renter"


class ConcurrentUpdate(PreconditionFailed):
    """Row changed between the read and the compare-and-set write."""

    code = "concurrent_update"


class StoreFailure(AppError):
    """Underlying persistence error; nothing from the operation was committed."""

    code = "store_failure"
    http_status = 500


__all__ = [
    "AppError",
    "ValidationError",
    "InsufficientAmount",
    "MissingActor",
    "NotFound",
    "PreconditionFailed",
    "DuplicatePayment",
    "AlreadyVerified",
    "InvalidState",
    "ManagerNotResolved",
    "AlreadyConfirmed",
    "NotDeletable",
    "NoActiveRenter",
    "ConcurrentUpdate",
    "StoreFailure",
]
