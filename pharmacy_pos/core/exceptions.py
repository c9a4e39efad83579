"""
Custom exceptions for the application.
Centralized error taxonomy shared by services and the HTTP layer.

Every error carries the HTTP status it maps to and a stable machine code, so
controllers never translate exceptions by hand: the error handler registered
in ``main.create_app`` does it once.
"""

from typing import Any, Dict, Optional


class PharmacyError(Exception):
    """Base class for all business errors raised by the backend."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error_code}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(PharmacyError, ValueError):
    """Bad input shape or range. Never retried."""

    status_code = 422
    error_code = "validation_error"


class NotFoundError(PharmacyError):
    """A referenced entity does not exist."""

    status_code = 404
    error_code = "not_found"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier} not found"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


class InsufficientStockError(PharmacyError):
    """Requested quantity exceeds what the inventory row holds."""

    status_code = 409
    error_code = "insufficient_stock"

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock: requested {requested}, available {available}"
        )
        self.available = available
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"available": self.available, "requested": self.requested})
        return payload


class ConflictError(PharmacyError):
    """Concurrent writes kept colliding until the retry budget ran out."""

    status_code = 409
    error_code = "conflict"


class DuplicateError(PharmacyError):
    """A unique attribute (phone, email, drug/store pair) is already taken."""

    status_code = 409
    error_code = "duplicate"


class InvalidStateError(PharmacyError):
    """Illegal status transition."""

    status_code = 409
    error_code = "invalid_state"


class OperationTimeoutError(PharmacyError, TimeoutError):
    """The database did not answer in time. Safe to retry."""

    status_code = 503
    error_code = "timeout"


class AuthenticationError(PharmacyError):
    status_code = 401
    error_code = "authentication_failed"


class PermissionDeniedError(PharmacyError):
    status_code = 403
    error_code = "forbidden"
