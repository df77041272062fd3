"""
Helpdesk service errors.

Each error carries its HTTP status and a stable ``error_code`` so the
exception handler in ``main`` can render an ``ErrorResponse`` directly.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class HelpdeskError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailedError(HelpdeskError):
    """Request data is missing or refers to records that do not exist."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"

    @classmethod
    def for_field(cls, field: str, message: str) -> ValidationFailedError:
        return cls(message, details={"fields": {field: [message]}})


class InvalidTransitionError(HelpdeskError):
    """The ticket's current status does not allow the requested one."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "invalid_transition"

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot change ticket status from {current} to {requested}",
            details={"current_status": current, "requested_status": requested},
        )


class NotFoundError(HelpdeskError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(f"{resource} {identifier} not found", details={"resource": resource, "id": str(identifier)})


class AccessDeniedError(HelpdeskError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"


class ConcurrencyConflictError(HelpdeskError):
    """The stored ticket changed since it was read."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"


class DuplicateTicketNumberError(HelpdeskError):
    """A ticket with the same number already exists."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"

    def __init__(self, number: str) -> None:
        super().__init__(f"Ticket number {number} already exists", details={"number": number})
        self.number = number


class DuplicateEmailError(HelpdeskError):
    """Another account already uses the email address."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"

    def __init__(self, email: str) -> None:
        super().__init__(f"Email {email} is already registered", details={"email": email})
        self.email = email
