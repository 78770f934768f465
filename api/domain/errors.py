# SPDX-License-Identifier: Apache-2.0

"""
Domain exception hierarchy.

Every exception carries the HTTP status and error type used by the error
handler middleware, plus the reason code reported in bulk operation results.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError


class DomainException(Exception):
    """Base class for domain exceptions."""

    reason_code = "DomainError"

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(DomainException):
    """Malformed input, with per-field detail."""

    reason_code = "ValidationError"

    def __init__(self, message: str, validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []

    @classmethod
    def from_pydantic(cls, error: ValidationError, message: str = "Request validation failed") -> "ValidationException":
        """Build from a pydantic ValidationError, one entry per failing field."""
        details = []
        for item in error.errors():
            details.append({
                "field": ".".join(str(loc) for loc in item["loc"]),
                "message": item["msg"],
                "type": item["type"]
            })
        return cls(message, details)


class AuthenticationException(DomainException):
    """Caller identity missing or unreadable."""

    reason_code = "Unauthenticated"

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class ForbiddenException(DomainException):
    """Actor role cannot perform the requested operation."""

    reason_code = "Forbidden"

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(DomainException):
    """Issue, authority or user missing."""

    reason_code = "NotFound"

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class InvalidTransitionException(DomainException):
    """Requested status edge is not permitted from the current status."""

    reason_code = "InvalidTransition"

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            f"Invalid status transition from {current_status} to {target_status}",
            409,
            "invalid-transition"
        )
        self.current_status = current_status
        self.target_status = target_status


class ConflictException(DomainException):
    """Lost a race against a concurrent write; the caller may retry."""

    reason_code = "Conflict"

    def __init__(self, message: str):
        super().__init__(message, 409, "resource-conflict")


class DispatchFailure(Exception):
    """Notifier delivery failed. Logged and recorded, never surfaced to callers."""

    def __init__(self, event: str, issue_id: str, cause: BaseException):
        super().__init__(f"{event} dispatch failed for issue {issue_id}: {cause}")
        self.event = event
        self.issue_id = issue_id
        self.cause = cause
