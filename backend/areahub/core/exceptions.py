"""Application error taxonomy.

Every failure raised by the link and execution services is an ``AppError``
carrying an ``ErrorKind`` discriminant. Callers branch on ``error.kind``
rather than on the concrete exception class, and the HTTP layer maps each
kind onto a status code.

Messages attached to these errors are safe to return to clients: they never
contain tokens, authorization codes or client secrets.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminant for application errors."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PROVIDER_ERROR = "provider_error"
    VALIDATION = "validation"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


# =============================================================================
# Base error
# =============================================================================


class AppError(Exception):
    """Base class for all application errors.

    Attributes:
        kind: Error discriminant.
        message: Client-safe description of the failure.
        details: Optional non-secret structured details.
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses."""
        payload: dict[str, Any] = {"error": self.kind.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# =============================================================================
# Concrete kinds
# =============================================================================


class NotFoundError(AppError):
    """A Service, User, link or execution record does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    """The request conflicts with current state.

    Raised for duplicate links, services that do not require authentication,
    and link requests that need an authorization code but carry none.
    """

    kind = ErrorKind.CONFLICT


class ProviderError(AppError):
    """An OAuth2 provider call failed or the provider is unconfigured.

    Attributes:
        provider: Provider name (e.g. "google").
        status_code: HTTP status returned by the provider, if any.
    """

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        details: dict[str, Any] = {}
        if provider is not None:
            details["provider"] = provider
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)


class InvalidInputError(AppError):
    """Malformed input that passed schema validation but is still unusable."""

    kind = ErrorKind.VALIDATION


__all__ = [
    "AppError",
    "ConflictError",
    "ErrorKind",
    "InvalidInputError",
    "NotFoundError",
    "ProviderError",
]
