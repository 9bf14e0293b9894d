"""
Domain exceptions for the invoice sync service.

This module defines domain-level exceptions that represent business rule violations
and normalized provider failures. These exceptions are independent of
infrastructure concerns.
"""

from enum import Enum
from typing import Any


class InvoiceSyncException(Exception):
    """
    Base exception for all invoice sync errors.

    All custom exceptions should inherit from this class to allow
    for consistent error handling and logging.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(InvoiceSyncException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class IntegrationNotFoundException(InvoiceSyncException):
    """Raised when an integration row does not exist."""

    def __init__(self, integration_id: str):
        super().__init__(
            f"Integration not found: {integration_id}",
            "INTEGRATION_NOT_FOUND",
            {"integration_id": integration_id},
        )


class ProviderErrorKind(str, Enum):
    """Normalized failure kinds produced at the provider adapter boundary"""

    RATE_LIMITED = "RATE_LIMITED"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN = "UNKNOWN"


class ProviderError(InvoiceSyncException):
    """
    A mail provider call failed.

    Adapters translate SDK and HTTP errors into this type so that the
    classifier never has to know about googleapiclient or httpx. The raw
    error (or provider payload) is kept for message extraction.
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        raw: Any = None,
    ):
        self.kind = kind
        self.status = status
        self.code = code
        self.raw = raw
        super().__init__(
            message,
            "PROVIDER_ERROR",
            {"kind": kind.value, "status": status, "code": code},
        )
