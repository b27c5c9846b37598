"""
Domain exceptions for the Cortex catalog service.

Purpose
-------
Define the typed failures that services and handlers raise for catalog
rule violations. The routing layer translates them into transport-level
responses using the ``http_status`` hint each one carries.

Taxonomy
--------
- ``ValidationError``: missing or malformed input, caller's fault, no retry.
- ``NotFoundError``: referenced entity absent.
- ``ConflictError``: duplicate unique field at the durable store.
- ``PremiumRequiredError``: authenticated but not entitled.
- ``AuthenticationError``: the auth service rejected the caller or could
  not be reached.

Cache failures never surface here; they are swallowed by the cache-aside
store.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from src.core.exceptions import ErrorSeverity


class CortexDomainException(Exception):
    """
    Base exception for all Cortex domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise CortexDomainException(
        ...     "Topic is locked",
        ...     {"topic_slug": "algebra"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False
    HTTP_STATUS: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return self.HTTP_STATUS

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "http_status": self.http_status,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ValidationError(CortexDomainException):
    """
    Raised when input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    HTTP_STATUS = 400

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={
                "field": field,
                "validation_message": message,
            },
            error_code=f"VALIDATION_{field.upper()}",
        )


class NotFoundError(CortexDomainException):
    """
    Raised when a requested catalog entity cannot be found.

    Args:
        resource_type: Type of resource (e.g., "Topic", "Question")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    HTTP_STATUS = 404

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={
                "resource_type": resource_type,
                "identifier": identifier,
            },
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ConflictError(CortexDomainException):
    """
    Raised when a write collides with an existing unique value.

    Args:
        resource_type: Type of resource that collided
        message: Description of the conflict
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    HTTP_STATUS = 409

    def __init__(self, resource_type: str, message: str) -> None:
        self.resource_type = resource_type
        super().__init__(
            f"{resource_type} conflict: {message}",
            details={"resource_type": resource_type, "reason": message},
            error_code="CONFLICT",
        )


class PremiumRequiredError(CortexDomainException):
    """Raised when a single requested item exists but the caller is not entitled."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    HTTP_STATUS = 403

    def __init__(self, message: str = "Premium subscription required") -> None:
        super().__init__(message, error_code="PREMIUM_REQUIRED")


class AuthenticationError(CortexDomainException):
    """
    Raised when a caller cannot be authenticated.

    Args:
        message: Reason reported to the caller
        status_code: 401 for missing/rejected credentials, 403 for inactive
            users, 503 when the auth service is unreachable, or the upstream
            status otherwise
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, message: str, status_code: int = 401) -> None:
        self.status_code = status_code
        super().__init__(
            message,
            details={"status_code": status_code},
            is_retryable=status_code >= 500,
            error_code="AUTHENTICATION_FAILED",
        )

    @property
    def http_status(self) -> int:
        return self.status_code
