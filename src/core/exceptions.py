"""
Infrastructure exceptions for the Cortex catalog service.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
durable store failures, cache failures and upstream HTTP service failures.

Responsibilities
----------------
- Clear base class (`CortexInfrastructureException`) with structured metadata
- Severity levels for logging and alerting decisions
- Retry hints and error codes for programmatic handling

Non-Responsibilities
--------------------
- Catalog/business rule violations (see ``src.modules.shared.exceptions``)
- Translating errors into transport responses (routing layer)

Design Notes
------------
- Each exception carries ``message``, ``details``, ``severity``,
  ``is_retryable`` and ``error_code``.
- ``CacheError`` exists for logging/serialization only: the cache-aside
  store never lets cache failures escape to callers.
- ``UpstreamServiceError`` is caught at exactly one call site (the premium
  gate), where it degrades to "not premium".
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"  # Normal operation (e.g., validation failures)
    WARNING = "warning"  # Handled degradation (e.g., cache unavailable)
    ERROR = "error"
    CRITICAL = "critical"


class CortexInfrastructureException(Exception):
    """
    Base exception for all Cortex infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

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

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
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


class DatabaseError(CortexInfrastructureException):
    """
    Raised when durable store operations fail for reasons that are not
    a constraint violation (connection loss, timeouts, schema errors).

    Args:
        operation: Description of the database operation that failed
        original_error: The underlying database exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        message = f"Database error during {operation}: {str(original_error)}"
        super().__init__(
            message,
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
            is_retryable=True,
        )


class CacheError(CortexInfrastructureException):
    """
    Describes a failed cache operation.

    Args:
        operation: Cache operation that failed (read, write, invalidate...)
        cache_key: The cache key or pattern involved in the failure
        original_error: The underlying exception (if any)
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        cache_key: str,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        self.cache_key = cache_key
        self.original_error = original_error
        error_msg = str(original_error) if original_error else "Cache operation failed"
        message = f"Cache error during {operation} for key '{cache_key}': {error_msg}"
        super().__init__(
            message,
            details={
                "operation": operation,
                "cache_key": cache_key,
                "error": error_msg,
                "error_type": (
                    type(original_error).__name__ if original_error else None
                ),
            },
            error_code="CACHE_ERROR",
            is_retryable=True,
        )


class UpstreamServiceError(CortexInfrastructureException):
    """
    Raised when an external HTTP service is unreachable or misbehaves.

    Args:
        service: Logical name of the upstream service ("subscription", "auth")
        message: What went wrong
        status_code: Upstream HTTP status, ``None`` for transport failures
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        service: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(
            f"{service} service error: {message}",
            details={
                "service": service,
                "status_code": status_code,
            },
            error_code=f"{service.upper()}_UNAVAILABLE",
        )

