"""
Infrastructure exceptions for nowgame.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
storage driver failures, configuration errors, and schema migration failures.
These are engineering problems, not player-facing rule violations (those live
in `nowgame.modules.shared.exceptions`).

Design Notes
------------
- All infrastructure exceptions inherit from `NowgameInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Helper functions (`get_error_severity`, `should_alert`) pick log levels for
  both exception hierarchies.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning
    INFO = "info"  # Normal operation (e.g., validation failures)
    WARNING = "warning"  # Concerning but handled (e.g., retryable errors)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # Startup-blocking failures


class NowgameInfrastructureException(Exception):
    """
    Base exception for all nowgame infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise NowgameInfrastructureException(
        ...     "Storage unavailable",
        ...     {"backend": "sql"}
        ... )
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


class ConfigurationError(NowgameInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        error_message = f"Configuration error for {config_key}: {message}"
        super().__init__(
            error_message,
            details={
                "config_key": config_key,
                "message": message,
            },
            error_code="CONFIG_ERROR",
        )


class StorageError(NowgameInfrastructureException):
    """
    Raised when a storage driver operation fails.

    Covers both the SQL and Redis backends. Many backend failures are
    transient (locked database, dropped connection), so the error is marked
    retryable.

    Args:
        operation: Driver operation that failed (e.g. "set_string")
        key: Storage key involved, if any
        original_error: The underlying backend exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        key: Optional[str],
        original_error: Exception,
    ) -> None:
        self.operation = operation
        self.key = key
        self.original_error = original_error
        target = f" for key '{key}'" if key is not None else ""
        message = f"Storage error during {operation}{target}: {original_error}"
        super().__init__(
            message,
            details={
                "operation": operation,
                "key": key,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="STORAGE_ERROR",
            is_retryable=True,
        )


class StorageNotInitializedError(NowgameInfrastructureException):
    """Raised when a storage driver is used before `init()` completed."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, driver_name: str) -> None:
        self.driver_name = driver_name
        super().__init__(
            f"{driver_name} used before init()",
            details={"driver": driver_name},
            error_code="STORAGE_NOT_INITIALIZED",
        )


class MigrationError(NowgameInfrastructureException):
    """
    Raised when a schema migration step fails.

    The stored schema version stays at the last step that completed, so a
    later run resumes from there. The application must not start on top of
    a partially migrated store.

    Args:
        to_version: Version the failing step was migrating to
        completed_version: Last version successfully reached
        original_error: The exception raised by the step
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        to_version: int,
        completed_version: int,
        original_error: Exception,
    ) -> None:
        self.to_version = to_version
        self.completed_version = completed_version
        self.original_error = original_error
        message = (
            f"Migration to v{to_version} failed "
            f"(store remains at v{completed_version}): {original_error}"
        )
        super().__init__(
            message,
            details={
                "to_version": to_version,
                "completed_version": completed_version,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="MIGRATION_FAILED",
        )


# Utility functions for exception handling patterns


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """
    Severity of an exception for logging.

    Covers both the infrastructure and the domain hierarchies; anything else
    is ERROR.
    """
    severity = getattr(exc, "severity", None)
    if isinstance(severity, ErrorSeverity):
        return severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """Return True if severity is ERROR or CRITICAL."""
    severity = get_error_severity(exc)
    return severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
