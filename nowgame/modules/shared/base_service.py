"""
Base Service Foundation

Purpose
-------
Common base for the nowgame domain services (skills, points, tasks,
health, shop). Services hold the authoritative in-memory state of their
entities, enforce domain rules, persist through their repository and then
notify observers.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Event emission helpers
- Input validation raising domain `ValidationError`

What this class does NOT do:
- Talk to the storage driver (repositories do)
- Own the Wisdom aggregate (WisdomStore does)

Usage
-----
    class HealthService(BaseService):
        def __init__(self, repository, config_manager, event_bus, logger, clock):
            super().__init__(config_manager, event_bus, logger)
            self._repository = repository
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from nowgame.core.exceptions import ErrorSeverity, get_error_severity

if TYPE_CHECKING:
    from logging import Logger

    from nowgame.core.config.manager import ConfigManager
    from nowgame.core.event.bus import EventBus


_SEVERITY_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Application configuration manager
        event_bus: Event bus for observers
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        from nowgame.core.exceptions import ConfigurationError

        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Publish an event to observers. Only call after the state was saved."""
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """Log a failure at the level its severity calls for."""
        level = _SEVERITY_LEVELS[get_error_severity(error)]
        self.log.log(
            level,
            f"Service error during {operation}: {str(error)}",
            exc_info=error if level >= logging.ERROR else None,
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    def validate_positive_int(self, value: int, name: str) -> None:
        """
        Validate that a value is a positive integer.

        Raises:
            ValidationError: If value is not positive
        """
        from .exceptions import ValidationError

        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(
                name, f"{name} must be a positive integer, got {value}"
            )

    def validate_non_negative_int(self, value: int, name: str) -> None:
        """
        Validate that a value is a non-negative integer.

        Raises:
            ValidationError: If value is negative
        """
        from .exceptions import ValidationError

        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                name, f"{name} must be a non-negative integer, got {value}"
            )

    def validate_range(
        self, value: int, name: str, min_val: int, max_val: int
    ) -> None:
        """
        Validate that a value is within a specified range (inclusive).

        Raises:
            ValidationError: If value is out of range
        """
        from .exceptions import ValidationError

        if not (min_val <= value <= max_val):
            raise ValidationError(
                name,
                f"{name} must be between {min_val} and {max_val}, got {value}",
            )

    def validate_name(self, value: str, name: str = "name") -> str:
        """Strip and return `value`; blank names are rejected."""
        from .exceptions import ValidationError

        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, f"{name} must not be blank")
        return value.strip()
