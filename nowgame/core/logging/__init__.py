"""
Logging package for nowgame.

- JSON / colored console logging behind a bounded queue
- ContextVar-based contextual logging (`LogContext`)
- Setup and teardown helpers for the global logging system
"""

from nowgame.core.logging.logger import (
    LogContext,
    LoggerConfig,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "LoggerConfig",
]
