"""
Core infrastructure layer for nowgame.

Purpose
-------
Infrastructure subsystems the domain modules build on:

- Configuration (Config, ConfigManager)
- Structured logging
- EventBus for observers
- Storage drivers (memory, SQL, Redis)
- Schema migrations
- Application context (bootstrap and dependency injection)
- Infrastructure exceptions

Import from the submodules directly; this package re-exports only the
exception hierarchy, so importing it has no side effects.
"""

from nowgame.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    MigrationError,
    NowgameInfrastructureException,
    StorageError,
    StorageNotInitializedError,
)

__all__ = [
    "ConfigurationError",
    "ErrorSeverity",
    "MigrationError",
    "NowgameInfrastructureException",
    "StorageError",
    "StorageNotInitializedError",
]
