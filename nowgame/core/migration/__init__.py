"""Schema migrations run once at startup, before any repository is used."""

from nowgame.core.migration.engine import (
    SCHEMA_VERSION_KEY,
    MigrationEngine,
    MigrationStep,
)
from nowgame.core.migration.steps import APP_SCHEMA_VERSION, build_migration_steps

__all__ = [
    "SCHEMA_VERSION_KEY",
    "MigrationEngine",
    "MigrationStep",
    "APP_SCHEMA_VERSION",
    "build_migration_steps",
]
