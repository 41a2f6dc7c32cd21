"""
Static configuration management for nowgame.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles non-dynamic configuration that is fixed at application startup:
which storage backend to use, where it lives, and how to log.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Create required directories (logs, data)
- Track configuration loading metrics

Non-Responsibilities
--------------------
- Gameplay tunables (handled by ConfigManager, YAML-backed)
- Storage access (handled by the storage drivers)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Values are loaded on module import via Config.load(); Config.validate()
  is called once by the entry point
- Metrics track which values came from environment vs defaults
- Directory paths relative to project root for portability

Dependencies
------------
- python-dotenv: Environment variable loading
- pathlib: Cross-platform path handling
- logging: Basic logging (bootstrap only)

Environment Variables
---------------------
- ENVIRONMENT: development | testing | staging | production (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON / LOG_COLORS: Console formatting overrides
- NOWGAME_LOGS_DIR / NOWGAME_DATA_DIR / NOWGAME_CONFIG_DIR: Directory overrides
- STORAGE_BACKEND: memory | sql | redis (default: sql)
- DATABASE_URL: SQLAlchemy async URL (default: SQLite file in the data dir)
- DATABASE_ECHO: Echo SQL statements (default: False)
- REDIS_URL: Redis connection string (default: localhost)
- REDIS_KEY_PREFIX: Namespace for every stored key (default: "nowgame:")
- REDIS_SOCKET_TIMEOUT: Socket timeout in seconds (default: 5)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# Enums and Constants
# ============================================================================

STORAGE_BACKENDS = ("memory", "sql", "redis")


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not configured yet at this point
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, value: Any, default: Any):
        """Record whether a config value came from environment."""
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        """Record a validation error."""
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        """Get configuration loading summary."""
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for nowgame.

    Usage
    -----
    >>> backend = Config.STORAGE_BACKEND
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    >>> logger.info("Config loaded", extra=Config.get_config_summary())
    """

    # =========================================================================
    # Internal State
    # =========================================================================

    _metrics: Optional[_ConfigLoadMetrics] = None
    _enable_metrics: bool = True
    _validated: bool = False

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    DATA_DIR = PROJECT_ROOT / "data"
    CONFIG_DIR = PROJECT_ROOT / "config"

    # =========================================================================
    # Storage Configuration
    # =========================================================================

    STORAGE_BACKEND: str = "sql"

    DATABASE_URL: str = ""
    DATABASE_ECHO: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PASSWORD: Optional[str] = None
    REDIS_KEY_PREFIX: str = "nowgame:"
    REDIS_SOCKET_TIMEOUT: int = 5

    # =========================================================================
    # App Metadata
    # =========================================================================

    APP_NAME: str = "nowgame"
    APP_VERSION: str = "1.0.0"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        """Initialize metrics tracking if enabled."""
        if cls._enable_metrics and cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Out-of-range and unparsable values fall back to `default` with a
        warning and a recorded validation error.

        Example
        -------
        >>> Config._safe_int("REDIS_SOCKET_TIMEOUT", 5, min_val=1, max_val=60)
        5
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        try:
            value = int(raw_value)
        except ValueError:
            error = f"{key}='{raw_value}' is not a valid integer, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if min_val is not None and value < min_val:
            error = f"{key}={value} is below minimum {min_val}, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if max_val is not None and value > max_val:
            error = f"{key}={value} exceeds maximum {max_val}, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)

        return value

    @classmethod
    def _parse_bool(cls, key: str, raw_value: str) -> Optional[bool]:
        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            return True
        if normalized in {"false", "no", "0", "off"}:
            return False

        error = f"{key}='{raw_value}' is not a valid boolean, ignoring"
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)
        return None

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        value = cls._parse_bool(key, raw_value)
        if value is None:
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_optional_bool(cls, key: str) -> Optional[bool]:
        """Parse an optional boolean; None when unset or invalid."""
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, None, None)
            return None

        value = cls._parse_bool(key, raw_value)
        if cls._metrics and value is not None:
            cls._metrics.record_env_load(key, True, value, None)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        """Safely get string from environment."""
        cls._init_metrics()

        value = os.getenv(key, default)
        from_env = key in os.environ

        if cls._metrics:
            cls._metrics.record_env_load(key, from_env, value, default)

        return value

    @classmethod
    def _safe_path(cls, key: str, default: Path) -> Path:
        raw_value = cls._safe_str(key, str(default))
        return Path(raw_value).expanduser().resolve()

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called on module import; can be called again (e.g. from tests after
        changing the environment) to re-read every value.
        """
        cls._init_metrics()

        # Environment Configuration
        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development")
        ).value
        cls.DEBUG = cls._safe_bool("DEBUG", False)
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_optional_bool("LOG_JSON")
        cls.LOG_COLORS = cls._safe_bool("LOG_COLORS", True)

        # Directories
        cls.LOGS_DIR = cls._safe_path("NOWGAME_LOGS_DIR", cls.PROJECT_ROOT / "logs")
        cls.DATA_DIR = cls._safe_path("NOWGAME_DATA_DIR", cls.PROJECT_ROOT / "data")
        cls.CONFIG_DIR = cls._safe_path(
            "NOWGAME_CONFIG_DIR", cls.PROJECT_ROOT / "config"
        )

        # Storage Configuration
        cls.STORAGE_BACKEND = cls._safe_str("STORAGE_BACKEND", "sql").lower().strip()
        cls.DATABASE_URL = cls._safe_str(
            "DATABASE_URL",
            f"sqlite+aiosqlite:///{cls.DATA_DIR / 'nowgame.db'}",
        )
        cls.DATABASE_ECHO = cls._safe_bool("DATABASE_ECHO", False)

        cls.REDIS_URL = cls._safe_str("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
        cls.REDIS_KEY_PREFIX = cls._safe_str("REDIS_KEY_PREFIX", "nowgame:")
        cls.REDIS_SOCKET_TIMEOUT = cls._safe_int(
            "REDIS_SOCKET_TIMEOUT", 5, min_val=1, max_val=60
        )

        if cls._metrics:
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Raises
        ------
        ConfigurationError:
            If the storage backend is unknown.
        """
        if cls._validated:
            return

        from nowgame.core.exceptions import ConfigurationError

        logger = logging.getLogger(__name__)
        cls.load()

        if cls.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise ConfigurationError(
                "STORAGE_BACKEND",
                f"must be one of {', '.join(STORAGE_BACKENDS)}, "
                f"got '{cls.STORAGE_BACKEND}'",
            )

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if cls.LOG_LEVEL.upper() not in valid_log_levels:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        cls.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        if cls.STORAGE_BACKEND == "sql" and cls.DATABASE_URL.startswith("sqlite"):
            cls.DATA_DIR.mkdir(parents=True, exist_ok=True)

        if cls.is_production() and cls.DEBUG:
            logger.warning("DEBUG mode enabled in production!")

        cls._validated = True

        if cls._metrics:
            summary = cls._metrics.get_summary()
            logger.info(f"Configuration loaded: {summary}")

            if cls._metrics.validation_errors:
                logger.warning(
                    f"Configuration warnings: {cls._metrics.validation_errors}"
                )

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_testing(cls) -> bool:
        """Check if running in testing environment."""
        return cls.ENVIRONMENT.lower() == "testing"

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        """Get configuration loading metrics."""
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Get non-sensitive configuration summary for debugging."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "storage_backend": cls.STORAGE_BACKEND,
            "database_url_scheme": cls.DATABASE_URL.split("://", 1)[0],
            "redis_key_prefix": cls.REDIS_KEY_PREFIX,
            "redis_password_set": bool(cls.REDIS_PASSWORD),
            "config_dir": str(cls.CONFIG_DIR),
            "app_version": cls.APP_VERSION,
        }


# Load on import; validation happens at startup
Config.load()
