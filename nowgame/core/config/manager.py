"""
ConfigManager: dynamic, YAML-backed gameplay tunables for nowgame.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable values
  (e.g. `"shop.gacha_cost"`, `"health.reset_hour"`).
- Back configuration with YAML defaults from the `config/` directory.
- Allow in-process overrides without touching the files on disk.

Responsibilities
----------------
- Load and deep-merge every YAML file under the configured directory.
- Serve reads from an in-memory cache, falling back to the caller's default.
- Accept runtime overrides (`set`) layered on top of the YAML defaults.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides live in memory only.
- Every caller passes its own fallback default, so a missing file never
  breaks a service: the code default is the last resort.
- Instance-based so tests and the application context can each own one.

Dependencies
------------
- PyYAML (`yaml.safe_load`)
- `nowgame.core.config.config.Config` for the default directory
- `nowgame.core.logging.logger.get_logger`
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml

from nowgame.core.config.config import Config
from nowgame.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConfigManager:
    """
    Dynamic configuration with YAML defaults and in-memory overrides.

    Examples
    --------
    >>> manager = ConfigManager()
    >>> await manager.initialize()
    >>> manager.get("shop.gacha_cost", 10)
    10
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._config_dir = Path(config_dir) if config_dir is not None else None
        self._defaults: Dict[str, Any] = copy.deepcopy(dict(defaults or {}))
        self._overrides: Dict[str, Any] = {}
        self._initialized = False

    # =========================================================================
    # YAML LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    def _load_yaml_configs(self) -> int:
        """
        Load every YAML file below the config directory into `_defaults`.

        Returns the number of files merged. A missing directory or a broken
        file is logged and skipped; code defaults still apply.
        """
        config_dir = self._config_dir or Config.CONFIG_DIR
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded_count = 0

        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": relative,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                continue

            if isinstance(data, dict):
                self._deep_merge_dict(self._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": relative})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": relative, "root_type": type(data).__name__},
                )

        return loaded_count

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> None:
        """Load YAML defaults. Idempotent."""
        if self._initialized:
            return

        loaded_count = self._load_yaml_configs()
        self._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "yaml_file_count": loaded_count,
                "top_level_keys": len(self._defaults),
            },
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # READS & OVERRIDES
    # =========================================================================

    @staticmethod
    def _traverse(tree: Mapping[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return _MISSING
            value = value[part]
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Overrides win over YAML defaults; `default` is returned when neither
        defines the key (or the stored value is None).
        """
        if key in self._overrides:
            return self._overrides[key]

        value = self._traverse(self._defaults, key)
        if value is _MISSING or value is None:
            return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Override a value for the lifetime of this manager."""
        self._overrides[key] = value
        logger.info(
            "Configuration override applied",
            extra={"config_key": key, "value": value},
        )

    def get_all_keys(self) -> List[str]:
        """Return top-level default keys plus every overridden dot key."""
        return sorted(set(self._defaults) | set(self._overrides))
