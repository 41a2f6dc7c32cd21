"""
Configuration package for nowgame.

- `Config`: static, environment-driven settings (storage backend, paths, logging)
- `ConfigManager` (in `nowgame.core.config.manager`): dynamic gameplay tunables
  backed by YAML defaults. Not re-exported here because it depends on the
  logging package, which itself reads `Config`.
"""

from nowgame.core.config.config import STORAGE_BACKENDS, Config, Environment

__all__ = [
    "Config",
    "Environment",
    "STORAGE_BACKENDS",
]
