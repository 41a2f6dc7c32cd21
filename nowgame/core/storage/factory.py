"""Build the configured storage driver."""

from __future__ import annotations

from typing import Optional

from nowgame.core.config.config import STORAGE_BACKENDS, Config
from nowgame.core.exceptions import ConfigurationError
from nowgame.core.storage.driver import StorageDriver
from nowgame.core.storage.memory import InMemoryStorageDriver


def create_storage_driver(backend: Optional[str] = None) -> StorageDriver:
    """
    Return an uninitialized driver for `backend` (default `Config.STORAGE_BACKEND`).

    The SQL and Redis drivers are imported lazily so a memory-only run does
    not touch their client libraries.
    """
    name = (backend or Config.STORAGE_BACKEND).strip().lower()

    if name == "memory":
        return InMemoryStorageDriver()
    if name == "sql":
        from nowgame.core.storage.sql_driver import SqlStorageDriver

        return SqlStorageDriver(Config.DATABASE_URL, echo=Config.DATABASE_ECHO)
    if name == "redis":
        from nowgame.core.storage.redis_driver import RedisStorageDriver

        return RedisStorageDriver(
            Config.REDIS_URL,
            key_prefix=Config.REDIS_KEY_PREFIX,
            password=Config.REDIS_PASSWORD,
            socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
        )

    raise ConfigurationError(
        "STORAGE_BACKEND",
        f"Unknown storage backend '{name}' (expected one of {', '.join(STORAGE_BACKENDS)})",
    )
