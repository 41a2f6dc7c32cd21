"""In-process dict-backed storage driver for tests and throwaway runs."""

from __future__ import annotations

from typing import Optional

from nowgame.core.logging.logger import get_logger
from nowgame.core.storage.driver import StorageDriver

logger = get_logger(__name__)


class InMemoryStorageDriver(StorageDriver):
    """
    Dict-backed driver.

    `initial` seeds the store, which lets tests start from legacy or
    corrupted layouts without going through a real backend.
    """

    name = "memory"

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        super().__init__()
        self._data: dict[str, str] = dict(initial or {})

    async def init(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        logger.debug("In-memory storage initialized", extra={"key_count": len(self._data)})

    async def get_string(self, key: str) -> Optional[str]:
        self._ensure_initialized()
        return self._data.get(key)

    async def set_string(self, key: str, value: str) -> None:
        self._ensure_initialized()
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._ensure_initialized()
        self._data.pop(key, None)

    async def get_keys(self) -> set[str]:
        self._ensure_initialized()
        return set(self._data)

    async def clear(self) -> None:
        self._ensure_initialized()
        self._data.clear()

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw contents (test inspection)."""
        return dict(self._data)
