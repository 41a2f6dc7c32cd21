"""
StorageDriver: the atomic string key/value contract every backend fulfils.

Purpose
-------
Repositories and the migration engine only ever speak to this contract.
The concrete backend (in-memory, SQL, Redis) is chosen at bootstrap.

Contract
--------
- `init()` is idempotent and must complete before any other call.
- `get_string` returns None for a missing key.
- `set_string` and `remove` are atomic per key.
- Backend failures surface as `StorageError`; use before `init()` raises
  `StorageNotInitializedError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from nowgame.core.exceptions import StorageNotInitializedError


class StorageDriver(ABC):
    """Abstract async key/value storage driver."""

    name: str = "storage"

    def __init__(self) -> None:
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise StorageNotInitializedError(self.name)

    @abstractmethod
    async def init(self) -> None:
        """Prepare the backend. Safe to call more than once."""

    @abstractmethod
    async def get_string(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    async def set_string(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete `key`. Removing a missing key is not an error."""

    @abstractmethod
    async def get_keys(self) -> set[str]:
        """Return every key currently stored."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete every key owned by this driver."""

    async def close(self) -> None:
        """Release backend resources."""
        self._initialized = False
