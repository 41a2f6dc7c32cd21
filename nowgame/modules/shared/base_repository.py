"""
Aggregate Repository Pattern

Purpose
-------
Each aggregate (Wisdom, Health, Shop) lives as one JSON document under one
fixed storage key. `AggregateRepository[T]` holds the shared load/save
discipline; subclasses only map between the document and their dataclasses.

Design Notes
------------
- `load()` never fails: a missing key yields `empty()`, and unreadable or
  malformed data is logged and also yields `empty()`.
- `save()` never swallows: a write failure is logged and re-raised
  unmodified, because a dropped write would silently lose data.
- Saves of one key are serialised by a per-repository asyncio.Lock; every
  save writes the complete aggregate, so last writer wins.
- JSON is compact UTF-8 (`ensure_ascii=False`).

Usage
-----
    class ShopRepository(AggregateRepository[ShopData]):
        storage_key = "shop_data"

        def empty(self) -> ShopData: ...
        def decode(self, data: Any) -> ShopData: ...
        def encode(self, aggregate: ShopData) -> Any: ...
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from nowgame.core.logging.logger import LogContext

if TYPE_CHECKING:
    from logging import Logger

    from nowgame.core.storage.driver import StorageDriver

T = TypeVar("T")


class AggregateRepository(ABC, Generic[T]):
    """
    Generic repository for one JSON aggregate stored under one key.

    Type Parameters:
        T: The aggregate dataclass this repository manages
    """

    storage_key: str = ""

    def __init__(self, driver: StorageDriver, logger: Logger) -> None:
        self._driver = driver
        self.log = logger
        self._save_lock = asyncio.Lock()

    @abstractmethod
    def empty(self) -> T:
        """The aggregate's default value."""

    @abstractmethod
    def decode(self, data: Any) -> T:
        """Build the aggregate from parsed JSON. May raise on bad shape."""

    @abstractmethod
    def encode(self, aggregate: T) -> Any:
        """Turn the aggregate into JSON-serialisable data."""

    async def load(self) -> T:
        """Read the aggregate, falling back to `empty()` on any problem."""
        with LogContext(storage_key=self.storage_key, operation="load"):
            try:
                raw = await self._driver.get_string(self.storage_key)
            except Exception as exc:
                self.log.warning(
                    "Aggregate read failed, using default",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )
                return self.empty()

            if raw is None:
                self.log.debug("Aggregate key absent, using default")
                return self.empty()

            try:
                aggregate = self.decode(json.loads(raw))
            except (ValueError, TypeError, KeyError, AttributeError) as exc:
                self.log.warning(
                    "Aggregate data corrupted, using default",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )
                return self.empty()

            self.log.debug("Aggregate loaded", extra={"bytes": len(raw)})
            return aggregate

    async def save(self, aggregate: T) -> None:
        """Write the whole aggregate. Errors propagate to the caller."""
        payload = json.dumps(
            self.encode(aggregate), ensure_ascii=False, separators=(",", ":")
        )
        with LogContext(storage_key=self.storage_key, operation="save"):
            async with self._save_lock:
                try:
                    await self._driver.set_string(self.storage_key, payload)
                except Exception as exc:
                    self.log.error(
                        "Aggregate write failed",
                        extra={"error": str(exc), "error_type": type(exc).__name__},
                        exc_info=True,
                    )
                    raise
            self.log.debug("Aggregate saved", extra={"bytes": len(payload)})
