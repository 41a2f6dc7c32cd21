"""
MigrationEngine: forward-only schema migrations over the storage driver.

Purpose
-------
Bring the stored data up to the schema version the running code expects,
before any repository reads it.

Behaviour
---------
- The marker lives under `schema_version` as a decimal string.
- No marker means a fresh install: the target version is written and no
  step runs.
- A marker at or above the target is a no-op.
- Otherwise every step with `current < to_version <= target` runs in
  ascending order, and the marker is written after each one. A crash
  mid-chain therefore resumes from the last completed step.
- A failing step stops the chain. The marker stays at the last completed
  version and the failure is raised as `MigrationError`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from logging import Logger
from typing import Awaitable, Callable, Optional, Sequence

from nowgame.core.exceptions import MigrationError
from nowgame.core.logging.logger import LogContext, get_logger
from nowgame.core.storage.driver import StorageDriver

SCHEMA_VERSION_KEY = "schema_version"

MigrationFn = Callable[[StorageDriver], Awaitable[None]]


@dataclass(frozen=True)
class MigrationStep:
    """One forward transformation ending at `to_version`."""

    to_version: int
    name: str
    apply: MigrationFn


class MigrationEngine:
    """Runs migration steps against one storage driver."""

    def __init__(self, driver: StorageDriver, logger: Optional[Logger] = None) -> None:
        self._driver = driver
        self.log = logger or get_logger(__name__)

    async def read_version(self) -> Optional[int]:
        """Stored schema version, None when absent, 0 when unparsable."""
        raw = await self._driver.get_string(SCHEMA_VERSION_KEY)
        if raw is None:
            return None
        try:
            return int(raw.strip())
        except ValueError:
            self.log.warning(
                "Unparsable schema version marker, treating as 0",
                extra={"storage_key": SCHEMA_VERSION_KEY, "raw_value": raw},
            )
            return 0

    async def _write_version(self, version: int) -> None:
        await self._driver.set_string(SCHEMA_VERSION_KEY, str(version))

    async def migrate(self, target_version: int, steps: Sequence[MigrationStep]) -> int:
        """
        Migrate the store to `target_version` and return the resulting version.

        Raises:
            MigrationError: a step failed; the marker holds the last completed version
        """
        async with LogContext(component="migration", operation="migrate"):
            current = await self.read_version()

            if current is None:
                await self._write_version(target_version)
                self.log.info(
                    "Fresh store, schema version set without migrating",
                    extra={"target_version": target_version},
                )
                return target_version

            if current >= target_version:
                self.log.debug(
                    "Schema up to date",
                    extra={"current_version": current, "target_version": target_version},
                )
                return current

            pending = sorted(
                (s for s in steps if current < s.to_version <= target_version),
                key=lambda s: s.to_version,
            )

            self.log.info(
                "Migrating schema",
                extra={
                    "current_version": current,
                    "target_version": target_version,
                    "pending_steps": [s.to_version for s in pending],
                },
            )

            for step in pending:
                start = time.perf_counter()
                try:
                    await step.apply(self._driver)
                except Exception as exc:
                    self.log.critical(
                        f"Migration step v{step.to_version} failed",
                        extra={
                            "step": step.name,
                            "to_version": step.to_version,
                            "completed_version": current,
                            "error": str(exc),
                            "error_type": type(exc).__name__,
                        },
                        exc_info=True,
                    )
                    raise MigrationError(step.to_version, current, exc) from exc

                await self._write_version(step.to_version)
                current = step.to_version
                self.log.info(
                    f"Migration step v{step.to_version} applied",
                    extra={
                        "step": step.name,
                        "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    },
                )

            # The marker only moves when a step ran; a gap in the chain stays visible.
            return current
