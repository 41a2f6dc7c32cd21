"""
WisdomStore: the single owner of the Wisdom aggregate.

Purpose
-------
Skills, skill points and tasks are persisted together as one document.
Instead of each service saving its own slice, all three services mutate
the collections held here, inside `transaction()`, and the store writes
one complete snapshot when the outermost transaction ends.

Unit of work
------------
- `transaction(operation)` serialises mutations behind one asyncio.Lock.
  It is re-entrant for the task that holds it, so a cascade (task ->
  point -> skill) is one transaction and one write.
- On exit the full aggregate is saved, then the events recorded during
  the transaction are published, followed by one `wisdom.changed`.
- If the save fails the error propagates. Memory keeps the mutation (no
  rollback) and the recorded events are dropped, so observers never see
  state that was not persisted.
- `transaction(operation, persist=False)` is for in-memory adjustments
  (task nudges): same serialisation, no write, no `wisdom.changed`.
- If the body raises, nothing is written and no events are published.
- `mark_unchanged()` lets an outermost body that found nothing to do
  (unknown id) end without a write or events, after looking the entity
  up under the lock.

Dependencies
------------
- WisdomRepository (load/save of the aggregate)
- EventBus (observers)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from logging import Logger
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from nowgame.core.logging.logger import LogContext, get_logger
from nowgame.modules.shared.domain_event import DomainEvent
from nowgame.modules.wisdom.models import Skill, SkillPoint, Task, WisdomData

if TYPE_CHECKING:
    from nowgame.core.event.bus import EventBus
    from nowgame.modules.wisdom.repository import WisdomRepository

WISDOM_CHANGED = "wisdom.changed"


class WisdomStore:
    def __init__(
        self,
        repository: WisdomRepository,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
    ) -> None:
        self._repository = repository
        self._events = event_bus
        self.log = logger or get_logger(__name__)

        self._data = WisdomData()
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task[Any]] = None
        self._depth = 0
        self._pending: list[DomainEvent] = []
        self._unchanged = False

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def skills(self) -> list[Skill]:
        return self._data.skills

    @property
    def skill_points(self) -> list[SkillPoint]:
        return self._data.skill_points

    @property
    def tasks(self) -> list[Task]:
        return self._data.tasks

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0 and self._owner is asyncio.current_task()

    async def load(self) -> WisdomData:
        """Replace in-memory state with the stored aggregate."""
        async with self._lock:
            self._data = await self._repository.load()
        self.log.info(
            "Wisdom aggregate loaded",
            extra={
                "skills": len(self._data.skills),
                "skill_points": len(self._data.skill_points),
                "tasks": len(self._data.tasks),
            },
        )
        return self._data

    def snapshot(self) -> WisdomData:
        """Detached copy of the current aggregate."""
        return WisdomData.from_dict(self._data.to_dict())

    def find_skill(self, skill_id: str) -> Optional[Skill]:
        return next((s for s in self._data.skills if s.id == skill_id), None)

    def find_point(self, point_id: str) -> Optional[SkillPoint]:
        return next((p for p in self._data.skill_points if p.id == point_id), None)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self._data.tasks if t.id == task_id), None)

    # ------------------------------------------------------------------ #
    # Unit of work
    # ------------------------------------------------------------------ #

    def record_event(self, event_name: str, payload: dict[str, Any]) -> None:
        """Queue an event for publication once the transaction persisted."""
        if not self.in_transaction:
            raise RuntimeError("record_event() called outside a wisdom transaction")
        self._pending.append(DomainEvent(event_name=event_name, payload=payload))

    def mark_unchanged(self) -> None:
        """
        Skip the save and event publication of the current transaction.

        Only the outermost level decides; inside a cascade this is a no-op.
        """
        if not self.in_transaction:
            raise RuntimeError("mark_unchanged() called outside a wisdom transaction")
        if self._depth == 1:
            self._unchanged = True

    @asynccontextmanager
    async def transaction(
        self, operation: str, *, persist: bool = True
    ) -> AsyncIterator[WisdomStore]:
        if self.in_transaction:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        async with self._lock:
            self._owner = asyncio.current_task()
            self._depth = 1
            self._pending = []
            self._unchanged = False
            try:
                with LogContext(component="wisdom", operation=operation, aggregate="wisdom"):
                    yield self
                    if self._unchanged:
                        persist = False
                    elif persist:
                        await self._repository.save(self._data)
                events = [] if self._unchanged else self._pending
            finally:
                self._owner = None
                self._depth = 0
                self._pending = []
                self._unchanged = False

        for event in events:
            await self._events.publish(
                event.event_name, {**event.payload, "operation": operation}
            )
        if persist:
            await self._events.publish(
                WISDOM_CHANGED, {"operation": operation, "persisted": True}
            )
