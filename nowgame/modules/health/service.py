"""
HealthService: daily posture/eye-strain score with once-per-window deductions.

Rules
-----
- A day starts from its base score. Without one, it inherits the final
  score of the most recent earlier day that had one (up to
  `health.lookback_days` back), else `health.default_base_score`.
- Each deduction type can be clicked once per reset window. Windows
  start at `health.reset_hour` local time every day.
- A click adds `health.deduction_step` to that type's counter.

Every persisted change publishes `health.changed` after the save.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Optional, Union

from nowgame.modules.health.models import (
    DayHealth,
    DeductionType,
    HealthData,
    date_key,
)
from nowgame.modules.shared.base_service import BaseService
from nowgame.modules.shared.exceptions import CooldownActiveError
from nowgame.modules.shared.fields import Clock, local_now

if TYPE_CHECKING:
    from logging import Logger

    from nowgame.core.config.manager import ConfigManager
    from nowgame.core.event.bus import EventBus
    from nowgame.modules.health.repository import HealthRepository

HEALTH_CHANGED = "health.changed"

DayLike = Union[date, datetime]


def _as_datetime(day: DayLike) -> datetime:
    if isinstance(day, datetime):
        return day
    return datetime.combine(day, time())


class HealthService(BaseService):
    def __init__(
        self,
        repository: HealthRepository,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Clock = local_now,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._repository = repository
        self._clock = clock
        self._data = HealthData()
        self._lock = asyncio.Lock()

    @property
    def reset_hour(self) -> int:
        return int(self.get_config("health.reset_hour", 7))

    @property
    def days(self) -> dict[str, DayHealth]:
        return dict(self._data.days)

    async def load(self) -> None:
        async with self._lock:
            self._data = await self._repository.load()
        self.log.info("Health data loaded", extra={"days": len(self._data.days)})

    def get_data_for_date(self, day: DayLike) -> DayHealth:
        """Stored record for the day, or a fresh unsaved one."""
        moment = _as_datetime(day)
        return self._data.days.get(date_key(moment)) or DayHealth(date=moment)

    async def save_data_for_date(self, record: DayHealth) -> None:
        async with self._lock:
            await self._persist(record, "save_data_for_date")

    async def _persist(self, record: DayHealth, operation: str) -> None:
        self._data.days[record.key] = record
        await self._repository.save(self._data)
        await self.emit_event(
            HEALTH_CHANGED,
            {
                "operation": operation,
                "date": record.key,
                "base_score": record.base_score,
                "final_score": record.final_score,
                "persisted": True,
            },
        )

    async def set_base_score(self, day: DayLike, score: int) -> DayHealth:
        self.validate_range(score, "base_score", 0, 100)
        async with self._lock:
            record = self.get_data_for_date(day)
            record.base_score = score
            await self._persist(record, "set_base_score")
        self.log_operation("set_base_score", date=record.key, base_score=score)
        return record

    def get_yesterday_final_score(self) -> Optional[int]:
        """Final score of the most recent earlier day with a base score."""
        now = self._clock()
        lookback = int(self.get_config("health.lookback_days", 30))
        for offset in range(1, lookback + 1):
            record = self._data.days.get(date_key(now - timedelta(days=offset)))
            if record is not None and record.base_score is not None:
                return record.final_score
        return None

    def get_today_effective_base_score(self) -> Optional[int]:
        today = self.get_data_for_date(self._clock())
        if today.base_score is not None:
            return today.base_score
        return self.get_yesterday_final_score()

    def _last_reset(self, now: datetime) -> datetime:
        today_reset = now.replace(hour=self.reset_hour, minute=0, second=0, microsecond=0)
        if now > today_reset:
            return today_reset
        return today_reset - timedelta(days=1)

    def can_click_button(
        self, kind: DeductionType, record: Optional[DayHealth] = None
    ) -> bool:
        """True when the last click of `kind` predates the latest reset boundary."""
        kind = DeductionType(kind)
        if record is None:
            record = self.get_data_for_date(self._clock())
        clicked_at = record.click_time(kind)
        if clicked_at is None:
            return True
        return clicked_at < self._last_reset(self._clock())

    async def apply_deduction(self, kind: DeductionType) -> DayHealth:
        """
        Record one click of `kind` on today's record.

        Raises:
            CooldownActiveError: the type was already clicked in this window
        """
        kind = DeductionType(kind)
        async with self._lock:
            now = self._clock()
            record = self.get_data_for_date(now)
            if not self.can_click_button(kind, record):
                next_reset = self._last_reset(now) + timedelta(days=1)
                raise CooldownActiveError(
                    f"health.{kind.value}", (next_reset - now).total_seconds()
                )

            if record.base_score is None:
                base = self.get_today_effective_base_score()
                if base is None:
                    base = int(self.get_config("health.default_base_score", 100))
                record.base_score = base

            step = int(self.get_config("health.deduction_step", 5))
            record.record_click(kind, step, now)
            await self._persist(record, "apply_deduction")

        self.log_operation(
            "apply_deduction",
            deduction_type=kind.value,
            date=record.key,
            final_score=record.final_score,
        )
        return record
