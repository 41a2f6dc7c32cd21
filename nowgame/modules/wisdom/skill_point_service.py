"""
SkillPointService: mid-level entities under a skill.

Overflow never levels a point. Each overflow resets the point by `max_xp`
and forwards exactly `max_xp` to the parent skill, so 90 + 250 on a
100-capacity point ends at 40 after forwarding 100 twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from nowgame.modules.shared.base_service import BaseService
from nowgame.modules.shared.fields import Clock, local_now, new_id
from nowgame.modules.wisdom.models import DEFAULT_POINT_ICON, SkillPoint

if TYPE_CHECKING:
    from logging import Logger

    from nowgame.core.config.manager import ConfigManager
    from nowgame.core.event.bus import EventBus
    from nowgame.modules.wisdom.skill_service import SkillService
    from nowgame.modules.wisdom.store import WisdomStore


class SkillPointService(BaseService):
    def __init__(
        self,
        store: WisdomStore,
        skill_service: SkillService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Clock = local_now,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._skills = skill_service
        self._clock = clock

    @property
    def points(self) -> list[SkillPoint]:
        return list(self._store.skill_points)

    def get_points_by_skill_id(self, skill_id: str) -> list[SkillPoint]:
        return [p for p in self._store.skill_points if p.skill_id == skill_id]

    def get_point_by_id(self, point_id: str) -> Optional[SkillPoint]:
        return self._store.find_point(point_id)

    async def add_point(
        self,
        name: str,
        skill_id: str,
        max_xp: Optional[int] = None,
        icon_code_point: int = DEFAULT_POINT_ICON,
    ) -> SkillPoint:
        name = self.validate_name(name)
        skill_id = self.validate_name(skill_id, "skill_id")
        if max_xp is None:
            max_xp = int(self.get_config("wisdom.skill_point.default_max_xp", 100))
        self.validate_positive_int(max_xp, "max_xp")

        point = SkillPoint(
            id=new_id(),
            name=name,
            skill_id=skill_id,
            max_xp=max_xp,
            icon_code_point=icon_code_point,
            created_at=self._clock(),
        )
        async with self._store.transaction("add_point"):
            self._store.skill_points.append(point)

        self.log_operation("add_point", point_id=point.id, skill_id=skill_id)
        return point

    async def remove_point(self, point_id: str) -> bool:
        async with self._store.transaction("remove_point") as store:
            point = store.find_point(point_id)
            if point is None:
                store.mark_unchanged()
                return False
            store.skill_points.remove(point)

        self.log_operation("remove_point", point_id=point_id)
        return True

    async def add_experience(self, point_id: str, amount: int) -> list[int]:
        """
        Add experience to a point and persist the whole cascade at once.

        Returns the amounts forwarded to the parent skill, one per overflow.
        """
        self.validate_non_negative_int(amount, "amount")
        async with self._store.transaction("skill_point.add_experience") as store:
            if store.find_point(point_id) is None:
                store.mark_unchanged()
                self.log.debug(
                    "Experience for unknown skill point ignored",
                    extra={"point_id": point_id, "amount": amount},
                )
                return []
            return self.apply_experience_in_transaction(point_id, amount)

    def apply_experience_in_transaction(self, point_id: str, amount: int) -> list[int]:
        """
        Mutate inside an open wisdom transaction and forward overflow to the
        parent skill. Returns the forwarded amounts; unknown ids are a no-op.
        """
        point = self._store.find_point(point_id)
        if point is None:
            self.log.debug(
                "Cascade into missing skill point skipped",
                extra={"point_id": point_id, "amount": amount},
            )
            return []

        overflows = point.add_experience(amount)
        forwarded = [point.max_xp] * overflows
        for chunk in forwarded:
            self._skills.apply_experience_in_transaction(point.skill_id, chunk)

        if forwarded:
            self.log.debug(
                "Skill point overflow forwarded",
                extra={
                    "point_id": point.id,
                    "skill_id": point.skill_id,
                    "forwarded_total": sum(forwarded),
                },
            )
        return forwarded
