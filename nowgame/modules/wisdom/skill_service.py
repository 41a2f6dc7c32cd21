"""
SkillService: top-level progression entities.

Skills are the only entities whose own level rises from experience. Points
forward overflow here through `apply_experience_in_transaction`, inside the
caller's wisdom transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from nowgame.modules.shared.base_service import BaseService
from nowgame.modules.shared.fields import Clock, local_now, new_id
from nowgame.modules.wisdom.models import DEFAULT_SKILL_ICON, Skill

if TYPE_CHECKING:
    from logging import Logger

    from nowgame.core.config.manager import ConfigManager
    from nowgame.core.event.bus import EventBus
    from nowgame.modules.wisdom.store import WisdomStore

SKILL_LEVELED_UP = "wisdom.skill.leveled_up"


class SkillService(BaseService):
    def __init__(
        self,
        store: WisdomStore,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Clock = local_now,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._clock = clock

    @property
    def skills(self) -> list[Skill]:
        return list(self._store.skills)

    def get_skill_by_id(self, skill_id: str) -> Optional[Skill]:
        return self._store.find_skill(skill_id)

    async def add_skill(
        self,
        name: str,
        max_xp: Optional[int] = None,
        icon_code_point: int = DEFAULT_SKILL_ICON,
        deadline: Optional[datetime] = None,
    ) -> Skill:
        name = self.validate_name(name)
        if max_xp is None:
            max_xp = int(self.get_config("wisdom.skill.default_max_xp", 100))
        self.validate_positive_int(max_xp, "max_xp")

        skill = Skill(
            id=new_id(),
            name=name,
            max_xp=max_xp,
            icon_code_point=icon_code_point,
            deadline=deadline,
            created_at=self._clock(),
        )
        async with self._store.transaction("add_skill"):
            self._store.skills.append(skill)

        self.log_operation("add_skill", skill_id=skill.id, max_xp=max_xp)
        return skill

    async def remove_skill(self, skill_id: str) -> bool:
        """
        Remove a skill. Points and tasks referring to it stay in place.

        Returns False (and writes nothing) when the id is unknown.
        """
        async with self._store.transaction("remove_skill") as store:
            skill = store.find_skill(skill_id)
            if skill is None:
                store.mark_unchanged()
                return False
            store.skills.remove(skill)

        self.log_operation("remove_skill", skill_id=skill_id)
        return True

    async def add_experience(self, skill_id: str, amount: int) -> int:
        """Add experience to a skill and persist. Returns levels gained."""
        self.validate_non_negative_int(amount, "amount")
        async with self._store.transaction("skill.add_experience") as store:
            if store.find_skill(skill_id) is None:
                store.mark_unchanged()
                self.log.debug(
                    "Experience for unknown skill ignored",
                    extra={"skill_id": skill_id, "amount": amount},
                )
                return 0
            return self.apply_experience_in_transaction(skill_id, amount)

    def apply_experience_in_transaction(self, skill_id: str, amount: int) -> int:
        """Mutate inside an open wisdom transaction. Unknown ids are a no-op."""
        skill = self._store.find_skill(skill_id)
        if skill is None:
            self.log.debug(
                "Cascade into missing skill skipped",
                extra={"skill_id": skill_id, "amount": amount},
            )
            return 0

        old_level = skill.level
        gained = skill.add_experience(amount)
        if gained:
            self._store.record_event(
                SKILL_LEVELED_UP,
                {
                    "skill_id": skill.id,
                    "old_level": old_level,
                    "new_level": skill.level,
                },
            )
        return gained
