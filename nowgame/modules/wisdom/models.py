"""
Wisdom domain models: Skill, SkillPoint, Task and the aggregate holding them.

Hierarchy
---------
Task (leaf) -> SkillPoint (via `skill_id`) -> Skill (via `skill_id`).
References are plain ids resolved by lookup, so a deleted parent is just
a lookup miss.

Experience rules
----------------
- Skill: overflow subtracts `max_xp` and raises `level`, repeatedly.
- SkillPoint: overflow subtracts `max_xp` and forwards `max_xp` to the
  parent Skill; the point's own level never changes.
- Task: complete when `current_count >= max_count`. `saved_count` is the
  last committed progress and the floor for in-memory decrements.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from nowgame.modules.shared.fields import (
    format_datetime,
    optional_datetime,
    optional_int,
    optional_str,
    require_datetime,
    require_list,
    require_str,
)

DEFAULT_SKILL_ICON = 0xE894
DEFAULT_POINT_ICON = 0xE838
DEFAULT_TASK_ICON = 0xE876
DEFAULT_MAX_XP = 100
DEFAULT_MAX_COUNT = 10


def _positive(value: int, key: str) -> int:
    if value <= 0:
        raise ValueError(f"'{key}' must be positive, got {value}")
    return value


@dataclass
class Skill:
    id: str
    name: str
    created_at: datetime
    level: int = 1
    current_xp: int = 0
    max_xp: int = DEFAULT_MAX_XP
    icon_code_point: int = DEFAULT_SKILL_ICON
    deadline: Optional[datetime] = None

    @property
    def is_permanent(self) -> bool:
        return self.deadline is None

    def add_experience(self, amount: int) -> int:
        """Add xp, levelling up on every overflow. Returns levels gained."""
        self.current_xp += amount
        gained = 0
        while self.current_xp >= self.max_xp:
            self.current_xp -= self.max_xp
            self.level += 1
            gained += 1
        return gained

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level,
            "currentXp": self.current_xp,
            "maxXp": self.max_xp,
            "iconCodePoint": self.icon_code_point,
            "deadline": format_datetime(self.deadline),
            "createdAt": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Skill:
        return cls(
            id=require_str(data, "id"),
            name=require_str(data, "name"),
            level=optional_int(data, "level", 1),
            current_xp=optional_int(data, "currentXp", 0),
            max_xp=_positive(optional_int(data, "maxXp", DEFAULT_MAX_XP), "maxXp"),
            icon_code_point=optional_int(data, "iconCodePoint", DEFAULT_SKILL_ICON),
            deadline=optional_datetime(data, "deadline"),
            created_at=require_datetime(data, "createdAt"),
        )


@dataclass
class SkillPoint:
    id: str
    name: str
    skill_id: str
    created_at: datetime
    level: int = 1
    current_xp: int = 0
    max_xp: int = DEFAULT_MAX_XP
    icon_code_point: int = DEFAULT_POINT_ICON

    def add_experience(self, amount: int) -> int:
        """
        Add xp and reset on every overflow.

        Returns the number of overflows; the caller forwards `max_xp` to the
        parent skill once per overflow.
        """
        self.current_xp += amount
        overflows = 0
        while self.current_xp >= self.max_xp:
            self.current_xp -= self.max_xp
            overflows += 1
        return overflows

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "skillId": self.skill_id,
            "level": self.level,
            "currentXp": self.current_xp,
            "maxXp": self.max_xp,
            "iconCodePoint": self.icon_code_point,
            "createdAt": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillPoint:
        return cls(
            id=require_str(data, "id"),
            name=require_str(data, "name"),
            skill_id=require_str(data, "skillId"),
            level=optional_int(data, "level", 1),
            current_xp=optional_int(data, "currentXp", 0),
            max_xp=_positive(optional_int(data, "maxXp", DEFAULT_MAX_XP), "maxXp"),
            icon_code_point=optional_int(data, "iconCodePoint", DEFAULT_POINT_ICON),
            created_at=require_datetime(data, "createdAt"),
        )


@dataclass
class Task:
    id: str
    name: str
    skill_id: str
    created_at: datetime
    skill_name: str = ""
    max_count: int = DEFAULT_MAX_COUNT
    current_count: int = 0
    saved_count: int = 0
    icon_code_point: int = DEFAULT_TASK_ICON

    @property
    def is_completed(self) -> bool:
        return self.current_count >= self.max_count

    @property
    def is_saved_completed(self) -> bool:
        return self.saved_count >= self.max_count

    @property
    def has_uncommitted_progress(self) -> bool:
        return self.current_count != self.saved_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "skillId": self.skill_id,
            "skillName": self.skill_name,
            "maxCount": self.max_count,
            "currentCount": self.current_count,
            "savedCount": self.saved_count,
            "iconCodePoint": self.icon_code_point,
            "createdAt": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        current = optional_int(data, "currentCount", 0)
        return cls(
            id=require_str(data, "id"),
            name=require_str(data, "name"),
            skill_id=require_str(data, "skillId"),
            skill_name=optional_str(data, "skillName", "") or "",
            max_count=_positive(optional_int(data, "maxCount", DEFAULT_MAX_COUNT), "maxCount"),
            current_count=current,
            # Records written before the commit baseline existed treat their
            # stored count as committed.
            saved_count=optional_int(data, "savedCount", current),
            icon_code_point=optional_int(data, "iconCodePoint", DEFAULT_TASK_ICON),
            created_at=require_datetime(data, "createdAt"),
        )


@dataclass
class WisdomData:
    """The Wisdom aggregate: every skill, point and task, saved together."""

    skills: list[Skill] = field(default_factory=list)
    skill_points: list[SkillPoint] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skills": [s.to_dict() for s in self.skills],
            "skillPoints": [p.to_dict() for p in self.skill_points],
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WisdomData:
        if not isinstance(data, dict):
            raise TypeError(f"wisdom aggregate must be an object, got {type(data).__name__}")
        return cls(
            skills=[Skill.from_dict(s) for s in require_list(data, "skills")],
            skill_points=[SkillPoint.from_dict(p) for p in require_list(data, "skillPoints")],
            tasks=[Task.from_dict(t) for t in require_list(data, "tasks")],
        )
