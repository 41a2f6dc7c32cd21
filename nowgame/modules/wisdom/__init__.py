"""Wisdom module: skills, skill points and tasks sharing one aggregate."""

from nowgame.modules.wisdom.models import Skill, SkillPoint, Task, WisdomData
from nowgame.modules.wisdom.repository import WisdomRepository
from nowgame.modules.wisdom.skill_point_service import SkillPointService
from nowgame.modules.wisdom.skill_service import SkillService
from nowgame.modules.wisdom.store import WisdomStore
from nowgame.modules.wisdom.task_service import TaskService

__all__ = [
    "Skill",
    "SkillPoint",
    "Task",
    "WisdomData",
    "WisdomRepository",
    "WisdomStore",
    "SkillService",
    "SkillPointService",
    "TaskService",
]
