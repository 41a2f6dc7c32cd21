"""
TaskService: bounded-count tasks with monotonic progress commits.

Commit discipline
-----------------
Progress moves freely in memory and only reaches storage through
`commit_progress()`:

- `increment`: `current = min(current + 1, max)`; memory only.
- `decrement`: refused when `current <= saved` (the committed baseline);
  memory only.
- `commit_progress`: every task gets `committed = max(current, saved)` on
  both counters. A task whose committed count reaches `max_count` for the
  first time injects `wisdom.task.xp_per_completion` experience into its
  skill point, once. The batch is written in one save and announced once.

Callers commit when the user leaves the task view, when the app goes to
the background and at shutdown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from nowgame.modules.shared.base_service import BaseService
from nowgame.modules.shared.fields import Clock, local_now, new_id
from nowgame.modules.wisdom.models import DEFAULT_TASK_ICON, Task

if TYPE_CHECKING:
    from logging import Logger

    from nowgame.core.config.manager import ConfigManager
    from nowgame.core.event.bus import EventBus
    from nowgame.modules.wisdom.skill_point_service import SkillPointService
    from nowgame.modules.wisdom.store import WisdomStore

TASK_PROGRESS_CHANGED = "wisdom.tasks.progress_changed"
TASK_COMPLETED = "wisdom.task.completed"


class TaskService(BaseService):
    def __init__(
        self,
        store: WisdomStore,
        skill_point_service: SkillPointService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Clock = local_now,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._points = skill_point_service
        self._clock = clock

    @property
    def tasks(self) -> list[Task]:
        return list(self._store.tasks)

    @property
    def xp_per_completion(self) -> int:
        return int(self.get_config("wisdom.task.xp_per_completion", 5))

    def get_tasks_by_skill_id(self, skill_point_id: str) -> list[Task]:
        return [t for t in self._store.tasks if t.skill_id == skill_point_id]

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        return self._store.find_task(task_id)

    async def add_task(
        self,
        name: str,
        skill_id: str,
        skill_name: str = "",
        max_count: Optional[int] = None,
        icon_code_point: int = DEFAULT_TASK_ICON,
    ) -> Task:
        name = self.validate_name(name)
        if max_count is None:
            max_count = int(self.get_config("wisdom.task.default_max_count", 10))
        self.validate_positive_int(max_count, "max_count")

        task = Task(
            id=new_id(),
            name=name,
            skill_id=skill_id,
            skill_name=skill_name,
            max_count=max_count,
            icon_code_point=icon_code_point,
            created_at=self._clock(),
        )
        async with self._store.transaction("add_task"):
            self._store.tasks.append(task)

        self.log_operation("add_task", task_id=task.id, skill_id=skill_id, max_count=max_count)
        return task

    async def remove_task(self, task_id: str) -> bool:
        async with self._store.transaction("remove_task") as store:
            task = store.find_task(task_id)
            if task is None:
                store.mark_unchanged()
                return False
            store.tasks.remove(task)

        self.log_operation("remove_task", task_id=task_id)
        return True

    # ------------------------------------------------------------------ #
    # In-memory progress
    # ------------------------------------------------------------------ #

    @staticmethod
    def _progress_payload(task: Task) -> dict[str, Any]:
        return {
            "task_id": task.id,
            "current_count": task.current_count,
            "saved_count": task.saved_count,
            "max_count": task.max_count,
            "persisted": False,
        }

    async def increment(self, task_id: str) -> bool:
        """Raise in-memory progress by one, capped at `max_count`."""
        async with self._store.transaction("task.increment", persist=False):
            task = self._store.find_task(task_id)
            if task is None or task.current_count >= task.max_count:
                return False
            task.current_count = min(task.current_count + 1, task.max_count)
            self._store.record_event(TASK_PROGRESS_CHANGED, self._progress_payload(task))
        return True

    async def decrement(self, task_id: str) -> bool:
        """Lower in-memory progress by one; never below the committed baseline."""
        async with self._store.transaction("task.decrement", persist=False):
            task = self._store.find_task(task_id)
            if task is None or task.current_count <= task.saved_count:
                return False
            task.current_count -= 1
            self._store.record_event(TASK_PROGRESS_CHANGED, self._progress_payload(task))
        return True

    # ------------------------------------------------------------------ #
    # Commit
    # ------------------------------------------------------------------ #

    async def commit_progress(self) -> list[str]:
        """
        Persist in-memory progress without ever lowering it.

        Returns the ids of tasks that became complete in this commit. Does
        nothing (no write, no event) when no task has uncommitted progress.
        """
        completed: list[str] = []
        xp = self.xp_per_completion

        async with self._store.transaction("commit_progress") as store:
            if not any(t.has_uncommitted_progress for t in store.tasks):
                store.mark_unchanged()
                return []

            for task in self._store.tasks:
                was_completed = task.is_saved_completed
                committed = max(task.current_count, task.saved_count)
                task.current_count = committed
                task.saved_count = committed

                if not was_completed and task.is_saved_completed:
                    forwarded = self._points.apply_experience_in_transaction(task.skill_id, xp)
                    completed.append(task.id)
                    self._store.record_event(
                        TASK_COMPLETED,
                        {
                            "task_id": task.id,
                            "skill_point_id": task.skill_id,
                            "experience": xp,
                            "forwarded_to_skill": sum(forwarded),
                        },
                    )

        self.log_operation("commit_progress", completed_tasks=len(completed))
        return completed
