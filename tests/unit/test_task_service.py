"""
Unit tests for TaskService.

Tests in-memory progress nudges, the monotonic commit and the completion
cascade into skill points and skills.
"""

import json

import pytest
import pytest_asyncio

from nowgame.modules.shared.exceptions import ValidationError
from nowgame.modules.wisdom.skill_service import SKILL_LEVELED_UP
from nowgame.modules.wisdom.store import WISDOM_CHANGED
from nowgame.modules.wisdom.task_service import TASK_COMPLETED, TASK_PROGRESS_CHANGED


@pytest_asyncio.fixture
async def chain(skill_service, skill_point_service, task_service):
    """A skill, one point under it and a 10-step task under the point."""
    skill = await skill_service.add_skill("Fitness", max_xp=100)
    point = await skill_point_service.add_point("Pushups", skill.id, max_xp=10)
    task = await task_service.add_task("Daily set", point.id, skill_name="Fitness")
    return skill, point, task


async def stored_task(driver, task_id: str) -> dict:
    wisdom = json.loads(await driver.get_string("wisdom_data"))
    return next(t for t in wisdom["tasks"] if t["id"] == task_id)


@pytest.mark.asyncio
class TestTaskCreation:
    async def test_defaults_from_config(self, task_service, mock_config_manager):
        mock_config_manager.overrides["wisdom.task.default_max_count"] = 4

        task = await task_service.add_task("Stretch", "p1")

        assert task.max_count == 4
        assert task.current_count == 0
        assert task.saved_count == 0

    async def test_rejects_zero_max_count(self, task_service):
        with pytest.raises(ValidationError):
            await task_service.add_task("Stretch", "p1", max_count=0)

    async def test_remove_unknown_task(self, task_service):
        assert await task_service.remove_task("missing") is False

    async def test_tasks_by_point(self, task_service):
        first = await task_service.add_task("A", "p1")
        await task_service.add_task("B", "p2")

        assert task_service.get_tasks_by_skill_id("p1") == [first]


@pytest.mark.asyncio
class TestProgressNudges:
    """Increment and decrement only touch memory."""

    async def test_increment_is_not_persisted(
        self, chain, task_service, memory_driver, recorder
    ):
        _, _, task = chain
        recorder.clear()

        assert await task_service.increment(task.id) is True

        assert task.current_count == 1
        assert (await stored_task(memory_driver, task.id))["currentCount"] == 0
        assert recorder.names() == [TASK_PROGRESS_CHANGED]
        assert recorder.payloads(TASK_PROGRESS_CHANGED)[0]["persisted"] is False

    async def test_increment_caps_at_max(self, task_service):
        task = await task_service.add_task("Short", "p1", max_count=2)

        results = [await task_service.increment(task.id) for _ in range(3)]

        assert results == [True, True, False]
        assert task.current_count == 2

    async def test_decrement_stops_at_saved_baseline(self, task_service):
        task = await task_service.add_task("Short", "p1", max_count=5)
        await task_service.increment(task.id)
        await task_service.increment(task.id)
        await task_service.commit_progress()
        await task_service.increment(task.id)

        assert await task_service.decrement(task.id) is True
        assert await task_service.decrement(task.id) is False
        assert task.current_count == 2

    async def test_unknown_task_nudges_fail_quietly(self, task_service):
        assert await task_service.increment("ghost") is False
        assert await task_service.decrement("ghost") is False


@pytest.mark.asyncio
class TestCommitProgress:
    """The committed count never goes down."""

    async def test_commit_never_lowers_saved_count(self, task_service, memory_driver):
        """Saved 3 of 10, memory lowered to 1: commit keeps 3 on both counters."""
        task = await task_service.add_task("Read", "p1", max_count=10)
        task.current_count = 3
        await task_service.commit_progress()
        task.current_count = 1

        completed = await task_service.commit_progress()

        assert completed == []
        assert task.current_count == 3
        assert task.saved_count == 3
        stored = await stored_task(memory_driver, task.id)
        assert stored["currentCount"] == 3
        assert stored["savedCount"] == 3

    async def test_commit_without_changes_writes_nothing(
        self, mocker, chain, task_service, memory_driver, recorder
    ):
        recorder.clear()
        spy = mocker.spy(memory_driver, "set_string")

        assert await task_service.commit_progress() == []

        assert spy.call_count == 0
        assert recorder.events == []

    async def test_batch_commit_is_one_write(self, mocker, task_service, memory_driver):
        first = await task_service.add_task("A", "p1", max_count=5)
        second = await task_service.add_task("B", "p1", max_count=5)
        await task_service.increment(first.id)
        await task_service.increment(second.id)
        spy = mocker.spy(memory_driver, "set_string")

        await task_service.commit_progress()

        assert spy.call_count == 1
        assert (first.saved_count, second.saved_count) == (1, 1)


@pytest.mark.asyncio
class TestCompletionCascade:
    """Completing a task feeds experience to its skill point once."""

    async def test_completion_awards_experience_once(
        self, chain, task_service, recorder
    ):
        _, point, task = chain
        for _ in range(task.max_count):
            await task_service.increment(task.id)
        recorder.clear()

        completed = await task_service.commit_progress()

        assert completed == [task.id]
        assert point.current_xp == 5
        assert recorder.names() == [TASK_COMPLETED, WISDOM_CHANGED]
        assert recorder.payloads(TASK_COMPLETED)[0] == {
            "task_id": task.id,
            "skill_point_id": point.id,
            "experience": 5,
            "forwarded_to_skill": 0,
            "operation": "commit_progress",
        }

        # A second commit of an already complete task awards nothing.
        task.current_count = task.max_count
        assert await task_service.commit_progress() == []
        assert point.current_xp == 5

    async def test_completion_can_level_the_skill(
        self, chain, task_service, mock_config_manager, recorder
    ):
        """xp_per_completion 10 fills the 10-capacity point and forwards it."""
        skill, point, task = chain
        skill.current_xp = 95
        mock_config_manager.overrides["wisdom.task.xp_per_completion"] = 10
        task.current_count = task.max_count
        recorder.clear()

        await task_service.commit_progress()

        assert point.current_xp == 0
        assert skill.level == 2
        assert skill.current_xp == 5
        assert recorder.names() == [SKILL_LEVELED_UP, TASK_COMPLETED, WISDOM_CHANGED]

    async def test_task_with_deleted_point_still_completes(self, task_service):
        """The experience is dropped; the task is still marked complete."""
        task = await task_service.add_task("Orphan", "gone", max_count=1)
        await task_service.increment(task.id)

        completed = await task_service.commit_progress()

        assert completed == [task.id]
        assert task.is_saved_completed
