"""
Integration tests for ApplicationContext: startup migration, service
wiring, restart persistence and shutdown commit.
"""

from __future__ import annotations

import json

import pytest

from nowgame.core.config.manager import ConfigManager
from nowgame.core.exceptions import MigrationError
from nowgame.core.infra.application_context import ApplicationContext
from nowgame.core.migration.steps import (
    APP_SCHEMA_VERSION,
    LEGACY_HEALTH_KEY,
    LEGACY_MAIN_QUEST_KEY,
    LEGACY_SKILLS_KEY,
    LEGACY_TASKS_KEY,
)
from nowgame.core.storage.memory import InMemoryStorageDriver
from nowgame.core.storage.sql_driver import SqlStorageDriver
from nowgame.modules.health.models import DeductionType

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


def make_context(driver, clock, rng) -> ApplicationContext:
    return ApplicationContext(
        storage_driver=driver,
        config_manager=ConfigManager(),
        clock=clock,
        rng=rng,
    )


async def test_fresh_install_starts_empty(clock, rng):
    driver = InMemoryStorageDriver()
    context = make_context(driver, clock, rng)

    await context.initialize()
    try:
        assert context.is_initialized
        assert context.schema_version == APP_SCHEMA_VERSION
        assert context.skill_service.skills == []
        assert context.shop_service.items == []
        assert driver.snapshot()["schema_version"] == str(APP_SCHEMA_VERSION)
    finally:
        await context.shutdown()


async def test_legacy_store_is_migrated_before_services_load(clock, rng):
    """A v0 store with per-collection keys comes up as aggregated data."""
    skill = {
        "id": "s1",
        "name": "Reading",
        "level": 3,
        "currentXp": 20,
        "maxXp": 100,
        "iconCodePoint": 1,
        "createdAt": "2023-12-01T10:00:00",
    }
    task = {
        "id": "t1",
        "name": "Chapter",
        "skillId": "p1",
        "maxCount": 5,
        "currentCount": 2,
        "createdAt": "2023-12-02T10:00:00",
    }
    driver = InMemoryStorageDriver(
        {
            "schema_version": "0",
            LEGACY_SKILLS_KEY: json.dumps([skill]),
            LEGACY_TASKS_KEY: json.dumps([task]),
            LEGACY_HEALTH_KEY: json.dumps(
                {"2024-03-09": {"date": "2024-03-09T00:00:00", "baseScore": 77}}
            ),
            LEGACY_MAIN_QUEST_KEY: json.dumps(
                {"quests": [{"id": "q1", "name": "Marathon", "maxCount": 42}]}
            ),
        }
    )
    context = make_context(driver, clock, rng)

    await context.initialize()
    try:
        assert [s.id for s in context.skill_service.skills] == ["s1", "q1"]
        assert context.skill_service.get_skill_by_id("s1").level == 3
        assert context.skill_service.get_skill_by_id("q1").max_xp == 42
        migrated_task = context.task_service.get_task_by_id("t1")
        assert migrated_task.saved_count == 2
        assert context.health_service.get_today_effective_base_score() == 77
    finally:
        await context.shutdown()


async def test_state_survives_restart(clock, rng):
    driver = InMemoryStorageDriver()
    first = make_context(driver, clock, rng)
    await first.initialize()
    skill = await first.skill_service.add_skill("Guitar")
    point = await first.skill_point_service.add_point("Chords", skill.id)
    await first.task_service.add_task("Practice", point.id, max_count=3)
    await first.shop_service.add_pool_item("Jam session", price=5, total_count=1)
    await first.health_service.apply_deduction(DeductionType.VISION)
    await first.shutdown()

    second = make_context(driver, clock, rng)
    await second.initialize()
    try:
        assert [s.name for s in second.skill_service.skills] == ["Guitar"]
        assert second.skill_point_service.get_points_by_skill_id(skill.id)[0].name == "Chords"
        assert second.task_service.tasks[0].max_count == 3
        assert second.shop_service.pool_items[0].remaining_count == 1
        assert second.health_service.can_click_button(DeductionType.VISION) is False
    finally:
        await second.shutdown()


async def test_shutdown_commits_task_progress(clock, rng):
    """Uncommitted nudges are written on shutdown and cascade on completion."""
    driver = InMemoryStorageDriver()
    context = make_context(driver, clock, rng)
    await context.initialize()
    skill = await context.skill_service.add_skill("Guitar")
    point = await context.skill_point_service.add_point("Chords", skill.id)
    task = await context.task_service.add_task("Practice", point.id, max_count=2)
    await context.task_service.increment(task.id)
    await context.task_service.increment(task.id)

    await context.shutdown()

    stored = json.loads(driver.snapshot()["wisdom_data"])
    assert stored["tasks"][0]["savedCount"] == 2
    assert stored["skillPoints"][0]["currentXp"] == 5


async def test_voucher_purchase_end_to_end(clock, rng):
    """Gacha, purchase and the resulting task all land in storage."""
    driver = InMemoryStorageDriver()
    context = make_context(driver, clock, rng)
    await context.initialize()
    try:
        await context.shop_service.add_pool_item(
            "Extra practice", price=5, total_count=1, related_skill_id="p1"
        )
        item = await context.shop_service.perform_gacha()

        assert await context.shop_service.purchase_item(item.id) is True

        stored_tasks = json.loads(driver.snapshot()["wisdom_data"])["tasks"]
        assert [t["name"] for t in stored_tasks] == ["Extra practice"]
        assert stored_tasks[0]["maxCount"] == 6
    finally:
        await context.shutdown()


async def test_runs_on_sql_backend(clock, rng, tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'app.db'}"
    context = make_context(SqlStorageDriver(url), clock, rng)
    await context.initialize()
    await context.skill_service.add_skill("Persistence")
    await context.shutdown()

    reopened = make_context(SqlStorageDriver(url), clock, rng)
    await reopened.initialize()
    try:
        assert [s.name for s in reopened.skill_service.skills] == ["Persistence"]
    finally:
        await reopened.shutdown()


async def test_failed_migration_aborts_startup(mocker, clock, rng):
    """Startup refuses to run on a partially migrated store."""
    driver = InMemoryStorageDriver(
        {"schema_version": "0", LEGACY_SKILLS_KEY: "{corrupt"}
    )
    close = mocker.spy(driver, "close")
    context = make_context(driver, clock, rng)

    with pytest.raises(RuntimeError) as exc_info:
        await context.initialize()

    assert isinstance(exc_info.value.__cause__, MigrationError)
    assert driver.snapshot()["schema_version"] == "0"
    close.assert_called_once()
    assert not context.is_initialized
    with pytest.raises(RuntimeError):
        _ = context.skill_service


async def test_properties_require_initialization():
    context = ApplicationContext()

    with pytest.raises(RuntimeError):
        _ = context.shop_service
    await context.shutdown()
