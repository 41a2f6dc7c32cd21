"""
Concrete migration chain.

v1  legacy per-collection keys aggregated into `wisdom_data` / `health_data`
v2  main quest module introduced (nothing to migrate)
v3  main quests folded into wisdom skills
v4  shop module introduced (nothing to migrate)

Steps never delete legacy keys.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from nowgame.core.logging.logger import get_logger
from nowgame.core.migration.engine import MigrationStep
from nowgame.core.storage.driver import StorageDriver

logger = get_logger(__name__)

APP_SCHEMA_VERSION = 4

WISDOM_DATA_KEY = "wisdom_data"
HEALTH_DATA_KEY = "health_data"
SHOP_DATA_KEY = "shop_data"

LEGACY_SKILLS_KEY = "wisdom_skills"
LEGACY_SKILL_POINTS_KEY = "wisdom_skill_points"
LEGACY_TASKS_KEY = "wisdom_tasks"
LEGACY_HEALTH_KEY = "health_data_map"
LEGACY_MAIN_QUEST_KEY = "main_quest_data"

DEFAULT_SKILL_ICON = 0xE894


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


async def aggregate_legacy_keys(driver: StorageDriver) -> None:
    skills_raw = await driver.get_string(LEGACY_SKILLS_KEY)
    points_raw = await driver.get_string(LEGACY_SKILL_POINTS_KEY)
    tasks_raw = await driver.get_string(LEGACY_TASKS_KEY)

    if skills_raw is not None or points_raw is not None or tasks_raw is not None:
        wisdom = {
            "skills": json.loads(skills_raw) if skills_raw is not None else [],
            "skillPoints": json.loads(points_raw) if points_raw is not None else [],
            "tasks": json.loads(tasks_raw) if tasks_raw is not None else [],
        }
        await driver.set_string(WISDOM_DATA_KEY, _dumps(wisdom))
        logger.info(
            "Legacy wisdom keys aggregated",
            extra={
                "skills": len(wisdom["skills"]),
                "skill_points": len(wisdom["skillPoints"]),
                "tasks": len(wisdom["tasks"]),
            },
        )

    health_raw = await driver.get_string(LEGACY_HEALTH_KEY)
    if health_raw is not None:
        await driver.set_string(HEALTH_DATA_KEY, health_raw)
        logger.info("Legacy health map copied")


async def introduce_main_quest(driver: StorageDriver) -> None:
    logger.debug("Main quest module introduced, nothing to migrate")


def _quest_to_skill(quest: dict[str, Any]) -> dict[str, Any]:
    current = quest.get("currentCount")
    max_count = quest.get("maxCount")
    icon = quest.get("iconCodePoint")
    return {
        "id": quest["id"],
        "name": quest["name"],
        "level": 1,
        "currentXp": current if current is not None else 0,
        "maxXp": max_count if max_count is not None else 100,
        "iconCodePoint": icon if icon is not None else DEFAULT_SKILL_ICON,
        "deadline": quest.get("deadline"),
        # Skills require a creation time; quests saved without one get the migration time.
        "createdAt": quest.get("createdAt") or datetime.now().isoformat(),
    }


async def merge_main_quests_into_skills(driver: StorageDriver) -> None:
    raw = await driver.get_string(LEGACY_MAIN_QUEST_KEY)
    if raw is None:
        logger.debug("No main quest data, skipping")
        return

    try:
        quests = json.loads(raw).get("quests") or []
        if not quests:
            logger.debug("Main quest list empty, skipping")
            return
        converted = [_quest_to_skill(q) for q in quests]
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        logger.error(
            "Main quest data could not be decoded, left in place",
            extra={"storage_key": LEGACY_MAIN_QUEST_KEY, "error": str(exc)},
        )
        return

    wisdom_raw = await driver.get_string(WISDOM_DATA_KEY)
    try:
        wisdom = (
            json.loads(wisdom_raw)
            if wisdom_raw is not None
            else {"skills": [], "skillPoints": [], "tasks": []}
        )
        wisdom["skills"] = list(wisdom.get("skills") or []) + converted
    except (ValueError, TypeError, AttributeError) as exc:
        logger.error(
            "Existing wisdom data could not be decoded, main quests not merged",
            extra={"storage_key": WISDOM_DATA_KEY, "error": str(exc)},
        )
        return

    await driver.set_string(WISDOM_DATA_KEY, _dumps(wisdom))
    logger.info("Main quests merged into skills", extra={"merged": len(converted)})


async def introduce_shop(driver: StorageDriver) -> None:
    logger.debug("Shop module introduced, nothing to migrate")


def build_migration_steps() -> list[MigrationStep]:
    return [
        MigrationStep(1, "aggregate_legacy_keys", aggregate_legacy_keys),
        MigrationStep(2, "introduce_main_quest", introduce_main_quest),
        MigrationStep(3, "merge_main_quests_into_skills", merge_main_quests_into_skills),
        MigrationStep(4, "introduce_shop", introduce_shop),
    ]
