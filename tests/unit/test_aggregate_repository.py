"""
Unit tests for AggregateRepository through its concrete subclasses.

Reads never fail (defaults on missing or corrupt data); writes never
swallow errors.
"""

import json
from datetime import datetime

import pytest

from nowgame.core.exceptions import StorageError
from nowgame.modules.health.models import DayHealth, HealthData
from nowgame.modules.health.repository import HealthRepository
from nowgame.modules.shop.models import ShopData
from nowgame.modules.wisdom.models import Skill, WisdomData


@pytest.mark.asyncio
class TestLoad:
    """Load falls back to the empty aggregate."""

    async def test_absent_key_returns_empty(self, wisdom_repository):
        data = await wisdom_repository.load()

        assert data == WisdomData()

    async def test_invalid_json_returns_empty(self, memory_driver, wisdom_repository):
        """Garbage bytes are logged and replaced by the default."""
        await memory_driver.set_string("wisdom_data", "{{{{")

        assert await wisdom_repository.load() == WisdomData()

    async def test_wrong_shape_returns_empty(self, memory_driver, wisdom_repository):
        """A skill missing its required id is treated as corruption."""
        await memory_driver.set_string(
            "wisdom_data",
            json.dumps({"skills": [{"name": "x"}], "skillPoints": [], "tasks": []}),
        )

        assert await wisdom_repository.load() == WisdomData()

    async def test_read_failure_returns_empty(self, mocker, memory_driver, wisdom_repository):
        """A driver error on read is logged, not raised."""
        mocker.patch.object(
            memory_driver,
            "get_string",
            side_effect=StorageError("get_string", "wisdom_data", OSError("disk")),
        )

        assert await wisdom_repository.load() == WisdomData()

    async def test_health_days_that_are_not_objects_are_skipped(
        self, memory_driver, health_repository
    ):
        await memory_driver.set_string(
            "health_data",
            json.dumps(
                {
                    "2024-03-10": {"date": "2024-03-10T00:00:00", "baseScore": 90},
                    "broken": 5,
                }
            ),
        )

        data = await health_repository.load()

        assert list(data.days) == ["2024-03-10"]
        assert data.days["2024-03-10"].base_score == 90


@pytest.mark.asyncio
class TestSave:
    """Save writes the whole aggregate and propagates failures."""

    async def test_round_trips_through_storage(self, wisdom_repository):
        created = datetime(2024, 3, 10, 9, 30)
        data = WisdomData(skills=[Skill(id="s1", name="Focus", created_at=created)])

        await wisdom_repository.save(data)
        loaded = await wisdom_repository.load()

        assert loaded.skills[0].id == "s1"
        assert loaded.skills[0].created_at == created

    async def test_json_is_compact_and_keeps_unicode(self, memory_driver, wisdom_repository):
        """Non-ASCII names are stored as-is, without whitespace padding."""
        data = WisdomData(
            skills=[Skill(id="s1", name="读书", created_at=datetime(2024, 1, 1))]
        )

        await wisdom_repository.save(data)
        raw = await memory_driver.get_string("wisdom_data")

        assert "读书" in raw
        assert ", " not in raw and ": " not in raw

    async def test_write_failure_propagates(self, mocker, memory_driver, test_logger):
        """The caller sees the driver error unchanged."""
        error = StorageError("set_string", "health_data", OSError("full"))
        mocker.patch.object(memory_driver, "set_string", side_effect=error)
        repository = HealthRepository(memory_driver, test_logger)

        with pytest.raises(StorageError) as exc_info:
            await repository.save(
                HealthData(days={"2024-03-10": DayHealth(date=datetime(2024, 3, 10))})
            )

        assert exc_info.value is error

    async def test_shop_empty_document_shape(self, memory_driver, shop_repository):
        await shop_repository.save(ShopData())

        assert json.loads(await memory_driver.get_string("shop_data")) == {
            "items": [],
            "poolItems": [],
        }
