"""
Pytest Configuration and Fixtures for the nowgame Test Suite
============================================================

Purpose
-------
Centralized fixtures for unit and integration tests: storage drivers,
event bus, configuration, a controllable clock and fully wired services.

Responsibilities
----------------
- In-memory storage driver per test (clean slate)
- Real EventBus plus an `EventRecorder` that captures every publish
- Mock ConfigManager that answers with each caller's code default
- `FrozenClock` so expiry, cooldown and timestamps are deterministic
- Service factories wired the same way ApplicationContext wires them

Non-Responsibilities
--------------------
- Test implementation (delegated to test files)
- Production configuration (tests never read config/ unless they ask to)

Architecture Notes
------------------
- Unit tests use the in-memory driver and mocks (fast, isolated)
- Integration tests use SQLite in memory through aiosqlite and the full
  ApplicationContext
- Every fixture is function scoped; nothing leaks between tests
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from nowgame.core.event.bus import EventBus
from nowgame.core.logging.logger import get_logger
from nowgame.core.storage.memory import InMemoryStorageDriver
from nowgame.modules.health.repository import HealthRepository
from nowgame.modules.health.service import HealthService
from nowgame.modules.shop.repository import ShopRepository
from nowgame.modules.shop.service import ShopService
from nowgame.modules.wisdom.repository import WisdomRepository
from nowgame.modules.wisdom.skill_point_service import SkillPointService
from nowgame.modules.wisdom.skill_service import SkillService
from nowgame.modules.wisdom.store import WisdomStore
from nowgame.modules.wisdom.task_service import TaskService

logger = get_logger(__name__)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests against real storage")


# ============================================================================
# TEST HELPERS
# ============================================================================


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


class EventRecorder:
    """Collects (event_name, payload) pairs published on a bus."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, event_name: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event_name]

    def clear(self) -> None:
        self.events.clear()


# ============================================================================
# INFRASTRUCTURE FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    """
    Deterministic local clock, starting at 2024-03-10 12:00.

    Scope: function
    """
    return FrozenClock(datetime(2024, 3, 10, 12, 0, 0))


@pytest.fixture
def rng() -> random.Random:
    """Seeded RNG for reproducible gacha draws."""
    return random.Random(1234)


@pytest.fixture
def test_logger() -> logging.Logger:
    return get_logger("tests")


@pytest_asyncio.fixture
async def memory_driver() -> AsyncGenerator[InMemoryStorageDriver, None]:
    """
    Initialized in-memory storage driver.

    Scope: function
    Uses: Unit tests for repositories, services and migrations
    """
    driver = InMemoryStorageDriver()
    await driver.init()
    yield driver
    await driver.close()


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    Uses: Unit tests that need to mock event publishing
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock()
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def mock_config_manager(mocker):
    """
    Mock ConfigManager that returns the caller's default for every key.

    Scope: function
    Uses: Unit tests; override single keys with `overrides[...] = value`
    """
    overrides: dict[str, Any] = {}
    mock_config = mocker.MagicMock()
    mock_config.overrides = overrides
    mock_config.get = mocker.MagicMock(
        side_effect=lambda key, default=None: overrides.get(key, default)
    )
    return mock_config


@pytest.fixture
def event_bus() -> EventBus:
    """Real EventBus with short listener timeouts."""
    return EventBus(critical_timeout_seconds=1.0, high_timeout_seconds=1.0)


@pytest.fixture
def recorder(event_bus: EventBus) -> EventRecorder:
    """Records every event published on `event_bus`, in publish order."""
    rec = EventRecorder()
    original_publish = event_bus.publish

    async def recording_publish(event_name: str, data: dict[str, Any]) -> list[Any]:
        rec.events.append((event_name, dict(data)))
        return await original_publish(event_name, data)

    event_bus.publish = recording_publish  # type: ignore[method-assign]
    return rec


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def wisdom_repository(memory_driver, test_logger) -> WisdomRepository:
    return WisdomRepository(memory_driver, test_logger)


@pytest.fixture
def wisdom_store(wisdom_repository, event_bus, recorder) -> WisdomStore:
    return WisdomStore(wisdom_repository, event_bus)


@pytest.fixture
def skill_service(
    wisdom_store, mock_config_manager, event_bus, test_logger, clock
) -> SkillService:
    return SkillService(wisdom_store, mock_config_manager, event_bus, test_logger, clock)


@pytest.fixture
def skill_point_service(
    wisdom_store, skill_service, mock_config_manager, event_bus, test_logger, clock
) -> SkillPointService:
    return SkillPointService(
        wisdom_store, skill_service, mock_config_manager, event_bus, test_logger, clock
    )


@pytest.fixture
def task_service(
    wisdom_store, skill_point_service, mock_config_manager, event_bus, test_logger, clock
) -> TaskService:
    return TaskService(
        wisdom_store, skill_point_service, mock_config_manager, event_bus, test_logger, clock
    )


@pytest.fixture
def shop_repository(memory_driver, test_logger) -> ShopRepository:
    return ShopRepository(memory_driver, test_logger)


@pytest.fixture
def shop_service(
    shop_repository, task_service, mock_config_manager, event_bus, test_logger, clock, rng
) -> ShopService:
    return ShopService(
        shop_repository,
        task_service,
        mock_config_manager,
        event_bus,
        test_logger,
        clock=clock,
        rng=rng,
    )


@pytest.fixture
def health_repository(memory_driver, test_logger) -> HealthRepository:
    return HealthRepository(memory_driver, test_logger)


@pytest.fixture
def health_service(
    health_repository, mock_config_manager, event_bus, test_logger, clock
) -> HealthService:
    return HealthService(health_repository, mock_config_manager, event_bus, test_logger, clock)
