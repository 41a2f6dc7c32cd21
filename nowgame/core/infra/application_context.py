"""
Application Context (Kernel) - nowgame bootstrap and dependency injection
=========================================================================

Purpose
-------
Build every component in dependency order and hand the resulting services
to callers. Nothing is a global singleton: a context owns its driver,
event bus, repositories and services, and tests can build as many
contexts as they need.

Initialization Order (Critical)
-------------------------------
    1. ConfigManager
    2. Storage driver `init()`
    3. Migrations to APP_SCHEMA_VERSION (barrier: no repository is created
       before this returns)
    4. Repositories
    5. WisdomStore + Skill / SkillPoint / Task services (load)
    6. ShopService (load)
    7. HealthService (load)

Shutdown Order
--------------
    1. Commit in-memory task progress
    2. Wait for background shop saves
    3. Close the storage driver
"""

from __future__ import annotations

import random
import time
from typing import Optional, TypeVar

from nowgame.core.config.manager import ConfigManager
from nowgame.core.event.bus import EventBus
from nowgame.core.logging.logger import get_logger
from nowgame.core.migration import (
    APP_SCHEMA_VERSION,
    MigrationEngine,
    build_migration_steps,
)
from nowgame.core.storage.driver import StorageDriver
from nowgame.core.storage.factory import create_storage_driver
from nowgame.modules.health.repository import HealthRepository
from nowgame.modules.health.service import HealthService
from nowgame.modules.shared.fields import Clock, local_now
from nowgame.modules.shop.cost import CostHook
from nowgame.modules.shop.repository import ShopRepository
from nowgame.modules.shop.service import ShopService
from nowgame.modules.wisdom.repository import WisdomRepository
from nowgame.modules.wisdom.skill_point_service import SkillPointService
from nowgame.modules.wisdom.skill_service import SkillService
from nowgame.modules.wisdom.store import WisdomStore
from nowgame.modules.wisdom.task_service import TaskService

logger = get_logger(__name__)

T = TypeVar("T")


class ApplicationContext:
    """
    Kernel for bootstrap ordering and dependency injection.

    Usage:
        context = ApplicationContext()
        await context.initialize()
        await context.task_service.increment(task_id)
        await context.shutdown()
    """

    def __init__(
        self,
        storage_driver: Optional[StorageDriver] = None,
        config_manager: Optional[ConfigManager] = None,
        event_bus: Optional[EventBus] = None,
        clock: Clock = local_now,
        rng: Optional[random.Random] = None,
        cost_hook: Optional[CostHook] = None,
    ) -> None:
        self._driver = storage_driver
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._clock = clock
        self._rng = rng
        self._cost_hook = cost_hook

        self._schema_version: Optional[int] = None
        self._wisdom_store: Optional[WisdomStore] = None
        self._skill_service: Optional[SkillService] = None
        self._skill_point_service: Optional[SkillPointService] = None
        self._task_service: Optional[TaskService] = None
        self._shop_service: Optional[ShopService] = None
        self._health_service: Optional[HealthService] = None
        self._initialized: bool = False

        logger.debug("ApplicationContext created")

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    async def initialize(self) -> None:
        """
        Initialize every component in dependency order.

        Raises:
            RuntimeError: If already initialized or any step fails (a failed
                migration is chained as the cause)
        """
        if self._initialized:
            raise RuntimeError("ApplicationContext already initialized")

        logger.info("=" * 70)
        logger.info("APPLICATION CONTEXT INITIALIZATION")
        logger.info("=" * 70)

        start_time = time.perf_counter()

        try:
            # Step 1: ConfigManager
            step_start = time.perf_counter()
            if self._config_manager is None:
                self._config_manager = ConfigManager()
            if not self._config_manager.is_initialized:
                await self._config_manager.initialize()
            if self._event_bus is None:
                self._event_bus = EventBus(self._config_manager)
            logger.info(
                "✓ ConfigManager initialized (%.2fms)",
                (time.perf_counter() - step_start) * 1000,
            )

            # Step 2: Storage driver
            step_start = time.perf_counter()
            if self._driver is None:
                self._driver = create_storage_driver()
            await self._driver.init()
            logger.info(
                "✓ Storage driver '%s' initialized (%.2fms)",
                self._driver.name,
                (time.perf_counter() - step_start) * 1000,
            )

            # Step 3: Migrations
            step_start = time.perf_counter()
            engine = MigrationEngine(self._driver, get_logger("nowgame.core.migration"))
            self._schema_version = await engine.migrate(
                APP_SCHEMA_VERSION, build_migration_steps()
            )
            logger.info(
                "✓ Schema at v%d (%.2fms)",
                self._schema_version,
                (time.perf_counter() - step_start) * 1000,
            )

            # Step 4: Repositories
            wisdom_repository = WisdomRepository(
                self._driver, get_logger("nowgame.modules.wisdom.repository")
            )
            shop_repository = ShopRepository(
                self._driver, get_logger("nowgame.modules.shop.repository")
            )
            health_repository = HealthRepository(
                self._driver, get_logger("nowgame.modules.health.repository")
            )

            # Step 5: Wisdom
            step_start = time.perf_counter()
            self._wisdom_store = WisdomStore(
                wisdom_repository,
                self._event_bus,
                get_logger("nowgame.modules.wisdom.store"),
            )
            self._skill_service = SkillService(
                self._wisdom_store,
                self._config_manager,
                self._event_bus,
                get_logger("nowgame.modules.wisdom.skill_service"),
                clock=self._clock,
            )
            self._skill_point_service = SkillPointService(
                self._wisdom_store,
                self._skill_service,
                self._config_manager,
                self._event_bus,
                get_logger("nowgame.modules.wisdom.skill_point_service"),
                clock=self._clock,
            )
            self._task_service = TaskService(
                self._wisdom_store,
                self._skill_point_service,
                self._config_manager,
                self._event_bus,
                get_logger("nowgame.modules.wisdom.task_service"),
                clock=self._clock,
            )
            await self._wisdom_store.load()
            logger.info(
                "✓ Wisdom services ready (%.2fms)",
                (time.perf_counter() - step_start) * 1000,
            )

            # Step 6: Shop
            step_start = time.perf_counter()
            self._shop_service = ShopService(
                shop_repository,
                self._task_service,
                self._config_manager,
                self._event_bus,
                get_logger("nowgame.modules.shop.service"),
                clock=self._clock,
                rng=self._rng,
                cost_hook=self._cost_hook,
            )
            await self._shop_service.load()
            logger.info(
                "✓ Shop service ready (%.2fms)",
                (time.perf_counter() - step_start) * 1000,
            )

            # Step 7: Health
            step_start = time.perf_counter()
            self._health_service = HealthService(
                health_repository,
                self._config_manager,
                self._event_bus,
                get_logger("nowgame.modules.health.service"),
                clock=self._clock,
            )
            await self._health_service.load()
            logger.info(
                "✓ Health service ready (%.2fms)",
                (time.perf_counter() - step_start) * 1000,
            )

            self._initialized = True
            logger.info("=" * 70)
            logger.info("✓ Application context initialized successfully")
            logger.info("  Total time: %.2fms", (time.perf_counter() - start_time) * 1000)
            logger.info("=" * 70)

        except Exception as exc:
            logger.critical(
                "Application context initialization failed",
                extra={
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            await self._emergency_shutdown()
            raise RuntimeError("Failed to initialize application context") from exc

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def commit_progress(self) -> list[str]:
        """Commit point for in-memory task progress (view exit, backgrounding)."""
        return await self.task_service.commit_progress()

    async def shutdown(self) -> None:
        """Commit task progress, flush background saves, close the driver."""
        if not self._initialized:
            logger.warning("ApplicationContext not initialized, nothing to shut down")
            return

        logger.info("=" * 70)
        logger.info("APPLICATION CONTEXT SHUTDOWN")
        logger.info("=" * 70)

        try:
            # Step 1: Commit task progress
            if self._task_service is not None:
                completed = await self._task_service.commit_progress()
                logger.info("✓ Task progress committed (%d completed)", len(completed))

            # Step 2: Drain background work
            if self._shop_service is not None:
                await self._shop_service.drain_pending_saves()
                logger.info("✓ Pending shop saves drained")
            if self._event_bus is not None:
                await self._event_bus.drain()
        finally:
            # Step 3: Close storage
            if self._driver is not None:
                await self._driver.close()
                logger.info("✓ Storage driver closed")
            self._initialized = False

        logger.info("=" * 70)
        logger.info("✓ Application context shutdown complete")
        logger.info("=" * 70)

    async def _emergency_shutdown(self) -> None:
        """Best-effort cleanup when initialization fails partway through."""
        logger.warning("Performing emergency shutdown")

        if self._driver is not None:
            try:
                await self._driver.close()
            except Exception as exc:
                logger.error(
                    "Error closing storage driver during emergency shutdown",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    def _require(self, value: Optional[T], name: str) -> T:
        if not self._initialized or value is None:
            raise RuntimeError(f"{name} not initialized")
        return value

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def schema_version(self) -> int:
        return self._require(self._schema_version, "schema_version")

    @property
    def config_manager(self) -> ConfigManager:
        return self._require(self._config_manager, "ConfigManager")

    @property
    def event_bus(self) -> EventBus:
        return self._require(self._event_bus, "EventBus")

    @property
    def storage_driver(self) -> StorageDriver:
        return self._require(self._driver, "StorageDriver")

    @property
    def wisdom_store(self) -> WisdomStore:
        return self._require(self._wisdom_store, "WisdomStore")

    @property
    def skill_service(self) -> SkillService:
        return self._require(self._skill_service, "SkillService")

    @property
    def skill_point_service(self) -> SkillPointService:
        return self._require(self._skill_point_service, "SkillPointService")

    @property
    def task_service(self) -> TaskService:
        return self._require(self._task_service, "TaskService")

    @property
    def shop_service(self) -> ShopService:
        return self._require(self._shop_service, "ShopService")

    @property
    def health_service(self) -> HealthService:
        return self._require(self._health_service, "HealthService")
