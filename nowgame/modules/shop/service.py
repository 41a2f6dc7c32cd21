"""
ShopService: gacha draws, time-boxed items and purchases.

Purpose
-------
Own the shop aggregate in memory, turn pool stock into items through
random draws, evict expired items lazily, and dispatch purchase effects.

Behaviour
---------
- `items` drops expired items (`now >= expire_at`) on read. When that
  changes the list, one background save is scheduled; the read itself
  never waits for storage. A failed background save is logged.
- `perform_gacha` rebuilds the eligible list on every call, picks one
  entry uniformly, decrements its stock and creates an item valid for
  `shop.item_duration_seconds`. An empty pool returns None.
- `purchase_item` returns False for an unknown id, removes and reports an
  expired item, and otherwise runs the effect for the item's type (a
  task voucher creates a task) before removing it.
- The cost hook is charged before any mutation.
- Mutations are serialised by one asyncio.Lock; every foreground save
  propagates its error and observers are notified only after a save.

Dependencies
------------
- ShopRepository, TaskService (voucher effect), CostHook
- ConfigManager: shop.gacha_cost, shop.item_duration_seconds,
  shop.task_voucher_max_count
"""

from __future__ import annotations

import asyncio
import random
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from nowgame.modules.shared.base_service import BaseService
from nowgame.modules.shared.fields import Clock, local_now, new_id
from nowgame.modules.shop.cost import CostHook, FreeCostHook
from nowgame.modules.shop.models import (
    DEFAULT_SHOP_ICON,
    PoolEntry,
    ShopData,
    ShopItem,
    ShopItemType,
)

if TYPE_CHECKING:
    from logging import Logger

    from nowgame.core.config.manager import ConfigManager
    from nowgame.core.event.bus import EventBus
    from nowgame.modules.shop.repository import ShopRepository
    from nowgame.modules.wisdom.task_service import TaskService

SHOP_CHANGED = "shop.changed"
GACHA_DRAWN = "shop.gacha.drawn"
ITEM_PURCHASED = "shop.item.purchased"
ITEM_EXPIRED = "shop.item.expired"


class ShopService(BaseService):
    def __init__(
        self,
        repository: ShopRepository,
        task_service: TaskService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Clock = local_now,
        rng: Optional[random.Random] = None,
        cost_hook: Optional[CostHook] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._repository = repository
        self._tasks = task_service
        self._clock = clock
        self._rng = rng or random.Random()
        self._cost_hook: CostHook = cost_hook or FreeCostHook()
        self._data = ShopData()
        self._lock = asyncio.Lock()
        self._pending_saves: set[asyncio.Task[None]] = set()
        self._effects: dict[ShopItemType, Callable[[ShopItem], Awaitable[None]]] = {
            ShopItemType.TASK_VOUCHER: self._redeem_task_voucher,
        }

    async def load(self) -> None:
        async with self._lock:
            self._data = await self._repository.load()
        self.log.info(
            "Shop data loaded",
            extra={
                "items": len(self._data.items),
                "pool_items": len(self._data.pool_items),
            },
        )

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    @property
    def items(self) -> list[ShopItem]:
        """Live items. Expired ones are evicted here."""
        now = self._clock()
        live = [i for i in self._data.items if not i.is_expired(now)]
        if len(live) != len(self._data.items):
            expired = [i for i in self._data.items if i.is_expired(now)]
            self._data.items = live
            self._schedule_save(expired)
        return list(live)

    @property
    def pool_items(self) -> list[PoolEntry]:
        return list(self._data.pool_items)

    def get_item_by_id(self, item_id: str) -> Optional[ShopItem]:
        return next((i for i in self._data.items if i.id == item_id), None)

    # ------------------------------------------------------------------ #
    # Persistence helpers
    # ------------------------------------------------------------------ #

    def _schedule_save(self, expired: list[ShopItem]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the pruned list is written by the next mutation.
            self.log.debug("No running loop, eviction save deferred")
            return

        task = loop.create_task(self._save_evicted(expired), name="shop-evict-save")
        self._pending_saves.add(task)
        task.add_done_callback(self._on_background_save_done)

    async def _save_evicted(self, expired: list[ShopItem]) -> None:
        async with self._lock:
            await self._repository.save(self._data)
        for item in expired:
            await self.emit_event(ITEM_EXPIRED, {"item_id": item.id, "name": item.name})
        await self._notify("evict_expired")

    def _on_background_save_done(self, task: asyncio.Task[None]) -> None:
        self._pending_saves.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log_error("evict_expired", exc, background=True)

    async def drain_pending_saves(self) -> None:
        """Wait for background eviction saves still in flight."""
        while self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)

    async def _notify(self, operation: str, **data: Any) -> None:
        await self.emit_event(SHOP_CHANGED, {"operation": operation, "persisted": True, **data})

    # ------------------------------------------------------------------ #
    # Gacha
    # ------------------------------------------------------------------ #

    async def perform_gacha(self) -> Optional[ShopItem]:
        """Draw one item from the pool, or return None when nothing is left."""
        async with self._lock:
            eligible = [
                index
                for index, entry in enumerate(self._data.pool_items)
                if not entry.is_exhausted
            ]
            if not eligible:
                self.log.info("Gacha draw skipped, pool exhausted")
                return None

            cost = int(self.get_config("shop.gacha_cost", 10))
            await self._cost_hook.charge("gacha", cost)

            entry = self._data.pool_items[self._rng.choice(eligible)]
            entry.remaining_count -= 1

            now = self._clock()
            duration = timedelta(
                seconds=int(self.get_config("shop.item_duration_seconds", 86400))
            )
            item = ShopItem(
                id=new_id(),
                name=entry.name,
                type=ShopItemType.TASK_VOUCHER,
                icon_code_point=entry.icon_code_point,
                price=entry.price,
                created_at=now,
                expire_at=now + duration,
                total_duration=duration,
                related_skill_id=entry.related_skill_id,
                related_skill_name=entry.related_skill_name,
            )
            self._data.items.append(item)
            await self._repository.save(self._data)

        self.log_operation(
            "perform_gacha",
            pool_entry_id=entry.id,
            item_id=item.id,
            remaining_count=entry.remaining_count,
        )
        await self.emit_event(
            GACHA_DRAWN,
            {"item_id": item.id, "pool_entry_id": entry.id, "name": item.name},
        )
        await self._notify("perform_gacha")
        return item

    # ------------------------------------------------------------------ #
    # Purchase
    # ------------------------------------------------------------------ #

    async def purchase_item(self, item_id: str) -> bool:
        async with self._lock:
            item = self.get_item_by_id(item_id)
            if item is None:
                self.log.info("Purchase of unknown item", extra={"item_id": item_id})
                return False

            if item.is_expired(self._clock()):
                self._discard_item(item.id)
                await self._repository.save(self._data)
                expired = True
            else:
                await self._cost_hook.charge("purchase", item.price)
                await self._effects[item.type](item)
                # A read of `items` during the effect may already have evicted it.
                self._discard_item(item.id)
                await self._repository.save(self._data)
                expired = False

        if expired:
            await self.emit_event(ITEM_EXPIRED, {"item_id": item.id, "name": item.name})
            await self._notify("purchase_item", item_id=item.id, purchased=False)
            return False

        self.log_operation("purchase_item", item_id=item.id, item_type=item.type.value)
        await self.emit_event(
            ITEM_PURCHASED,
            {"item_id": item.id, "item_type": item.type.value, "price": item.price},
        )
        await self._notify("purchase_item", item_id=item.id, purchased=True)
        return True

    def _discard_item(self, item_id: str) -> None:
        self._data.items = [i for i in self._data.items if i.id != item_id]

    async def _redeem_task_voucher(self, item: ShopItem) -> None:
        max_count = int(self.get_config("shop.task_voucher_max_count", 6))
        await self._tasks.add_task(
            name=item.name,
            skill_id=item.related_skill_id,
            skill_name=item.related_skill_name,
            max_count=max_count,
            icon_code_point=item.icon_code_point,
        )

    # ------------------------------------------------------------------ #
    # Pool management
    # ------------------------------------------------------------------ #

    async def add_pool_item(
        self,
        name: str,
        price: int,
        total_count: int,
        icon_code_point: int = DEFAULT_SHOP_ICON,
        related_skill_id: str = "",
        related_skill_name: str = "",
    ) -> PoolEntry:
        name = self.validate_name(name)
        self.validate_non_negative_int(price, "price")
        self.validate_non_negative_int(total_count, "total_count")

        entry = PoolEntry(
            id=new_id(),
            name=name,
            price=price,
            icon_code_point=icon_code_point,
            remaining_count=total_count,
            total_count=total_count,
            related_skill_id=related_skill_id,
            related_skill_name=related_skill_name,
        )
        async with self._lock:
            self._data.pool_items.append(entry)
            await self._repository.save(self._data)

        self.log_operation("add_pool_item", pool_entry_id=entry.id, total_count=total_count)
        await self._notify("add_pool_item", pool_entry_id=entry.id)
        return entry

    async def remove_pool_item(self, entry_id: str) -> bool:
        async with self._lock:
            entry = next((p for p in self._data.pool_items if p.id == entry_id), None)
            if entry is None:
                return False
            self._data.pool_items.remove(entry)
            await self._repository.save(self._data)

        self.log_operation("remove_pool_item", pool_entry_id=entry_id)
        await self._notify("remove_pool_item", pool_entry_id=entry_id)
        return True
