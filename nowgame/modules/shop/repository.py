"""Persistence of the Shop aggregate under `shop_data`."""

from __future__ import annotations

from typing import Any

from nowgame.core.migration.steps import SHOP_DATA_KEY
from nowgame.modules.shared.base_repository import AggregateRepository
from nowgame.modules.shop.models import ShopData


class ShopRepository(AggregateRepository[ShopData]):
    storage_key = SHOP_DATA_KEY

    def empty(self) -> ShopData:
        return ShopData()

    def decode(self, data: Any) -> ShopData:
        return ShopData.from_dict(data)

    def encode(self, aggregate: ShopData) -> Any:
        return aggregate.to_dict()
