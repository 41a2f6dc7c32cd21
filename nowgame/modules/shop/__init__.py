"""Shop module: gacha pool, time-boxed items and purchase effects."""

from nowgame.modules.shop.cost import CostHook, FreeCostHook
from nowgame.modules.shop.models import PoolEntry, ShopData, ShopItem, ShopItemType
from nowgame.modules.shop.repository import ShopRepository
from nowgame.modules.shop.service import ShopService

__all__ = [
    "CostHook",
    "FreeCostHook",
    "PoolEntry",
    "ShopData",
    "ShopItem",
    "ShopItemType",
    "ShopRepository",
    "ShopService",
]
