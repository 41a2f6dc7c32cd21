"""
Shop domain models.

`PoolEntry` is a gacha template with a remaining stock. A draw turns one
unit of stock into a time-boxed `ShopItem`, which disappears when it
expires or is purchased.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from nowgame.modules.shared.fields import (
    format_datetime,
    optional_int,
    optional_str,
    require_datetime,
    require_list,
    require_str,
)

DEFAULT_SHOP_ICON = 0xE8E5
DEFAULT_PRICE = 10
DEFAULT_ITEM_DURATION_SECS = 3600


class ShopItemType(str, Enum):
    TASK_VOUCHER = "taskVoucher"

    @classmethod
    def parse(cls, value: Any) -> ShopItemType:
        """Unknown or missing types fall back to a task voucher."""
        try:
            return cls(value)
        except ValueError:
            return cls.TASK_VOUCHER


@dataclass
class ShopItem:
    id: str
    name: str
    created_at: datetime
    expire_at: datetime
    type: ShopItemType = ShopItemType.TASK_VOUCHER
    icon_code_point: int = DEFAULT_SHOP_ICON
    price: int = DEFAULT_PRICE
    total_duration: timedelta = field(
        default_factory=lambda: timedelta(seconds=DEFAULT_ITEM_DURATION_SECS)
    )
    related_skill_id: str = ""
    related_skill_name: str = ""

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expire_at

    def remaining(self, now: datetime) -> timedelta:
        return max(self.expire_at - now, timedelta(0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "iconCodePoint": self.icon_code_point,
            "price": self.price,
            "createdAt": format_datetime(self.created_at),
            "expireAt": format_datetime(self.expire_at),
            "totalDurationSecs": int(self.total_duration.total_seconds()),
            "relatedSkillId": self.related_skill_id,
            "relatedSkillName": self.related_skill_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShopItem:
        return cls(
            id=require_str(data, "id"),
            name=require_str(data, "name"),
            type=ShopItemType.parse(data.get("type")),
            icon_code_point=optional_int(data, "iconCodePoint", DEFAULT_SHOP_ICON),
            price=optional_int(data, "price", DEFAULT_PRICE),
            created_at=require_datetime(data, "createdAt"),
            expire_at=require_datetime(data, "expireAt"),
            total_duration=timedelta(
                seconds=optional_int(data, "totalDurationSecs", DEFAULT_ITEM_DURATION_SECS)
            ),
            related_skill_id=optional_str(data, "relatedSkillId", "") or "",
            related_skill_name=optional_str(data, "relatedSkillName", "") or "",
        )


@dataclass
class PoolEntry:
    id: str
    name: str
    price: int = DEFAULT_PRICE
    icon_code_point: int = DEFAULT_SHOP_ICON
    remaining_count: int = 0
    total_count: int = 0
    related_skill_id: str = ""
    related_skill_name: str = ""

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_count <= 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "iconCodePoint": self.icon_code_point,
            "remainingCount": self.remaining_count,
            "totalCount": self.total_count,
            "relatedSkillId": self.related_skill_id,
            "relatedSkillName": self.related_skill_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PoolEntry:
        return cls(
            id=require_str(data, "id"),
            name=require_str(data, "name"),
            price=optional_int(data, "price", DEFAULT_PRICE),
            icon_code_point=optional_int(data, "iconCodePoint", DEFAULT_SHOP_ICON),
            remaining_count=optional_int(data, "remainingCount", 0),
            total_count=optional_int(data, "totalCount", 0),
            related_skill_id=optional_str(data, "relatedSkillId", "") or "",
            related_skill_name=optional_str(data, "relatedSkillName", "") or "",
        )


@dataclass
class ShopData:
    """The Shop aggregate: live items plus the gacha pool."""

    items: list[ShopItem] = field(default_factory=list)
    pool_items: list[PoolEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "poolItems": [p.to_dict() for p in self.pool_items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShopData:
        if not isinstance(data, dict):
            raise TypeError(f"shop aggregate must be an object, got {type(data).__name__}")
        return cls(
            items=[ShopItem.from_dict(i) for i in require_list(data, "items")],
            pool_items=[PoolEntry.from_dict(p) for p in require_list(data, "poolItems")],
        )
