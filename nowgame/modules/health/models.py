"""
Daily health records.

One record per calendar day, keyed `YYYY-MM-DD`. A day has an optional
base score (0-100) and three deduction counters, each with the time of its
last click. The final score is `base - deductions` clamped to 0..100.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from nowgame.modules.shared.fields import (
    format_datetime,
    optional_datetime,
    optional_int,
    require_datetime,
)


class DeductionType(str, Enum):
    VISION = "vision"
    NECK = "neck"
    WAIST = "waist"


def date_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def _clamp_score(value: int) -> int:
    return max(0, min(100, value))


@dataclass
class DayHealth:
    date: datetime
    base_score: Optional[int] = None
    vision_deduction: int = 0
    neck_deduction: int = 0
    waist_deduction: int = 0
    vision_click_time: Optional[datetime] = None
    neck_click_time: Optional[datetime] = None
    waist_click_time: Optional[datetime] = None

    @property
    def key(self) -> str:
        return date_key(self.date)

    @property
    def total_deduction(self) -> int:
        return self.vision_deduction + self.neck_deduction + self.waist_deduction

    @property
    def final_score(self) -> Optional[int]:
        if self.base_score is None:
            return None
        return _clamp_score(self.base_score - self.total_deduction)

    def deduction(self, kind: DeductionType) -> int:
        return getattr(self, f"{kind.value}_deduction")

    def click_time(self, kind: DeductionType) -> Optional[datetime]:
        return getattr(self, f"{kind.value}_click_time")

    def record_click(self, kind: DeductionType, step: int, at: datetime) -> None:
        setattr(self, f"{kind.value}_deduction", self.deduction(kind) + step)
        setattr(self, f"{kind.value}_click_time", at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseScore": self.base_score,
            "visionDeduction": self.vision_deduction,
            "neckDeduction": self.neck_deduction,
            "waistDeduction": self.waist_deduction,
            "date": format_datetime(self.date),
            "visionClickTime": format_datetime(self.vision_click_time),
            "neckClickTime": format_datetime(self.neck_click_time),
            "waistClickTime": format_datetime(self.waist_click_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DayHealth:
        base = data.get("baseScore")
        if base is not None and (isinstance(base, bool) or not isinstance(base, int)):
            raise TypeError(f"'baseScore' must be an integer, got {type(base).__name__}")
        return cls(
            date=require_datetime(data, "date"),
            base_score=base,
            vision_deduction=optional_int(data, "visionDeduction", 0),
            neck_deduction=optional_int(data, "neckDeduction", 0),
            waist_deduction=optional_int(data, "waistDeduction", 0),
            vision_click_time=optional_datetime(data, "visionClickTime"),
            neck_click_time=optional_datetime(data, "neckClickTime"),
            waist_click_time=optional_datetime(data, "waistClickTime"),
        )


@dataclass
class HealthData:
    """The Health aggregate: date key -> day record."""

    days: dict[str, DayHealth] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {key: day.to_dict() for key, day in self.days.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthData:
        if not isinstance(data, dict):
            raise TypeError(f"health aggregate must be an object, got {type(data).__name__}")
        # Non-object entries are ignored rather than failing the whole map.
        return cls(
            days={
                key: DayHealth.from_dict(value)
                for key, value in data.items()
                if isinstance(value, dict)
            }
        )
