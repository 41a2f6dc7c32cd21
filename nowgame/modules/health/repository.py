"""Persistence of the Health aggregate under `health_data`."""

from __future__ import annotations

from typing import Any

from nowgame.core.migration.steps import HEALTH_DATA_KEY
from nowgame.modules.health.models import HealthData
from nowgame.modules.shared.base_repository import AggregateRepository


class HealthRepository(AggregateRepository[HealthData]):
    storage_key = HEALTH_DATA_KEY

    def empty(self) -> HealthData:
        return HealthData()

    def decode(self, data: Any) -> HealthData:
        return HealthData.from_dict(data)

    def encode(self, aggregate: HealthData) -> Any:
        return aggregate.to_dict()
