"""Persistence of the Wisdom aggregate under `wisdom_data`."""

from __future__ import annotations

from typing import Any

from nowgame.core.migration.steps import WISDOM_DATA_KEY
from nowgame.modules.shared.base_repository import AggregateRepository
from nowgame.modules.wisdom.models import WisdomData


class WisdomRepository(AggregateRepository[WisdomData]):
    storage_key = WISDOM_DATA_KEY

    def empty(self) -> WisdomData:
        return WisdomData()

    def decode(self, data: Any) -> WisdomData:
        return WisdomData.from_dict(data)

    def encode(self, aggregate: WisdomData) -> Any:
        return aggregate.to_dict()
