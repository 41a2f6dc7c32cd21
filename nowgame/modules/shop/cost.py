"""
Cost hooks: the pluggable charge step in front of draws and purchases.

Prices are display-only until a wallet exists. A wallet implementation
plugs in here and vetoes an action by raising `InsufficientResourcesError`
from `charge`; the shop runs the hook before it mutates anything.
"""

from __future__ import annotations

from typing import Protocol

from nowgame.core.logging.logger import get_logger

logger = get_logger(__name__)


class CostHook(Protocol):
    async def charge(self, reason: str, amount: int) -> None:
        """Debit `amount` for `reason` ("gacha" or "purchase") or raise."""
        ...


class FreeCostHook:
    """Accepts every charge without debiting anything."""

    async def charge(self, reason: str, amount: int) -> None:
        logger.debug("Charge accepted (free)", extra={"reason": reason, "amount": amount})
