"""Shared building blocks for the domain modules."""

from nowgame.modules.shared.base_repository import AggregateRepository
from nowgame.modules.shared.base_service import BaseService
from nowgame.modules.shared.domain_event import DomainEvent
from nowgame.modules.shared.exceptions import (
    CooldownActiveError,
    InsufficientResourcesError,
    NowgameDomainException,
    ValidationError,
)

__all__ = [
    "AggregateRepository",
    "BaseService",
    "DomainEvent",
    "NowgameDomainException",
    "CooldownActiveError",
    "InsufficientResourcesError",
    "ValidationError",
]
