"""
Event system for nowgame: in-process async publish/subscribe.

Each application context owns one `EventBus`; there is no module-level
singleton.
"""

from nowgame.core.event.bus import EventBus
from nowgame.core.event.registry import ListenerRegistry, pattern_matches
from nowgame.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "ListenerRegistry",
    "pattern_matches",
    "CallbackType",
    "EventListener",
    "EventPayload",
    "ListenerPriority",
]
