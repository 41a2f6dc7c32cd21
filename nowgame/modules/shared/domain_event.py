"""Domain events recorded during a unit of work and published after it saved."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass
class DomainEvent:
    """
    A state change observers may care about.

    Attributes
    ----------
    event_name : str
        Event name (e.g., "wisdom.skill.leveled_up")
    payload : Dict[str, Any]
        Event payload with relevant data
    occurred_at : datetime
        When the event occurred (UTC)
    """

    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
