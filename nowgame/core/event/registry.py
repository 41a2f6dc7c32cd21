"""
ListenerRegistry: storage and lookup for EventBus listeners.

Exact names ("shop.changed") and wildcard patterns ("wisdom.*", "*") are
kept apart; lookups merge both and order the result by
(priority, identifier) so execution order is deterministic.

Registry methods are synchronous: on a single asyncio loop, dictionary
mutations are atomic between awaits, so no locking is needed.
"""

from __future__ import annotations

from fnmatch import fnmatchcase

from nowgame.core.event.types import EventListener


def _sort_key(listener: EventListener) -> tuple[int, str]:
    return (listener.priority.value, listener.identifier)


def pattern_matches(event_name: str, pattern: str) -> bool:
    """
    Match an event name against an exact name or `*` wildcard pattern.

    >>> pattern_matches("wisdom.changed", "wisdom.*")
    True
    >>> pattern_matches("shop.changed", "wisdom.*")
    False
    """
    if "*" not in pattern:
        return event_name == pattern
    return fnmatchcase(event_name, pattern)


class ListenerRegistry:
    """Registry for exact and wildcard event listeners."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._wildcard_listeners: list[tuple[str, EventListener]] = []

    def add_listener(
        self,
        event_name: str,
        listener: EventListener,
        *,
        allow_duplicates: bool,
    ) -> bool:
        """Register a listener; returns False when rejected as a duplicate."""
        if "*" in event_name:
            if not allow_duplicates and any(
                pattern == event_name and existing.identifier == listener.identifier
                for pattern, existing in self._wildcard_listeners
            ):
                return False
            self._wildcard_listeners.append((event_name, listener))
            self._wildcard_listeners.sort(key=lambda pl: _sort_key(pl[1]))
            return True

        listeners = self._listeners.setdefault(event_name, [])
        if not allow_duplicates and any(
            existing.identifier == listener.identifier for existing in listeners
        ):
            return False

        listeners.append(listener)
        listeners.sort(key=_sort_key)
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        """Remove a listener by identifier from an exact name or pattern."""
        removed = False

        exact = self._listeners.get(event_name)
        if exact is not None:
            kept = [lst for lst in exact if lst.identifier != identifier]
            removed = len(kept) < len(exact)
            if kept:
                self._listeners[event_name] = kept
            else:
                del self._listeners[event_name]

        before = len(self._wildcard_listeners)
        self._wildcard_listeners = [
            (pattern, lst)
            for pattern, lst in self._wildcard_listeners
            if not (pattern == event_name and lst.identifier == identifier)
        ]
        return removed or len(self._wildcard_listeners) < before

    def clear_all(self) -> int:
        """Remove everything; returns the previous listener count."""
        total = self.get_total_listener_count()
        self._listeners.clear()
        self._wildcard_listeners.clear()
        return total

    def extract_listeners_for_event(self, event_name: str) -> list[EventListener]:
        """
        Collect every listener for `event_name` and prune one-shot listeners.

        Pruning happens before any callback runs, so a `once` listener never
        fires twice even when publishes overlap.
        """
        result: list[EventListener] = []

        exact = self._listeners.get(event_name, [])
        result.extend(exact)
        kept_exact = [lst for lst in exact if not lst.once]
        if kept_exact:
            self._listeners[event_name] = kept_exact
        elif event_name in self._listeners:
            del self._listeners[event_name]

        kept_wildcards: list[tuple[str, EventListener]] = []
        for pattern, listener in self._wildcard_listeners:
            if pattern_matches(event_name, pattern):
                result.append(listener)
                if listener.once:
                    continue
            kept_wildcards.append((pattern, listener))
        self._wildcard_listeners = kept_wildcards

        result.sort(key=_sort_key)
        return result

    def get_listener_count_for_event(self, event_name: str) -> int:
        count = len(self._listeners.get(event_name, []))
        count += sum(
            1
            for pattern, _ in self._wildcard_listeners
            if pattern_matches(event_name, pattern)
        )
        return count

    def get_total_listener_count(self) -> int:
        total = sum(len(listeners) for listeners in self._listeners.values())
        return total + len(self._wildcard_listeners)
