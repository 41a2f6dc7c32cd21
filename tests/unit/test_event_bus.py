"""
Unit tests for EventBus and ListenerRegistry.

Tests priority ordering, error isolation, wildcard matching and one-shot
listeners.
"""

import asyncio

import pytest

from nowgame.core.event.bus import EventBus
from nowgame.core.event.registry import pattern_matches
from nowgame.core.event.types import ListenerPriority


class TestPatternMatching:
    @pytest.mark.parametrize(
        "event_name, pattern, expected",
        [
            ("wisdom.changed", "wisdom.changed", True),
            ("wisdom.changed", "wisdom.*", True),
            ("wisdom.skill.leveled_up", "wisdom.*", True),
            ("shop.changed", "wisdom.*", False),
            ("anything", "*", True),
            ("wisdom.changed", "wisdom", False),
        ],
    )
    def test_pattern_matches(self, event_name, pattern, expected):
        assert pattern_matches(event_name, pattern) is expected


class TestSubscription:
    def test_callback_must_take_one_argument(self, event_bus):
        with pytest.raises(ValueError):
            event_bus.subscribe("x", lambda: None)

    def test_duplicate_identifier_rejected(self, event_bus):
        event_bus.subscribe("x", lambda p: None, identifier="same")
        event_bus.subscribe("x", lambda p: None, identifier="same")

        assert event_bus.get_listener_count("x") == 1

    def test_unsubscribe(self, event_bus):
        listener_id = event_bus.subscribe("x", lambda p: None)

        assert event_bus.unsubscribe("x", listener_id) is True
        assert event_bus.unsubscribe("x", listener_id) is False
        assert event_bus.get_listener_count() == 0

    def test_timeouts_read_from_config(self, mock_config_manager):
        mock_config_manager.overrides["core.event.listener_timeout.critical_seconds"] = 2.5

        bus = EventBus(mock_config_manager)

        assert bus._critical_timeout == 2.5
        assert bus._high_timeout == 5.0


@pytest.mark.asyncio
class TestPublish:
    """Delivery semantics."""

    async def test_priority_order(self, event_bus):
        order: list[str] = []
        event_bus.subscribe("e", lambda p: order.append("normal"), identifier="n")
        event_bus.subscribe(
            "e", lambda p: order.append("high"), priority=ListenerPriority.HIGH, identifier="h"
        )
        event_bus.subscribe(
            "e",
            lambda p: order.append("critical"),
            priority=ListenerPriority.CRITICAL,
            identifier="c",
        )

        await event_bus.publish("e", {})

        assert order == ["critical", "high", "normal"]

    async def test_failing_listener_does_not_stop_others(self, event_bus):
        received: list[dict] = []

        def broken(payload):
            raise RuntimeError("listener bug")

        event_bus.subscribe("e", broken, identifier="a")
        event_bus.subscribe("e", received.append, identifier="b")

        results = await event_bus.publish("e", {"k": 1})

        assert received == [{"k": 1}]
        assert results == [None, None]
        assert event_bus.get_metrics_summary()["total_errors"] == 1

    async def test_async_listener_result_returned(self, event_bus):
        async def answer(payload):
            await asyncio.sleep(0)
            return payload["n"] * 2

        event_bus.subscribe("e", answer)

        assert await event_bus.publish("e", {"n": 21}) == [42]

    async def test_wildcard_listener_receives_matching_events(self, event_bus):
        seen: list[dict] = []
        event_bus.subscribe("wisdom.*", seen.append)

        await event_bus.publish("wisdom.changed", {"a": 1})
        await event_bus.publish("shop.changed", {"b": 2})

        assert seen == [{"a": 1}]

    async def test_once_listener_fires_once(self, event_bus):
        seen: list[dict] = []
        event_bus.subscribe("e", seen.append, once=True)

        await event_bus.publish("e", {})
        await event_bus.publish("e", {})

        assert len(seen) == 1

    async def test_slow_high_listener_times_out(self):
        bus = EventBus(high_timeout_seconds=0.01)

        async def slow(payload):
            await asyncio.sleep(1)
            return "late"

        bus.subscribe("e", slow, priority=ListenerPriority.HIGH)

        assert await bus.publish("e", {}) == [None]

    async def test_low_priority_runs_in_background(self, event_bus):
        seen: list[dict] = []

        async def low(payload):
            await asyncio.sleep(0)
            seen.append(payload)

        event_bus.subscribe("e", low, priority=ListenerPriority.LOW)

        results = await event_bus.publish("e", {"x": 1})
        await event_bus.drain()

        assert results == []
        assert seen == [{"x": 1}]

    async def test_publish_without_listeners(self, event_bus):
        assert await event_bus.publish("nobody.listens", {}) == []
