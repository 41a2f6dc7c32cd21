"""
nowgame EventBus: async pub/sub used to notify observers of state changes.

Purpose
-------
Decouple domain services from whoever watches their state (a UI layer, a
CLI, tests). Services publish after their save returned, so observers only
ever see persisted state (or, for explicitly in-memory operations such as
task nudges, an event that says `persisted: False`).

Responsibilities
----------------
- Register/unregister listeners with priorities (exact names and wildcards)
- Execute listeners according to the tiered concurrency model:
  * CRITICAL: sequential, awaited with timeout
  * HIGH: sequential, awaited with timeout
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Error isolation: a failing listener is logged and never reaches the
  publisher, so a broken observer cannot turn a successful save into an
  error.

Design Decisions
----------------
- Instance-based: the application context owns one bus; tests build their own.
- Sync callbacks run inline on the loop thread; they share the services'
  in-memory state and must not run concurrently with them.
- Timeouts come from ConfigManager (`core.event.listener_timeout.*`).

Dependencies
------------
- nowgame.core.logging.logger (structured logging, LogContext)
- nowgame.core.event.types / registry
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, Optional

from nowgame.core.event.registry import ListenerRegistry
from nowgame.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from nowgame.core.logging.logger import LogContext, get_logger

if TYPE_CHECKING:
    from nowgame.core.config.manager import ConfigManager

logger = get_logger(__name__)


class EventBus:
    """
    Async EventBus with tiered listener execution.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("wisdom.changed", on_wisdom_changed)
    >>> await bus.publish("wisdom.changed", {"operation": "add_skill"})
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        *,
        registry: Optional[ListenerRegistry] = None,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config_manager = config_manager
        self._registry = registry or ListenerRegistry()
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._published_count = 0
        self._error_count = 0

        self._critical_timeout = self._load_timeout(
            "core.event.listener_timeout.critical_seconds",
            critical_timeout_seconds,
            5.0,
        )
        self._high_timeout = self._load_timeout(
            "core.event.listener_timeout.high_seconds",
            high_timeout_seconds,
            5.0,
        )

        logger.debug(
            "EventBus initialized",
            extra={
                "critical_timeout_seconds": self._critical_timeout,
                "high_timeout_seconds": self._high_timeout,
            },
        )

    def _load_timeout(
        self, key: str, override: Optional[float], default: float
    ) -> float:
        """Resolve a timeout: explicit override, then config, then default."""
        if override is not None:
            return float(override)
        if self._config_manager is None:
            return float(default)
        try:
            return float(self._config_manager.get(key, default))
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Invalid listener timeout in config, using default",
                extra={"config_key": key, "default_value": default, "error": str(exc)},
            )
            return float(default)

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Reject callbacks that cannot take exactly one payload argument."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = [
            p
            for p in sig.parameters.values()
            if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        ]
        if len(params) != 1:
            name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                "Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns the listener identifier for `unsubscribe`.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )
        added = self._registry.add_listener(
            event_name, listener, allow_duplicates=allow_duplicates
        )

        if added:
            logger.debug(
                "EventBus: subscribed listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "once": listener.once,
                },
            )
        else:
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )

        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        removed = self._registry.remove_listener(event_name, identifier)
        if removed:
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        """Remove all listeners (tests, full re-init)."""
        total = self._registry.clear_all()
        logger.info(
            "EventBus: cleared all listeners",
            extra={"previous_listener_count": total},
        )

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to every matching listener.

        Returns results from CRITICAL/HIGH/NORMAL listeners; LOW listeners
        run in the background and are not included.
        """
        self._published_count += 1
        listeners = self._registry.extract_listeners_for_event(event_name)

        async with LogContext(event_name=event_name):
            logger.debug(
                "EventBus: publishing event",
                extra={
                    "event_name": event_name,
                    "payload_keys": list(data.keys()),
                    "listener_count": len(listeners),
                },
            )
            if not listeners:
                return []

            results: list[Any] = []

            for listener in listeners:
                if listener.priority is ListenerPriority.CRITICAL:
                    results.append(
                        await self._run_with_timeout(
                            listener, event_name, data, self._critical_timeout
                        )
                    )
            for listener in listeners:
                if listener.priority is ListenerPriority.HIGH:
                    results.append(
                        await self._run_with_timeout(
                            listener, event_name, data, self._high_timeout
                        )
                    )

            normal = [
                lst for lst in listeners if lst.priority is ListenerPriority.NORMAL
            ]
            if normal:
                results.extend(
                    await asyncio.gather(
                        *(self._run_listener(lst, event_name, data) for lst in normal)
                    )
                )

            for listener in listeners:
                if listener.priority is ListenerPriority.LOW:
                    task = asyncio.get_running_loop().create_task(
                        self._run_listener(listener, event_name, data),
                        name=f"eventbus-low-{event_name}-{listener.identifier}",
                    )
                    self._background_tasks.add(task)
                    task.add_done_callback(self._background_tasks.discard)

            return results

    async def _run_with_timeout(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        timeout: Optional[float],
    ) -> Any:
        if timeout is None or timeout <= 0:
            return await self._run_listener(listener, event_name, payload)

        try:
            return await asyncio.wait_for(
                self._run_listener(listener, event_name, payload),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            self._record_listener_error(event_name, listener, exc)
            return None

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
    ) -> Any:
        try:
            result = listener.callback(payload)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as exc:
            self._record_listener_error(event_name, listener, exc)
            return None

    def _record_listener_error(
        self, event_name: str, listener: EventListener, exc: BaseException
    ) -> None:
        self._error_count += 1
        logger.error(
            "EventBus listener error",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
            exc_info=exc,
        )

    # ------------------------------------------------------------------ #
    # Introspection & lifecycle
    # ------------------------------------------------------------------ #

    async def drain(self) -> None:
        """Wait for fire-and-forget (LOW) listeners still running."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return self._registry.get_listener_count_for_event(event_name)
        return self._registry.get_total_listener_count()

    def get_metrics_summary(self) -> dict[str, Any]:
        return {
            "total_events_published": self._published_count,
            "total_errors": self._error_count,
            "total_listeners": self._registry.get_total_listener_count(),
            "background_tasks": len(self._background_tasks),
        }
