"""Async event bus for Trackboard."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict, deque
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from trackboard.events.types import EventType

logger = logging.getLogger(__name__)

Listener = Callable[[EventType, dict[str, Any]], Coroutine[Any, Any, None]]


class EventBus:
    """Async pub/sub bus that also keeps a short log of recent events."""

    def __init__(self, *, history_size: int = 50) -> None:
        self._listeners: dict[EventType, list[Listener]] = defaultdict(list)
        self._wildcard: list[Listener] = []
        self._once: set[tuple[EventType, int]] = set()
        self._recent: deque[dict[str, Any]] = deque(maxlen=history_size)

    def on(self, event_type: EventType, listener: Listener) -> None:
        """Register a listener for one event type."""
        self._listeners[event_type].append(listener)

    def once(self, event_type: EventType, listener: Listener) -> None:
        """Register a listener that is dropped after its first delivery."""
        self._once.add((event_type, id(listener)))
        self._listeners[event_type].append(listener)

    def on_all(self, listener: Listener) -> None:
        self._wildcard.append(listener)

    def off(self, event_type: EventType, listener: Listener) -> None:
        if listener in self._listeners[event_type]:
            self._listeners[event_type].remove(listener)
        self._once.discard((event_type, id(listener)))

    async def emit(self, event_type: EventType, data: dict[str, Any] | None = None) -> int:
        """Deliver an event and return how many listeners ran without error."""
        data = data or {}
        self._recent.append(
            {"type": str(event_type), "data": data, "at": datetime.now(UTC).isoformat()}
        )

        targeted = list(self._listeners.get(event_type, []))
        for listener in targeted:
            if (event_type, id(listener)) in self._once:
                self.off(event_type, listener)

        delivered = 0
        for listener in targeted + self._wildcard:
            try:
                await listener(event_type, data)
                delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Listener failed for %s", event_type)
        return delivered

    def recent(self, limit: int = 10) -> list[dict[str, Any]]:
        """Most recent events, newest first."""
        return list(reversed(self._recent))[:limit]

    def clear(self) -> None:
        self._listeners.clear()
        self._wildcard.clear()
        self._once.clear()
        self._recent.clear()
