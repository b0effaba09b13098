"""Lightweight pub/sub bus between the engine and its observers."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    MESSAGE_HANDLED = "message_handled"
    EVENTS_APPLIED = "events_applied"
    FOLDERS_CHANGED = "folders_changed"
    DEVICES_CHANGED = "devices_changed"
    PENDING_CHANGED = "pending_changed"
    SYSTEM_CHANGED = "system_changed"
    ERROR_RECORDED = "error_recorded"
    CLOCK_TICKED = "clock_ticked"
    ACTION_COMPLETED = "action_completed"


@dataclass
class Event:
    """A single notification on the bus."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.monotonic)


class EventBus:
    """Simple pub/sub bus supporting both sync and async handlers."""

    def __init__(self) -> None:
        self._subscribers: dict[EventType, list[Callable]] = defaultdict(list)
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, event_type: EventType, handler: Callable[[Event], Any]) -> None:
        """Register a handler for an event type."""
        self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Callable[[Event], Any]) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: Event) -> None:
        """Emit an event synchronously, calling every registered handler.

        Coroutines returned by async handlers are scheduled on the running
        loop. The bus holds a reference to each such task until it finishes.
        """
        for handler in self._subscribers.get(event.type, []):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    task = asyncio.get_running_loop().create_task(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._task_done)
            except Exception:
                logger.exception("Error in event handler for %s", event.type)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Error in async event handler", exc_info=task.exception())

    async def emit_async(self, event: Event) -> None:
        """Emit an event, awaiting any async handlers."""
        for handler in self._subscribers.get(event.type, []):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Error in async event handler for %s", event.type)
