"""Tests for the event bus."""

from __future__ import annotations

import asyncio

from syncdash.events.bus import Event, EventBus, EventType


class TestEventBus:
    def test_subscribe_and_emit(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventType.FOLDERS_CHANGED, lambda e: received.append(e))
        bus.emit(Event(EventType.FOLDERS_CHANGED, {"folder": "docs"}))
        assert len(received) == 1
        assert received[0].data["folder"] == "docs"

    def test_multiple_subscribers(self):
        bus = EventBus()
        count = {"a": 0, "b": 0}
        bus.subscribe(EventType.CLOCK_TICKED, lambda _: count.__setitem__("a", count["a"] + 1))
        bus.subscribe(EventType.CLOCK_TICKED, lambda _: count.__setitem__("b", count["b"] + 1))
        bus.emit(Event(EventType.CLOCK_TICKED))
        assert count == {"a": 1, "b": 1}

    def test_no_cross_event_delivery(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventType.DEVICES_CHANGED, received.append)
        bus.emit(Event(EventType.PENDING_CHANGED))
        assert received == []

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventType.ERROR_RECORDED, received.append)
        bus.unsubscribe(EventType.ERROR_RECORDED, received.append)
        bus.unsubscribe(EventType.ERROR_RECORDED, received.append)
        bus.emit(Event(EventType.ERROR_RECORDED))
        assert received == []

    def test_handler_exception_doesnt_crash(self, caplog):
        bus = EventBus()
        received = []

        def bad_handler(e):
            raise ValueError("oops")

        bus.subscribe(EventType.SYSTEM_CHANGED, bad_handler)
        bus.subscribe(EventType.SYSTEM_CHANGED, received.append)
        bus.emit(Event(EventType.SYSTEM_CHANGED))
        assert len(received) == 1
        assert "Error in event handler" in caplog.text

    async def test_emit_schedules_async_handlers(self):
        bus = EventBus()
        done = asyncio.Event()

        async def async_handler(e):
            done.set()

        bus.subscribe(EventType.ACTION_COMPLETED, async_handler)
        bus.emit(Event(EventType.ACTION_COMPLETED))
        await asyncio.wait_for(done.wait(), timeout=1)

    async def test_scheduled_handlers_held_until_done(self):
        bus = EventBus()
        release = asyncio.Event()

        async def slow_handler(e):
            await release.wait()

        bus.subscribe(EventType.ACTION_COMPLETED, slow_handler)
        bus.emit(Event(EventType.ACTION_COMPLETED))

        (task,) = bus._tasks
        assert not task.done()
        release.set()
        await task
        await asyncio.sleep(0)
        assert not bus._tasks

    async def test_scheduled_handler_failure_logged(self, caplog):
        bus = EventBus()

        async def bad_handler(e):
            raise ValueError("oops")

        bus.subscribe(EventType.ACTION_COMPLETED, bad_handler)
        bus.emit(Event(EventType.ACTION_COMPLETED))
        (task,) = bus._tasks
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

        assert not bus._tasks
        assert "Error in async event handler" in caplog.text

    async def test_emit_async(self):
        bus = EventBus()
        received = []

        async def async_handler(e):
            received.append(e)

        bus.subscribe(EventType.EVENTS_APPLIED, async_handler)
        await bus.emit_async(Event(EventType.EVENTS_APPLIED, {"count": 3}))
        assert received[0].data == {"count": 3}
