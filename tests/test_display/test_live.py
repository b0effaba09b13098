"""Tests for LiveDashboard: redraws driven by bus notifications."""

from __future__ import annotations

import io

from conftest import STRANGER_ID
from rich.console import Console, Group

from syncdash.display.live import LiveDashboard, render_dashboard
from syncdash.events.bus import Event, EventBus, EventType
from syncdash.models.system import PendingDeviceInfo


def _dashboard(store) -> tuple[EventBus, LiveDashboard]:
    bus = EventBus()
    console = Console(file=io.StringIO(), width=120)
    return bus, LiveDashboard(bus, store, console=console)


class TestRenderDashboard:
    def test_base_panels(self, store):
        group = render_dashboard(store)
        assert isinstance(group, Group)
        assert len(group.renderables) == 3

    def test_pending_and_errors_add_panels(self, store):
        store.merge_pending_devices({STRANGER_ID: PendingDeviceInfo(name="stranger")})
        store.record_error("config", "HTTP 403")
        group = render_dashboard(store)
        assert len(group.renderables) == 5
        assert "New Devices" in str(group.renderables[0].title)
        assert "Errors" in str(group.renderables[-1].title)


class TestLiveDashboard:
    def test_no_redraw_when_stopped(self, store):
        bus, dashboard = _dashboard(store)
        bus.emit(Event(EventType.FOLDERS_CHANGED))
        assert dashboard.redraws == 0
        assert not dashboard.running

    def test_redraws_on_changes(self, store):
        bus, dashboard = _dashboard(store)
        dashboard.start()
        try:
            bus.emit(Event(EventType.FOLDERS_CHANGED))
            bus.emit(Event(EventType.CLOCK_TICKED))
            bus.emit(Event(EventType.MESSAGE_HANDLED))
        finally:
            dashboard.stop()
        assert dashboard.redraws == 2
        assert not dashboard.running

    def test_stop_twice(self, store):
        _, dashboard = _dashboard(store)
        dashboard.start()
        dashboard.stop()
        dashboard.stop()
