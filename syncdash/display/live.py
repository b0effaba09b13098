"""LiveDashboard: Rich Live rendering of the projection store, driven by EventBus."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.live import Live

from syncdash.display.panels import (
    devices_panel,
    errors_panel,
    folders_panel,
    pending_panel,
    this_device_panel,
)
from syncdash.events.bus import EventType

if TYPE_CHECKING:
    from syncdash.events.bus import Event, EventBus
    from syncdash.sync.store import ProjectionStore

# Every notification that can change what is on screen.
_REDRAW_ON = (
    EventType.EVENTS_APPLIED,
    EventType.FOLDERS_CHANGED,
    EventType.DEVICES_CHANGED,
    EventType.PENDING_CHANGED,
    EventType.SYSTEM_CHANGED,
    EventType.ERROR_RECORDED,
    EventType.CLOCK_TICKED,
    EventType.ACTION_COMPLETED,
)


def render_dashboard(store: ProjectionStore) -> Group:
    """Build the full dashboard layout from the store."""
    panels = []
    if store.pending:
        panels.append(pending_panel(store))
    panels.append(this_device_panel(store))
    panels.append(folders_panel(store))
    panels.append(devices_panel(store))
    if store.errors:
        panels.append(errors_panel(store))
    return Group(*panels)


class LiveDashboard:
    """Real-time Rich Live dashboard.

    Usage::

        dashboard = LiveDashboard(engine.bus, engine.store)
        dashboard.start()
        await engine.run()
        dashboard.stop()
    """

    def __init__(
        self,
        bus: EventBus,
        store: ProjectionStore,
        console: Console | None = None,
        refresh_rate: float = 4.0,
    ) -> None:
        self._store = store
        self._console = console or Console()
        self._refresh_rate = refresh_rate
        self._live: Live | None = None
        self.redraws = 0
        for event_type in _REDRAW_ON:
            bus.subscribe(event_type, self._on_change)

    @property
    def running(self) -> bool:
        return self._live is not None

    def start(self) -> None:
        self._live = Live(
            render_dashboard(self._store),
            console=self._console,
            refresh_per_second=self._refresh_rate,
            screen=False,
        )
        self._live.start()

    def stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def _on_change(self, event: Event) -> None:
        if self._live is not None:
            self._live.update(render_dashboard(self._store))
            self.redraws += 1
