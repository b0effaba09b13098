"""SyncEngine: the single update loop of the dashboard.

Producer tasks (event long-poll, periodic snapshots, one-shot fetches, user
actions) push result messages onto one queue. :meth:`SyncEngine.handle`
applies them to the :class:`ProjectionStore` one at a time and returns
follow-up commands, which the engine spawns as new producer tasks.

Usage::

    async with DaemonClient(settings.daemon) as client:
        engine = SyncEngine(client, settings.refresh)
        await engine.run()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from functools import partial
from typing import TYPE_CHECKING, Any

from syncdash.client.errors import DaemonError
from syncdash.config import RefreshSettings
from syncdash.events.bus import Event, EventBus, EventType
from syncdash.models.config import RemoteIgnoredDevice
from syncdash.sync import retry
from syncdash.sync.cursor import EventCursorLoop
from syncdash.sync.decoder import (
    ConfigSaved,
    DaemonEvent,
    DeviceStateChanged,
    FolderCompletionChanged,
    FolderScanProgress,
    FolderStateChanged,
    FolderSummaryChanged,
    OpaqueEvent,
    PendingDevicesChanged,
)
from syncdash.sync.messages import (
    ActionCompleted,
    ClockTicked,
    Command,
    CompletionFetched,
    ConfigFetched,
    ConnectionsFetched,
    DeviceStatsFetched,
    EventsFailed,
    EventsFetched,
    EventsRecovered,
    FolderStatsFetched,
    FolderStatusFetched,
    Message,
    PendingDevicesFetched,
    SystemStatusFetched,
    VersionFetched,
)
from syncdash.sync.scheduler import (
    SnapshotScheduler,
    fetch_completion,
    fetch_config,
    fetch_connections,
    fetch_device_stats,
    fetch_folder_stats,
    fetch_folder_status,
    fetch_pending_devices,
    fetch_system_status,
    fetch_version,
)
from syncdash.sync.store import ProjectionStore

if TYPE_CHECKING:
    from syncdash.client.rest import DaemonClient

logger = logging.getLogger(__name__)


async def perform_action(
    action: str,
    target: str,
    call: Callable[[], Awaitable[Any]],
    *,
    removes_pending: bool = False,
) -> ActionCompleted:
    """Run one user mutation and report its outcome as a message."""
    try:
        await call()
    except DaemonError as e:
        return ActionCompleted(action=action, target=target, error=e)
    return ActionCompleted(action=action, target=target, removes_pending=removes_pending)


class SyncEngine:
    """Owns the store, the message queue and every producer task."""

    def __init__(
        self,
        client: DaemonClient,
        refresh: RefreshSettings | None = None,
        *,
        bus: EventBus | None = None,
        store: ProjectionStore | None = None,
    ):
        self.client = client
        self.refresh = refresh or RefreshSettings()
        self.bus = bus or EventBus()
        self.store = store or ProjectionStore()
        self.queue: asyncio.Queue[Message] = asyncio.Queue()
        self.cursor = EventCursorLoop(
            client,
            self.deliver,
            timeout=self.refresh.events_timeout,
            retry=retry.from_settings(self.refresh),
        )
        self.scheduler = SnapshotScheduler(client, self.deliver, self.refresh)

        self._tasks: set[asyncio.Task] = set()
        self._loops: set[asyncio.Task] = set()
        self._handlers: dict[type[Message], Callable[[Any], list[Command]]] = {
            EventsFetched: self._on_events,
            EventsFailed: self._on_events_failed,
            EventsRecovered: self._on_events_recovered,
            SystemStatusFetched: self._on_system_status,
            ConfigFetched: self._on_config,
            VersionFetched: self._on_version,
            ConnectionsFetched: self._on_connections,
            FolderStatusFetched: self._on_folder_status,
            CompletionFetched: self._on_completion,
            FolderStatsFetched: self._on_folder_stats,
            DeviceStatsFetched: self._on_device_stats,
            PendingDevicesFetched: self._on_pending_devices,
            ClockTicked: self._on_clock,
            ActionCompleted: self._on_action,
        }

    # -- Queue and tasks ------------------------------------------------------

    async def deliver(self, msg: Message) -> None:
        await self.queue.put(msg)

    def spawn(self, command: Command) -> asyncio.Task:
        """Run *command* as a producer task delivering its result message."""
        task = asyncio.get_running_loop().create_task(self._execute(command))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _execute(self, command: Command) -> None:
        try:
            msg = await command()
        except Exception:
            logger.exception("Command %r failed", command)
            return
        await self.deliver(msg)

    def _start_loop(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._loops.add(task)
        task.add_done_callback(self._loops.discard)
        return task

    @property
    def busy(self) -> bool:
        """Whether one-shot commands are in flight or messages are queued."""
        return any(not t.done() for t in self._tasks) or not self.queue.empty()

    # -- Lifecycle ------------------------------------------------------------

    async def bootstrap(self) -> None:
        """Fetch system status, then config, applying each before going on.

        This device's ID must be known before the config is merged so that
        it is excluded from the device list.
        """
        for command in (
            partial(fetch_system_status, self.client),
            partial(fetch_config, self.client),
        ):
            for follow_up in self.handle(await command()):
                self.spawn(follow_up)

    def _spawn_one_shots(self, *, connections: bool = False) -> None:
        commands = [fetch_version, fetch_device_stats, fetch_folder_stats, fetch_pending_devices]
        if connections:
            commands.append(fetch_connections)
        for fetch in commands:
            self.spawn(partial(fetch, self.client))

    async def start(self) -> None:
        """Bootstrap and start every producer."""
        await self.bootstrap()
        self._spawn_one_shots()
        self._start_loop(self.cursor.run())
        for loop in self.scheduler.loops():
            self._start_loop(loop)
        logger.info("Sync engine started (%d folders, %d devices)",
                    len(self.store.folders), len(self.store.devices))

    async def process_next(self) -> None:
        msg = await self.queue.get()
        try:
            for command in self.handle(msg):
                self.spawn(command)
        finally:
            self.queue.task_done()

    async def run(self) -> None:
        """Start producers and consume messages until cancelled."""
        await self.start()
        try:
            while True:
                await self.process_next()
        finally:
            await self.close()

    async def drain(self) -> None:
        """Handle messages until no one-shot command is outstanding."""
        while self.busy:
            if self.queue.empty():
                pending = {t for t in self._tasks if not t.done()}
                if pending:
                    await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                continue
            await self.process_next()

    async def snapshot(self) -> ProjectionStore:
        """Fill the store once from REST snapshots, without the event log."""
        await self.bootstrap()
        self._spawn_one_shots(connections=True)
        await self.drain()
        return self.store

    async def close(self) -> None:
        """Cancel every producer task."""
        tasks = [*self._tasks, *self._loops]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._loops.clear()

    # -- Message handling -----------------------------------------------------

    def handle(self, msg: Message) -> list[Command]:
        """Apply one message to the store and return follow-up commands."""
        handler = self._handlers.get(type(msg))
        if handler is None:
            logger.warning("No handler for %s", type(msg).__name__)
            return []
        logger.debug("Handling %s", type(msg).__name__)
        commands = handler(msg)
        self.bus.emit(Event(EventType.MESSAGE_HANDLED, {"message": msg}))
        return commands

    def _failed(self, msg: Message) -> bool:
        """Record the message's error, or clear a previous one from its source."""
        if msg.error is None:
            self.store.clear_error(msg.source)
            return False
        self.store.record_error(msg.source, msg.error)
        logger.warning("%s: %s", msg.source, msg.error)
        self.bus.emit(Event(
            EventType.ERROR_RECORDED, {"source": msg.source, "error": str(msg.error)},
        ))
        return True

    def _notify(self, event_type: EventType, **data: Any) -> None:
        self.bus.emit(Event(event_type, data))

    def _folder_fetches(self, folder_ids: list[str]) -> list[Command]:
        """Status for each folder plus completion for each sharing device."""
        commands: list[Command] = []
        for folder_id in folder_ids:
            commands.append(partial(fetch_folder_status, self.client, folder_id))
        wanted = set(folder_ids)
        for device in self.store.devices.values():
            for folder_id, _ in device.folders:
                if folder_id in wanted:
                    commands.append(partial(fetch_completion, self.client, device.id, folder_id))
        return commands

    def _on_events(self, msg: EventsFetched) -> list[Command]:
        commands: list[Command] = []
        try:
            for event in msg.events:
                commands.extend(self.apply_event(event))
        finally:
            msg.applied.set()
        self._failed(msg)
        self._notify(EventType.EVENTS_APPLIED, count=len(msg.events), last_id=msg.last_id)
        return commands

    def _on_events_failed(self, msg: EventsFailed) -> list[Command]:
        self._failed(msg)
        return []

    def _on_events_recovered(self, msg: EventsRecovered) -> list[Command]:
        self._failed(msg)
        return []

    def apply_event(self, event: DaemonEvent) -> list[Command]:
        """Apply one decoded event and return the fetches it calls for."""
        store = self.store
        match event.payload:
            case FolderSummaryChanged(folder=folder, summary=summary):
                store.apply_folder_status(folder, summary)
                self._notify(EventType.FOLDERS_CHANGED, folder=folder)
            case ConfigSaved(config=config):
                new_folders = store.merge_config(config)
                self._notify(EventType.FOLDERS_CHANGED)
                self._notify(EventType.DEVICES_CHANGED)
                return self._folder_fetches(new_folders)
            case FolderScanProgress() as progress:
                store.apply_scan_progress(progress)
                self._notify(EventType.FOLDERS_CHANGED, folder=progress.folder)
            case FolderStateChanged() as change:
                store.apply_folder_state(change)
                self._notify(EventType.FOLDERS_CHANGED, folder=change.folder)
                if change.from_state == "scanning" and change.to_state == "idle":
                    return [partial(fetch_folder_stats, self.client)]
            case DeviceStateChanged() as change:
                store.apply_device_state(change)
                self._notify(EventType.DEVICES_CHANGED, device=change.device)
            case FolderCompletionChanged(device=device, folder=folder, completion=completion):
                store.apply_completion(device, folder, completion)
                self._notify(EventType.DEVICES_CHANGED, device=device)
            case PendingDevicesChanged(added=added, removed=removed):
                store.apply_pending_devices(added, removed, event.time)
                self._notify(EventType.PENDING_CHANGED)
            case OpaqueEvent(type=type_tag):
                logger.debug("Ignoring %s event %d", type_tag, event.id)
        return []

    def _on_system_status(self, msg: SystemStatusFetched) -> list[Command]:
        if not self._failed(msg) and msg.status is not None:
            self.store.apply_system_status(msg.status)
            self._notify(EventType.SYSTEM_CHANGED)
        return []

    def _on_config(self, msg: ConfigFetched) -> list[Command]:
        if self._failed(msg) or msg.config is None:
            return []
        self.store.merge_config(msg.config)
        self._notify(EventType.FOLDERS_CHANGED)
        self._notify(EventType.DEVICES_CHANGED)
        return self._folder_fetches(list(self.store.folders))

    def _on_version(self, msg: VersionFetched) -> list[Command]:
        if not self._failed(msg) and msg.version is not None:
            self.store.apply_version(msg.version)
            self._notify(EventType.SYSTEM_CHANGED)
        return []

    def _on_connections(self, msg: ConnectionsFetched) -> list[Command]:
        if not self._failed(msg) and msg.connections is not None:
            self.store.apply_connections(msg.connections)
            self._notify(EventType.SYSTEM_CHANGED)
            self._notify(EventType.DEVICES_CHANGED)
        return []

    def _on_folder_status(self, msg: FolderStatusFetched) -> list[Command]:
        # A failed fetch clears the status rather than keeping a stale one.
        status = None if self._failed(msg) else msg.status
        self.store.apply_folder_status(msg.folder_id, status)
        self._notify(EventType.FOLDERS_CHANGED, folder=msg.folder_id)
        return []

    def _on_completion(self, msg: CompletionFetched) -> list[Command]:
        if not self._failed(msg):
            self.store.apply_completion(msg.device_id, msg.folder_id, msg.completion)
            self._notify(EventType.DEVICES_CHANGED, device=msg.device_id)
        return []

    def _on_folder_stats(self, msg: FolderStatsFetched) -> list[Command]:
        if not self._failed(msg):
            self.store.apply_folder_stats(msg.stats)
            self._notify(EventType.FOLDERS_CHANGED)
        return []

    def _on_device_stats(self, msg: DeviceStatsFetched) -> list[Command]:
        if not self._failed(msg):
            self.store.apply_device_stats(msg.stats)
            self._notify(EventType.DEVICES_CHANGED)
        return []

    def _on_pending_devices(self, msg: PendingDevicesFetched) -> list[Command]:
        if not self._failed(msg):
            self.store.merge_pending_devices(msg.pending)
            self._notify(EventType.PENDING_CHANGED)
        return []

    def _on_clock(self, msg: ClockTicked) -> list[Command]:
        self.store.tick(msg.now)
        self._notify(EventType.CLOCK_TICKED, now=msg.now)
        return []

    def _on_action(self, msg: ActionCompleted) -> list[Command]:
        if not self._failed(msg) and msg.removes_pending:
            self.store.remove_pending(msg.target)
            self._notify(EventType.PENDING_CHANGED)
        self._notify(
            EventType.ACTION_COMPLETED,
            action=msg.action, target=msg.target, ok=msg.ok,
        )
        return []

    # -- User actions ---------------------------------------------------------

    def _action(
        self,
        action: str,
        target: str,
        call: Callable[[], Awaitable[Any]],
        *,
        removes_pending: bool = False,
    ) -> asyncio.Task:
        logger.info("%s %s", action, target)
        return self.spawn(partial(
            perform_action, action, target, call, removes_pending=removes_pending,
        ))

    def pause_folder(self, folder_id: str, paused: bool = True) -> asyncio.Task:
        return self._action(
            "pause" if paused else "resume",
            folder_id,
            partial(self.client.pause_folder, folder_id, paused),
        )

    def pause_all(self) -> list[asyncio.Task]:
        return [self.pause_folder(folder_id, True) for folder_id in self.store.folders]

    def resume_all(self) -> list[asyncio.Task]:
        return [self.pause_folder(folder_id, False) for folder_id in self.store.folders]

    def rescan(self, folder_id: str) -> asyncio.Task:
        return self._action("rescan", folder_id, partial(self.client.scan, folder_id))

    def rescan_all(self) -> list[asyncio.Task]:
        return [self.rescan(folder_id) for folder_id in self.store.folders]

    def revert(self, folder_id: str) -> asyncio.Task:
        return self._action("revert", folder_id, partial(self.client.revert, folder_id))

    def dismiss_pending(self, device_id: str) -> asyncio.Task:
        return self._action(
            "dismiss",
            device_id,
            partial(self.client.delete_pending_device, device_id),
            removes_pending=True,
        )

    def ignore_pending(self, device_id: str) -> asyncio.Task:
        """Add the device to ``remoteIgnoredDevices`` with a whole-config PUT."""

        async def put() -> None:
            config = self.store.config
            if config is None:
                raise DaemonError("configuration not loaded yet")
            pending = self.store.pending.get(device_id)
            ignored = RemoteIgnoredDevice(
                device_id=device_id,
                name=pending.name if pending else "",
                address=pending.address if pending else "",
                time=self.store.now,
            )
            await self.client.put_config(config.model_copy(update={
                "remote_ignored_devices": [*config.remote_ignored_devices, ignored],
            }))

        return self._action("ignore", device_id, put, removes_pending=True)

    def accept_pending(self, device_id: str, name: str | None = None) -> asyncio.Task:
        """Add the device using the configured device defaults."""
        pending = self.store.pending.get(device_id)
        if name is None:
            name = pending.name if pending else ""
        device = self.store.device_defaults.model_copy(
            update={"device_id": device_id, "name": name},
        )
        return self._action(
            "accept",
            device_id,
            partial(self.client.add_device, device),
            removes_pending=True,
        )
