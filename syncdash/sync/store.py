"""Projection store: the single owner of the local model of the daemon.

All mutation goes through the ``apply_*``/``merge_*`` methods below, and
those are only ever called from :meth:`SyncEngine.handle`, one message at a
time. Every method is idempotent with respect to re-delivery of the same
content.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from syncdash.models.base import ZERO_TIME
from syncdash.models.config import DaemonConfig, DeviceConfig, FolderConfig
from syncdash.models.db import Completion, DeviceStats, FolderStats, FolderStatus
from syncdash.models.events import PendingDeviceAdded
from syncdash.models.system import (
    Connection,
    ConnectionTotal,
    PendingDeviceInfo,
    SystemConnections,
    SystemStatus,
    SystemVersion,
)
from syncdash.sync.decoder import (
    DeviceChange,
    DeviceStateChanged,
    FolderScanProgress,
    FolderStateChanged,
)
from syncdash.sync.rate import in_out_rates

logger = logging.getLogger(__name__)


@dataclass
class ScanProgress:
    current: int = 0
    total: int = 0
    rate: float = 0.0

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.current / self.total * 100


@dataclass
class FolderProjection:
    id: str
    config: FolderConfig
    status: FolderStatus | None = None
    stats: FolderStats | None = None
    scan_progress: ScanProgress | None = None
    shared_devices: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.config.display_name


@dataclass
class DeviceProjection:
    id: str
    config: DeviceConfig
    stats: DeviceStats | None = None
    connection: Connection | None = None
    previous_connection: Connection | None = None
    completion: dict[str, Completion] = field(default_factory=dict)
    folders: list[tuple[str, str]] = field(default_factory=list)
    in_bytes_per_second: int = 0
    out_bytes_per_second: int = 0

    @property
    def name(self) -> str:
        return self.config.name or self.id


@dataclass
class PendingDeviceProjection:
    id: str
    name: str = ""
    address: str = ""
    at: datetime = ZERO_TIME


@dataclass
class ThisDevice:
    id: str = ""
    name: str = ""
    uptime: int = 0
    in_bytes_total: int = 0
    out_bytes_total: int = 0
    in_bytes_per_second: int = 0
    out_bytes_per_second: int = 0
    max_send_kbps: int = 0
    max_recv_kbps: int = 0
    total: ConnectionTotal | None = None
    previous_total: ConnectionTotal | None = None


class ProjectionStore:
    """In-memory projection of folders, devices and pending devices."""

    def __init__(self) -> None:
        self.folders: dict[str, FolderProjection] = {}
        self.devices: dict[str, DeviceProjection] = {}
        self.pending: dict[str, PendingDeviceProjection] = {}
        self.this_device = ThisDevice()
        self.version: SystemVersion | None = None
        self.config: DaemonConfig | None = None
        self.errors: dict[str, str] = {}
        self.now: datetime = datetime.now(UTC)

    @property
    def device_defaults(self) -> DeviceConfig:
        if self.config is None:
            return DeviceConfig()
        return self.config.defaults.device

    # -- Config ---------------------------------------------------------------

    def merge_config(self, config: DaemonConfig) -> list[str]:
        """Replace folder and device configs; return IDs of newly-seen folders.

        Runtime state (status, stats, connection samples, completion) of
        entities that survive the merge is preserved.
        """
        my_id = self.this_device.id
        self.config = config
        if my_id:
            self.this_device.name = config.device_name(my_id) or ""
        self.this_device.max_send_kbps = config.options.max_send_kbps
        self.this_device.max_recv_kbps = config.options.max_recv_kbps

        new_folders: list[str] = []
        folders: dict[str, FolderProjection] = {}
        for fc in config.folders:
            folder = self.folders.get(fc.id)
            if folder is None:
                folder = FolderProjection(id=fc.id, config=fc)
                new_folders.append(fc.id)
            else:
                folder.config = fc
            folder.shared_devices = [
                config.device_name(d.device_id) or d.device_id
                for d in fc.devices
                if d.device_id != my_id
            ]
            folders[fc.id] = folder
        self.folders = folders

        devices: dict[str, DeviceProjection] = {}
        for dc in config.devices:
            if dc.device_id == my_id:
                continue
            device = self.devices.get(dc.device_id)
            if device is None:
                device = DeviceProjection(id=dc.device_id, config=dc)
            else:
                device.config = dc
            device.folders = [
                (fc.id, fc.display_name) for fc in config.folders if fc.shares_with(dc.device_id)
            ]
            shared = {folder_id for folder_id, _ in device.folders}
            device.completion = {k: v for k, v in device.completion.items() if k in shared}
            devices[dc.device_id] = device
        self.devices = devices

        if new_folders:
            logger.debug("New folders: %s", ", ".join(new_folders))
        return new_folders

    # -- Folders --------------------------------------------------------------

    def apply_folder_status(self, folder_id: str, status: FolderStatus | None) -> None:
        """Replace a folder's status; ``None`` clears it."""
        folder = self.folders.get(folder_id)
        if folder is not None:
            folder.status = status

    def apply_scan_progress(self, event: FolderScanProgress) -> None:
        folder = self.folders.get(event.folder)
        if folder is not None:
            folder.scan_progress = ScanProgress(event.current, event.total, event.rate)

    def apply_folder_state(self, event: FolderStateChanged) -> None:
        folder = self.folders.get(event.folder)
        if folder is None:
            return
        if event.to_state == "scanning":
            folder.scan_progress = None
        if folder.status is not None:
            folder.status = folder.status.model_copy(
                update={"state": event.to_state, "error": event.error}
            )

    def apply_folder_stats(self, stats: dict[str, FolderStats]) -> None:
        for folder_id, folder in self.folders.items():
            if folder_id in stats:
                folder.stats = stats[folder_id]

    # -- Devices --------------------------------------------------------------

    def apply_completion(
        self, device_id: str, folder_id: str, completion: Completion | None,
    ) -> None:
        """Upsert one completion entry; ``None`` deletes it."""
        device = self.devices.get(device_id)
        if device is None:
            return
        if completion is None:
            device.completion.pop(folder_id, None)
        else:
            device.completion[folder_id] = completion

    def apply_device_state(self, event: DeviceStateChanged) -> None:
        device = self.devices.get(event.device)
        if device is None:
            return
        match event.change:
            case DeviceChange.CONNECTED | DeviceChange.DISCONNECTED:
                # Without a known record there is nothing to flip.
                if device.connection is not None:
                    update: dict[str, object] = {
                        "connected": event.change == DeviceChange.CONNECTED,
                    }
                    if event.address:
                        update["address"] = event.address
                    device.connection = device.connection.model_copy(update=update)
            case DeviceChange.PAUSED | DeviceChange.RESUMED:
                device.config = device.config.model_copy(
                    update={"paused": event.change == DeviceChange.PAUSED}
                )

    def apply_device_stats(self, stats: dict[str, DeviceStats]) -> None:
        for device_id, device in self.devices.items():
            if device_id in stats:
                device.stats = stats[device_id]

    def apply_connections(self, connections: SystemConnections) -> None:
        """Store a new connection sample and recompute rates.

        Each target keeps its own previous sample, so a rate is always
        computed between two samples of the same counter.
        """
        me = self.this_device
        me.previous_total, me.total = me.total, connections.total
        me.in_bytes_total = connections.total.in_bytes_total
        me.out_bytes_total = connections.total.out_bytes_total
        me.in_bytes_per_second, me.out_bytes_per_second = in_out_rates(
            me.previous_total, me.total,
        )

        for device_id, device in self.devices.items():
            current = connections.connections.get(device_id)
            device.previous_connection, device.connection = device.connection, current
            device.in_bytes_per_second, device.out_bytes_per_second = in_out_rates(
                device.previous_connection, device.connection,
            )

    # -- Pending devices ------------------------------------------------------

    def apply_pending_devices(
        self,
        added: list[PendingDeviceAdded] | tuple[PendingDeviceAdded, ...],
        removed: list[str] | tuple[str, ...],
        at: datetime,
    ) -> None:
        for entry in added:
            self.pending[entry.device_id] = PendingDeviceProjection(
                id=entry.device_id, name=entry.name, address=entry.address, at=at,
            )
        for device_id in removed:
            self.pending.pop(device_id, None)

    def merge_pending_devices(self, snapshot: dict[str, PendingDeviceInfo]) -> None:
        """Upsert every entry of a pending-devices snapshot."""
        for device_id, info in snapshot.items():
            self.pending[device_id] = PendingDeviceProjection(
                id=device_id, name=info.name, address=info.address, at=info.time,
            )

    def remove_pending(self, device_id: str) -> None:
        self.pending.pop(device_id, None)

    # -- System ---------------------------------------------------------------

    def apply_system_status(self, status: SystemStatus) -> None:
        changed = status.my_id != self.this_device.id
        self.this_device.id = status.my_id
        self.this_device.uptime = status.uptime
        if changed and self.config is not None:
            # Own ID learned late: re-run the merge so this device is excluded.
            self.merge_config(self.config)

    def apply_version(self, version: SystemVersion) -> None:
        self.version = version

    def tick(self, now: datetime) -> None:
        self.now = now

    # -- Errors ---------------------------------------------------------------

    def record_error(self, source: str, error: BaseException | str) -> None:
        self.errors.pop(source, None)
        self.errors[source] = str(error)

    def clear_error(self, source: str) -> None:
        self.errors.pop(source, None)

    @property
    def last_error(self) -> str | None:
        if not self.errors:
            return None
        return next(reversed(self.errors.values()))
