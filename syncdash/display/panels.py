"""Panel renderers: pure functions turning the projection store into Rich Panels."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from syncdash import __version__
from syncdash.display.humanize import (
    arch_name,
    byte_rate,
    duration,
    ibytes,
    os_name,
    scan_eta,
    short_id,
    timestamp,
)
from syncdash.sync.status import (
    DeviceSyncStatus,
    FolderSyncStatus,
    device_status,
    folder_status,
    group_completion,
)

if TYPE_CHECKING:
    from datetime import datetime

    from syncdash.sync.store import DeviceProjection, FolderProjection, ProjectionStore

FOLDER_STYLES = {
    FolderSyncStatus.IDLE: "green",
    FolderSyncStatus.SCANNING: "cyan",
    FolderSyncStatus.SYNCING: "cyan",
    FolderSyncStatus.SYNC_PREPARE: "cyan",
    FolderSyncStatus.ERROR: "red",
    FolderSyncStatus.OUT_OF_SYNC: "red",
    FolderSyncStatus.FAILED_ITEMS: "red",
    FolderSyncStatus.LOCAL_ADDITIONS: "green",
    FolderSyncStatus.LOCAL_UNENCRYPTED: "green",
}

DEVICE_STYLES = {
    DeviceSyncStatus.DISCONNECTED: "magenta",
    DeviceSyncStatus.UNUSED_DISCONNECTED: "magenta",
    DeviceSyncStatus.DISCONNECTED_INACTIVE: "magenta",
    DeviceSyncStatus.IN_SYNC: "green",
    DeviceSyncStatus.UNUSED_IN_SYNC: "green",
    DeviceSyncStatus.SYNCING: "blue",
}


def folder_label(folder: FolderProjection) -> Text:
    """Status label, with sync or scan progress when there is some."""
    status = folder_status(folder)
    label = status.label
    s = folder.status
    if status == FolderSyncStatus.SYNCING and s is not None and s.need_bytes > 0 and s.global_bytes:
        percent = (s.global_bytes - s.need_bytes) / s.global_bytes * 100
        label = f"{label} ({percent:.0f}%, {ibytes(s.need_bytes)})"
    elif status == FolderSyncStatus.SCANNING and folder.scan_progress and folder.scan_progress.total > 0:
        label = f"{label} ({folder.scan_progress.percent:.0f}%)"
    return Text(label, style=FOLDER_STYLES.get(status, ""))


def device_label(device: DeviceProjection, now: datetime) -> Text:
    status = device_status(device, now)
    label = status.label
    grouped = group_completion(device.completion)
    if status == DeviceSyncStatus.SYNCING and grouped.completion != 100:
        label = f"{label} ({grouped.completion:.0f}%, {ibytes(grouped.need_bytes)})"
    return Text(label, style=DEVICE_STYLES.get(status, ""))


def pending_panel(store: ProjectionStore) -> Panel:
    """One line per device asking to connect, oldest first."""
    table = Table.grid(padding=(0, 2))
    table.add_column("at", style="dim")
    table.add_column("description")
    table.add_column("id", style="dim")

    for p in sorted(store.pending.values(), key=lambda p: (p.at, p.name)):
        table.add_row(
            timestamp(p.at),
            f'Device "{p.name}" ({p.address}) wants to connect',
            p.id,
        )

    return Panel(table, title="[bold yellow]New Devices[/]", border_style="yellow")


def this_device_panel(store: ProjectionStore) -> Panel:
    me = store.this_device
    table = Table.grid(padding=(0, 2))
    table.add_column("key", style="bold")
    table.add_column("value", justify="right")

    table.add_row("Download rate", f"{byte_rate(me.in_bytes_per_second)} ({ibytes(me.in_bytes_total)})")
    if me.max_recv_kbps > 0:
        table.add_row("", Text(f"Limit: {byte_rate(me.max_recv_kbps * 1024)}", style="italic"))
    table.add_row("Upload rate", f"{byte_rate(me.out_bytes_per_second)} ({ibytes(me.out_bytes_total)})")
    if me.max_send_kbps > 0:
        table.add_row("", Text(f"Limit: {byte_rate(me.max_send_kbps * 1024)}", style="italic"))

    files = dirs = size = 0
    for f in store.folders.values():
        if f.status is not None:
            files += f.status.local_files
            dirs += f.status.local_directories
            size += f.status.local_bytes
    table.add_row("Local State (Total)", f"{files} files, {dirs} dirs, {ibytes(size)}")
    table.add_row("Uptime", duration(me.uptime))
    if store.version is not None:
        v = store.version
        table.add_row("Daemon Version", f"{v.version}, {os_name(v.os)} ({arch_name(v.arch)})")
    table.add_row("Version", __version__)

    return Panel(table, title=f"[bold]{me.name or short_id(me.id) or 'This Device'}[/]",
                 border_style="blue")


def folders_panel(store: ProjectionStore) -> Panel:
    table = Table(expand=True, box=None, padding=(0, 1))
    table.add_column("Folder", style="bold")
    table.add_column("Status")
    table.add_column("Type", style="dim")
    table.add_column("Shared With", style="dim")
    table.add_column("Last Scan", style="dim")

    for folder in sorted(store.folders.values(), key=lambda f: f.label.lower()):
        label = folder_label(folder)
        if (
            folder_status(folder) == FolderSyncStatus.SCANNING
            and folder.scan_progress is not None
            and folder.scan_progress.rate > 0
        ):
            left = folder.scan_progress.total - folder.scan_progress.current
            label.append(f" {scan_eta(int(left / folder.scan_progress.rate))}", style="dim")
        table.add_row(
            folder.label,
            label,
            folder.config.type_label,
            ", ".join(folder.shared_devices),
            timestamp(folder.stats.last_scan if folder.stats else None),
        )

    if not store.folders:
        table.add_row("[dim]no folders[/]", "", "", "", "")

    return Panel(table, title="Folders", border_style="dim")


def devices_panel(store: ProjectionStore) -> Panel:
    table = Table(expand=True, box=None, padding=(0, 1))
    table.add_column("Device", style="bold")
    table.add_column("Status")
    table.add_column("Rate (in/out)", justify="right")
    table.add_column("Last Seen", style="dim")
    table.add_column("ID", style="dim")

    for device in sorted(store.devices.values(), key=lambda d: d.name.lower()):
        connected = device.connection is not None and device.connection.connected
        rates = (
            f"{byte_rate(device.in_bytes_per_second)} / {byte_rate(device.out_bytes_per_second)}"
            if connected else ""
        )
        table.add_row(
            device.name,
            device_label(device, store.now),
            rates,
            "" if connected else timestamp(device.stats.last_seen if device.stats else None),
            short_id(device.id),
        )

    if not store.devices:
        table.add_row("[dim]no remote devices[/]", "", "", "", "")

    return Panel(table, title="Remote Devices", border_style="dim")


def errors_panel(store: ProjectionStore) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column("source", style="red")
    table.add_column("error")
    for source, error in store.errors.items():
        table.add_row(source, error)
    return Panel(table, title="[red]Errors[/]", border_style="red")


def missing_api_key_panel(message: str) -> Panel:
    return Panel(Text(message, style="bold red"), border_style="red")
