"""Status derivation: pure functions from projections to display states.

Both functions evaluate an ordered rule list where the first match wins.
Several conditions can hold at once (a paused folder may still report an
error), so the order is part of the contract.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from syncdash.models.config import FolderType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from syncdash.models.db import Completion
    from syncdash.sync.store import DeviceProjection, FolderProjection

INACTIVE_AFTER = timedelta(days=7)


class FolderSyncStatus(StrEnum):
    IDLE = "idle"
    SYNC_PREPARE = "sync_prepare"
    SYNCING = "syncing"
    ERROR = "error"
    PAUSED = "paused"
    UNSHARED = "unshared"
    SCANNING = "scanning"
    OUT_OF_SYNC = "out_of_sync"
    FAILED_ITEMS = "failed_items"
    LOCAL_ADDITIONS = "local_additions"
    LOCAL_UNENCRYPTED = "local_unencrypted"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _FOLDER_LABELS[self]


_FOLDER_LABELS = {
    FolderSyncStatus.IDLE: "Up to Date",
    FolderSyncStatus.SCANNING: "Scanning",
    FolderSyncStatus.SYNCING: "Syncing",
    FolderSyncStatus.SYNC_PREPARE: "Syncing",
    FolderSyncStatus.PAUSED: "Paused",
    FolderSyncStatus.UNSHARED: "Unshared",
    FolderSyncStatus.ERROR: "Error",
    FolderSyncStatus.OUT_OF_SYNC: "Out of Sync",
    FolderSyncStatus.FAILED_ITEMS: "Failed Items",
    FolderSyncStatus.LOCAL_ADDITIONS: "Local Additions",
    FolderSyncStatus.LOCAL_UNENCRYPTED: "Local Unencrypted",
    FolderSyncStatus.UNKNOWN: "Unknown",
}


class DeviceSyncStatus(StrEnum):
    DISCONNECTED = "disconnected"
    DISCONNECTED_INACTIVE = "disconnected_inactive"
    IN_SYNC = "in_sync"
    PAUSED = "paused"
    UNUSED_DISCONNECTED = "unused_disconnected"
    UNUSED_IN_SYNC = "unused_in_sync"
    UNUSED_PAUSED = "unused_paused"
    SYNCING = "syncing"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _DEVICE_LABELS[self]


_DEVICE_LABELS = {
    DeviceSyncStatus.DISCONNECTED: "Disconnected",
    DeviceSyncStatus.DISCONNECTED_INACTIVE: "Disconnected (Inactive)",
    DeviceSyncStatus.IN_SYNC: "Up to Date",
    DeviceSyncStatus.PAUSED: "Paused",
    DeviceSyncStatus.UNUSED_DISCONNECTED: "Disconnected (Unused)",
    DeviceSyncStatus.UNUSED_IN_SYNC: "Connected (Unused)",
    DeviceSyncStatus.UNUSED_PAUSED: "Paused (Unused)",
    DeviceSyncStatus.SYNCING: "Syncing",
    DeviceSyncStatus.UNKNOWN: "Unknown",
}


def folder_status(folder: FolderProjection) -> FolderSyncStatus:
    """Derive the display status of a folder."""
    status = folder.status
    config = folder.config
    state = status.state if status is not None else ""

    if state == "syncing":
        return FolderSyncStatus.SYNCING
    if state == "sync-preparing":
        return FolderSyncStatus.SYNC_PREPARE
    if state == "scanning":
        return FolderSyncStatus.SCANNING
    if status is not None and status.has_error:
        return FolderSyncStatus.ERROR
    if config.paused:
        return FolderSyncStatus.PAUSED
    if len(config.devices) == 1:
        return FolderSyncStatus.UNSHARED
    if status is not None and status.need_total_items > 0:
        return FolderSyncStatus.OUT_OF_SYNC
    if (
        status is not None
        and config.type in (FolderType.RECEIVE_ONLY, FolderType.RECEIVE_ENCRYPTED)
        and status.receive_only_total_items > 0
    ):
        if config.type == FolderType.RECEIVE_ONLY:
            return FolderSyncStatus.LOCAL_ADDITIONS
        return FolderSyncStatus.LOCAL_UNENCRYPTED
    if state == "idle":
        return FolderSyncStatus.IDLE
    return FolderSyncStatus.UNKNOWN


@dataclass
class GroupedCompletion:
    """Sum of a device's per-folder completion entries."""

    need_bytes: int = 0
    need_items: int = 0
    need_deletes: int = 0
    total_bytes: int = 0
    completion: float = 100.0

    @property
    def needs_something(self) -> bool:
        return bool(self.need_bytes or self.need_items or self.need_deletes)


def group_completion(entries: Mapping[str, Completion]) -> GroupedCompletion:
    grouped = GroupedCompletion()
    for c in entries.values():
        grouped.need_bytes += c.need_bytes
        grouped.need_items += c.need_items
        grouped.need_deletes += c.need_deletes
        grouped.total_bytes += c.global_bytes

    if grouped.total_bytes > 0:
        grouped.completion = float(
            math.floor(100 * (1.0 - grouped.need_bytes / grouped.total_bytes))
        )
    else:
        # Nothing globally known: complete unless bytes are still needed.
        grouped.completion = 0.0 if grouped.need_bytes else 100.0
    return grouped


def device_status(device: DeviceProjection, now: datetime) -> DeviceSyncStatus:
    """Derive the display status of a remote device at time *now*."""
    unused = not device.folders

    if device.connection is None:
        return DeviceSyncStatus.UNKNOWN

    if device.config.paused:
        return DeviceSyncStatus.UNUSED_PAUSED if unused else DeviceSyncStatus.PAUSED

    if device.connection.connected:
        # A device whose shared folders are all paused reports no completion
        # percentage, so also accept "nothing needed" as in sync.
        grouped = group_completion(device.completion)
        if grouped.completion == 100 or not grouped.needs_something:
            return DeviceSyncStatus.UNUSED_IN_SYNC if unused else DeviceSyncStatus.IN_SYNC
        return DeviceSyncStatus.SYNCING

    last_seen = device.stats.last_seen if device.stats is not None else None
    inactive = last_seen is None or now - last_seen > INACTIVE_AFTER
    if not unused and inactive:
        return DeviceSyncStatus.DISCONNECTED_INACTIVE
    return DeviceSyncStatus.UNUSED_DISCONNECTED if unused else DeviceSyncStatus.DISCONNECTED
