"""State synchronization and projection engine."""

from __future__ import annotations

from syncdash.sync.cursor import EventCursorLoop
from syncdash.sync.decoder import EventDecodeError, decode, decode_batch
from syncdash.sync.engine import SyncEngine
from syncdash.sync.rate import rate
from syncdash.sync.status import (
    DeviceSyncStatus,
    FolderSyncStatus,
    device_status,
    folder_status,
)
from syncdash.sync.store import ProjectionStore

__all__ = [
    "DeviceSyncStatus",
    "EventCursorLoop",
    "EventDecodeError",
    "FolderSyncStatus",
    "ProjectionStore",
    "SyncEngine",
    "decode",
    "decode_batch",
    "device_status",
    "folder_status",
    "rate",
]
