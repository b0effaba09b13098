"""Database and statistics models: per-folder and per-device data."""

from __future__ import annotations

from pydantic import Field

from syncdash.models.base import ZERO_TIME, DaemonModel, DaemonTime


class FolderStatus(DaemonModel):
    """``GET /rest/db/status`` and the ``summary`` of a FolderSummary event."""

    state: str = ""
    state_changed: DaemonTime | None = None
    error: str = ""
    invalid: str = ""
    watch_error: str = ""
    errors: int = 0
    pull_errors: int = 0

    global_files: int = 0
    global_directories: int = 0
    global_deleted: int = 0
    global_bytes: int = 0
    global_total_items: int = 0

    local_files: int = 0
    local_directories: int = 0
    local_deleted: int = 0
    local_bytes: int = 0
    local_total_items: int = 0

    need_files: int = 0
    need_directories: int = 0
    need_deletes: int = 0
    need_bytes: int = 0
    need_total_items: int = 0

    receive_only_changed_files: int = 0
    receive_only_changed_directories: int = 0
    receive_only_changed_deletes: int = 0
    receive_only_changed_bytes: int = 0
    receive_only_total_items: int = 0

    in_sync_files: int = 0
    in_sync_bytes: int = 0
    sequence: int = 0

    @property
    def has_error(self) -> bool:
        return bool(self.invalid) or bool(self.error)


class Completion(DaemonModel):
    """How much of a folder a remote device still needs."""

    completion: float = 0.0
    global_bytes: int = 0
    global_items: int = 0
    need_bytes: int = 0
    need_items: int = 0
    need_deletes: int = 0
    remote_state: str = ""
    sequence: int = 0


class LastFile(DaemonModel):
    at: DaemonTime = ZERO_TIME
    filename: str = ""
    deleted: bool = False


class FolderStats(DaemonModel):
    last_scan: DaemonTime = ZERO_TIME
    last_file: LastFile = Field(default_factory=LastFile)


class DeviceStats(DaemonModel):
    last_seen: DaemonTime = ZERO_TIME
    last_connection_duration_s: float = 0.0
