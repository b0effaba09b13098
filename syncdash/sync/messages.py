"""Result messages delivered by producer tasks to the engine's queue.

Every fetch message carries either its payload or an ``error``; producers
never raise across task boundaries. A :data:`Command` is a zero-argument
coroutine factory that the engine runs as a new producer task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from syncdash.client.errors import DaemonError
from syncdash.models.config import DaemonConfig
from syncdash.models.db import Completion, DeviceStats, FolderStats, FolderStatus
from syncdash.models.system import (
    PendingDeviceInfo,
    SystemConnections,
    SystemStatus,
    SystemVersion,
)
from syncdash.sync.decoder import DaemonEvent


@dataclass
class Message:
    error: DaemonError | None = field(default=None, kw_only=True)

    #: Key under which a failure is recorded in ``ProjectionStore.errors``.
    source = "daemon"

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class EventsFetched(Message):
    """One long-poll response.

    The cursor loop waits on ``applied`` before advancing, so the cursor
    never moves past events the engine has not applied.
    """

    since: int
    events: list[DaemonEvent] = field(default_factory=list)
    last_id: int | None = None
    applied: asyncio.Event = field(default_factory=asyncio.Event)

    source = "events"


@dataclass
class EventsFailed(Message):
    since: int = 0

    source = "events"


@dataclass
class EventsRecovered(Message):
    """A poll succeeded after one or more failed polls."""

    since: int = 0

    source = "events"


@dataclass
class ConfigFetched(Message):
    config: DaemonConfig | None = None

    source = "config"


@dataclass
class SystemStatusFetched(Message):
    status: SystemStatus | None = None

    source = "system_status"


@dataclass
class VersionFetched(Message):
    version: SystemVersion | None = None

    source = "version"


@dataclass
class ConnectionsFetched(Message):
    connections: SystemConnections | None = None

    source = "connections"


@dataclass
class FolderStatusFetched(Message):
    folder_id: str
    status: FolderStatus | None = None

    source = "folder_status"


@dataclass
class CompletionFetched(Message):
    """``completion is None`` without an error means the daemon has no data."""

    device_id: str
    folder_id: str
    completion: Completion | None = None

    source = "completion"


@dataclass
class FolderStatsFetched(Message):
    stats: dict[str, FolderStats] = field(default_factory=dict)

    source = "folder_stats"


@dataclass
class DeviceStatsFetched(Message):
    stats: dict[str, DeviceStats] = field(default_factory=dict)

    source = "device_stats"


@dataclass
class PendingDevicesFetched(Message):
    pending: dict[str, PendingDeviceInfo] = field(default_factory=dict)

    source = "pending_devices"


@dataclass
class ClockTicked(Message):
    now: datetime


@dataclass
class ActionCompleted(Message):
    """Outcome of a user mutation."""

    action: str
    target: str = ""
    removes_pending: bool = False
    detail: dict[str, Any] = field(default_factory=dict)

    source = "action"


Command = Callable[[], Awaitable[Message]]
