"""Wire models for the daemon's REST and event API."""

from syncdash.models.base import ZERO_TIME, DaemonModel, DaemonTime
from syncdash.models.config import (
    DaemonConfig,
    Defaults,
    DeviceConfig,
    FolderConfig,
    FolderDevice,
    FolderType,
    Options,
    RemoteIgnoredDevice,
    Versioning,
)
from syncdash.models.db import Completion, DeviceStats, FolderStats, FolderStatus, LastFile
from syncdash.models.events import EventEnvelope
from syncdash.models.system import (
    Connection,
    ConnectionTotal,
    PendingDeviceInfo,
    SystemConnections,
    SystemStatus,
    SystemVersion,
)

__all__ = [
    "ZERO_TIME",
    "Completion",
    "Connection",
    "ConnectionTotal",
    "DaemonConfig",
    "DaemonModel",
    "DaemonTime",
    "Defaults",
    "DeviceConfig",
    "DeviceStats",
    "EventEnvelope",
    "FolderConfig",
    "FolderDevice",
    "FolderStats",
    "FolderStatus",
    "FolderType",
    "LastFile",
    "Options",
    "PendingDeviceInfo",
    "RemoteIgnoredDevice",
    "SystemConnections",
    "SystemStatus",
    "SystemVersion",
    "Versioning",
]
