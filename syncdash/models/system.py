"""System models: status, version, connections, pending devices."""

from __future__ import annotations

from pydantic import Field

from syncdash.models.base import ZERO_TIME, DaemonModel, DaemonTime


class SystemStatus(DaemonModel):
    my_id: str = Field(alias="myID")
    uptime: int = 0
    start_time: DaemonTime | None = None


class SystemVersion(DaemonModel):
    version: str = ""
    long_version: str = ""
    os: str = ""
    arch: str = ""
    codename: str = ""


class ConnectionTotal(DaemonModel):
    """Cumulative byte counters since daemon start, sampled at ``at``."""

    at: DaemonTime = ZERO_TIME
    in_bytes_total: int = 0
    out_bytes_total: int = 0


class Connection(ConnectionTotal):
    connected: bool = False
    paused: bool = False
    address: str = ""
    client_version: str = ""
    type: str = ""
    is_local: bool = False
    crypto: str = ""
    started_at: DaemonTime | None = None


class SystemConnections(DaemonModel):
    connections: dict[str, Connection] = Field(default_factory=dict)
    total: ConnectionTotal = Field(default_factory=ConnectionTotal)


class PendingDeviceInfo(DaemonModel):
    """One entry of ``GET /rest/cluster/pending/devices``, keyed by device ID."""

    time: DaemonTime = ZERO_TIME
    name: str = ""
    address: str = ""
