"""Event log models: ``GET /rest/events`` envelopes and payload shapes."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from syncdash.models.base import ZERO_TIME, DaemonModel, DaemonTime
from syncdash.models.db import Completion, FolderStatus


class EventEnvelope(DaemonModel):
    """One entry of the event log. ``data`` is decoded separately by type."""

    id: int
    global_id: int = Field(default=0, alias="globalID")
    time: DaemonTime = ZERO_TIME
    type: str = ""
    data: Any = None


class FolderSummaryData(DaemonModel):
    folder: str
    summary: FolderStatus


class FolderScanProgressData(DaemonModel):
    folder: str
    current: int = 0
    total: int = 0
    rate: float = 0.0


class StateChangedData(DaemonModel):
    folder: str
    from_state: str = Field(default="", alias="from")
    to: str = ""
    error: str = ""
    duration: float = 0.0


class FolderCompletionData(Completion):
    device: str
    folder: str

    def to_completion(self) -> Completion:
        return Completion.model_validate(
            self.model_dump(exclude={"device", "folder"})
        )


class PendingDeviceAdded(DaemonModel):
    device_id: str = Field(alias="deviceID")
    name: str = ""
    address: str = ""


class PendingDeviceRemoved(DaemonModel):
    device_id: str = Field(alias="deviceID")


class PendingDevicesChangedData(DaemonModel):
    added: list[PendingDeviceAdded] = Field(default_factory=list)
    removed: list[PendingDeviceRemoved] = Field(default_factory=list)

    @field_validator("added", "removed", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class DeviceConnectedData(DaemonModel):
    id: str
    addr: str = ""
    device_name: str = ""
    client_version: str = ""
    type: str = ""


class DeviceDisconnectedData(DaemonModel):
    id: str
    error: str = ""


class DevicePauseData(DaemonModel):
    """Payload of both DevicePaused and DeviceResumed."""

    device: str
