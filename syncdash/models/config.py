"""Config models: ``GET /rest/config`` and the ``ConfigSaved`` event."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from syncdash.models.base import DaemonModel, DaemonTime


class FolderType(StrEnum):
    SEND_RECEIVE = "sendreceive"
    SEND_ONLY = "sendonly"
    RECEIVE_ONLY = "receiveonly"
    RECEIVE_ENCRYPTED = "receiveencrypted"

    @property
    def label(self) -> str:
        return {
            FolderType.SEND_RECEIVE: "Send & Receive",
            FolderType.SEND_ONLY: "Send Only",
            FolderType.RECEIVE_ONLY: "Receive Only",
            FolderType.RECEIVE_ENCRYPTED: "Receive Encrypted",
        }[self]


class FolderDevice(DaemonModel):
    device_id: str = Field(alias="deviceID")
    introduced_by: str = Field(default="", alias="introducedBy")
    encryption_password: str = ""


class Versioning(DaemonModel):
    type: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    cleanup_interval_s: int = 0


class FolderConfig(DaemonModel):
    id: str
    label: str = ""
    path: str = ""
    type: str = FolderType.SEND_RECEIVE.value
    devices: list[FolderDevice] = Field(default_factory=list)
    rescan_interval_s: int = 3600
    fs_watcher_enabled: bool = True
    versioning: Versioning = Field(default_factory=Versioning)
    paused: bool = False

    @property
    def display_name(self) -> str:
        return self.label or self.id

    @property
    def type_label(self) -> str:
        try:
            return FolderType(self.type).label
        except ValueError:
            return self.type

    def shares_with(self, device_id: str) -> bool:
        return any(d.device_id == device_id for d in self.devices)


class DeviceConfig(DaemonModel):
    device_id: str = Field(default="", alias="deviceID")
    name: str = ""
    addresses: list[str] = Field(default_factory=lambda: ["dynamic"])
    compression: str = "metadata"
    introducer: bool = False
    paused: bool = False
    auto_accept_folders: bool = False
    max_send_kbps: int = 0
    max_recv_kbps: int = 0
    num_connections: int = 0
    untrusted: bool = False


class Options(DaemonModel):
    max_send_kbps: int = 0
    max_recv_kbps: int = 0


class Defaults(DaemonModel):
    device: DeviceConfig = Field(default_factory=DeviceConfig)


class RemoteIgnoredDevice(DaemonModel):
    device_id: str = Field(alias="deviceID")
    name: str = ""
    address: str = ""
    time: DaemonTime


class DaemonConfig(DaemonModel):
    """The daemon's whole configuration document."""

    version: int = 0
    folders: list[FolderConfig] = Field(default_factory=list)
    devices: list[DeviceConfig] = Field(default_factory=list)
    options: Options = Field(default_factory=Options)
    defaults: Defaults = Field(default_factory=Defaults)
    remote_ignored_devices: list[RemoteIgnoredDevice] = Field(default_factory=list)

    def device_name(self, device_id: str) -> str | None:
        for device in self.devices:
            if device.device_id == device_id:
                return device.name
        return None
