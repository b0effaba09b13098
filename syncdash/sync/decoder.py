"""Event decoder: maps ``(type, data)`` pairs to typed event variants.

The set of variants is closed. Unknown type tags decode to
:class:`OpaqueEvent` carrying the raw payload; a payload that does not match
its expected shape raises :class:`EventDecodeError` for that one event, and
:func:`decode_batch` skips it without touching the rest of the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from syncdash.models.base import ZERO_TIME
from syncdash.models.config import DaemonConfig
from syncdash.models.db import Completion, FolderStatus
from syncdash.models.events import (
    DeviceConnectedData,
    DeviceDisconnectedData,
    DevicePauseData,
    EventEnvelope,
    FolderCompletionData,
    FolderScanProgressData,
    FolderSummaryData,
    PendingDeviceAdded,
    PendingDevicesChangedData,
    StateChangedData,
)

logger = logging.getLogger(__name__)


class EventDecodeError(ValueError):
    """A single event payload did not match the shape of its type."""

    def __init__(self, type_tag: str, reason: str) -> None:
        super().__init__(f"cannot decode {type_tag} event: {reason}")
        self.type_tag = type_tag


class DeviceChange(StrEnum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    PAUSED = "paused"
    RESUMED = "resumed"


@dataclass(frozen=True)
class FolderSummaryChanged:
    folder: str
    summary: FolderStatus


@dataclass(frozen=True)
class ConfigSaved:
    config: DaemonConfig


@dataclass(frozen=True)
class FolderScanProgress:
    folder: str
    current: int = 0
    total: int = 0
    rate: float = 0.0


@dataclass(frozen=True)
class FolderStateChanged:
    folder: str
    from_state: str
    to_state: str
    error: str = ""


@dataclass(frozen=True)
class DeviceStateChanged:
    device: str
    change: DeviceChange
    address: str = ""
    error: str = ""


@dataclass(frozen=True)
class FolderCompletionChanged:
    device: str
    folder: str
    completion: Completion


@dataclass(frozen=True)
class PendingDevicesChanged:
    added: tuple[PendingDeviceAdded, ...] = ()
    removed: tuple[str, ...] = ()


@dataclass(frozen=True)
class OpaqueEvent:
    """An event type this client does not interpret."""

    type: str
    raw: Any = None


EventVariant = (
    FolderSummaryChanged
    | ConfigSaved
    | FolderScanProgress
    | FolderStateChanged
    | DeviceStateChanged
    | FolderCompletionChanged
    | PendingDevicesChanged
    | OpaqueEvent
)


@dataclass(frozen=True)
class DaemonEvent:
    """A decoded entry of the event log."""

    id: int
    type: str
    payload: EventVariant
    time: datetime = ZERO_TIME
    global_id: int = 0


@dataclass
class DecodedBatch:
    """Result of decoding one long-poll response.

    ``last_id`` is the highest event ID seen in the response, including
    events that were skipped, so the cursor can move past them.
    """

    events: list[DaemonEvent] = field(default_factory=list)
    last_id: int | None = None
    skipped: int = 0


# -- Per-type decoders --------------------------------------------------------


def _folder_summary(data: Any) -> FolderSummaryChanged:
    d = FolderSummaryData.model_validate(data)
    return FolderSummaryChanged(folder=d.folder, summary=d.summary)


def _config_saved(data: Any) -> ConfigSaved:
    return ConfigSaved(config=DaemonConfig.model_validate(data))


def _scan_progress(data: Any) -> FolderScanProgress:
    d = FolderScanProgressData.model_validate(data)
    return FolderScanProgress(folder=d.folder, current=d.current, total=d.total, rate=d.rate)


def _state_changed(data: Any) -> FolderStateChanged:
    d = StateChangedData.model_validate(data)
    return FolderStateChanged(
        folder=d.folder, from_state=d.from_state, to_state=d.to, error=d.error,
    )


def _device_connected(data: Any) -> DeviceStateChanged:
    d = DeviceConnectedData.model_validate(data)
    return DeviceStateChanged(device=d.id, change=DeviceChange.CONNECTED, address=d.addr)


def _device_disconnected(data: Any) -> DeviceStateChanged:
    d = DeviceDisconnectedData.model_validate(data)
    return DeviceStateChanged(device=d.id, change=DeviceChange.DISCONNECTED, error=d.error)


def _device_paused(data: Any) -> DeviceStateChanged:
    d = DevicePauseData.model_validate(data)
    return DeviceStateChanged(device=d.device, change=DeviceChange.PAUSED)


def _device_resumed(data: Any) -> DeviceStateChanged:
    d = DevicePauseData.model_validate(data)
    return DeviceStateChanged(device=d.device, change=DeviceChange.RESUMED)


def _folder_completion(data: Any) -> FolderCompletionChanged:
    d = FolderCompletionData.model_validate(data)
    return FolderCompletionChanged(device=d.device, folder=d.folder, completion=d.to_completion())


def _pending_devices(data: Any) -> PendingDevicesChanged:
    d = PendingDevicesChangedData.model_validate(data)
    return PendingDevicesChanged(
        added=tuple(d.added),
        removed=tuple(r.device_id for r in d.removed),
    )


DECODERS: dict[str, Callable[[Any], EventVariant]] = {
    "FolderSummary": _folder_summary,
    "ConfigSaved": _config_saved,
    "FolderScanProgress": _scan_progress,
    "StateChanged": _state_changed,
    "DeviceConnected": _device_connected,
    "DeviceDisconnected": _device_disconnected,
    "DevicePaused": _device_paused,
    "DeviceResumed": _device_resumed,
    "FolderCompletion": _folder_completion,
    "PendingDevicesChanged": _pending_devices,
}


def decode(type_tag: str, raw: Any) -> EventVariant:
    """Decode one payload. Unknown tags never raise."""
    decoder = DECODERS.get(type_tag)
    if decoder is None:
        return OpaqueEvent(type=type_tag, raw=raw)
    try:
        return decoder(raw)
    except ValidationError as e:
        raise EventDecodeError(type_tag, str(e)) from e


def _raw_id(raw: Any) -> int | None:
    if isinstance(raw, dict) and isinstance(raw.get("id"), int):
        return raw["id"]
    return None


def decode_batch(raw_events: Iterable[Any]) -> DecodedBatch:
    """Decode a long-poll response, skipping events that fail to decode."""
    batch = DecodedBatch()
    for raw in raw_events:
        raw_id = _raw_id(raw)
        if raw_id is not None:
            batch.last_id = raw_id if batch.last_id is None else max(batch.last_id, raw_id)

        try:
            envelope = EventEnvelope.model_validate(raw)
            payload = decode(envelope.type, envelope.data)
        except (ValidationError, EventDecodeError) as e:
            batch.skipped += 1
            logger.warning("Skipping event %s: %s", raw_id if raw_id is not None else "?", e)
            continue

        batch.events.append(DaemonEvent(
            id=envelope.id,
            type=envelope.type,
            payload=payload,
            time=envelope.time,
            global_id=envelope.global_id,
        ))
    return batch
