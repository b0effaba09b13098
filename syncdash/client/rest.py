"""DaemonClient: typed wrappers around the daemon's REST endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

import aiohttp
from pydantic import TypeAdapter, ValidationError

from syncdash.client.errors import (
    MissingApiKeyError,
    ResponseDecodeError,
    TransportError,
)
from syncdash.client.http import AsyncHttpClient
from syncdash.models.config import DaemonConfig, DeviceConfig
from syncdash.models.db import Completion, DeviceStats, FolderStats, FolderStatus
from syncdash.models.system import (
    PendingDeviceInfo,
    SystemConnections,
    SystemStatus,
    SystemVersion,
)

if TYPE_CHECKING:
    from syncdash.config import DaemonSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIG = "/rest/config"
CONFIG_DEVICES = "/rest/config/devices"
CONFIG_FOLDERS = "/rest/config/folders"
SYSTEM_STATUS = "/rest/system/status"
SYSTEM_VERSION = "/rest/system/version"
SYSTEM_CONNECTIONS = "/rest/system/connections"
DB_STATUS = "/rest/db/status"
DB_COMPLETION = "/rest/db/completion"
DB_SCAN = "/rest/db/scan"
DB_REVERT = "/rest/db/revert"
STATS_FOLDER = "/rest/stats/folder"
STATS_DEVICE = "/rest/stats/device"
CLUSTER_PENDING_DEVICES = "/rest/cluster/pending/devices"
EVENTS = "/rest/events"

_FOLDER_STATS = TypeAdapter(dict[str, FolderStats])
_DEVICE_STATS = TypeAdapter(dict[str, DeviceStats])
_PENDING_DEVICES = TypeAdapter(dict[str, PendingDeviceInfo])
_EVENT_LIST = TypeAdapter(list[Any])

# Extra seconds on top of the daemon-side long-poll timeout.
_EVENTS_TIMEOUT_MARGIN = 10.0


class DaemonClient:
    """Remote state client.

    Every method either returns a validated model or raises a
    :class:`~syncdash.client.errors.DaemonError`. The completion lookup is the
    one exception: HTTP 404 means "no data for this pair" and yields ``None``.
    """

    def __init__(self, settings: DaemonSettings, http: AsyncHttpClient | None = None):
        if not settings.api_key:
            raise MissingApiKeyError()
        self.settings = settings
        self._http = http or AsyncHttpClient(
            settings.url,
            api_key=settings.api_key,
            timeout=settings.timeout,
            user_agent=settings.user_agent,
            verify_ssl=settings.verify_ssl,
        )

    # -- Transport helpers ---------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        timeout: float | None = None,
        allow_not_found: bool = False,
    ) -> bytes | None:
        """Perform a request and return the raw body.

        Returns ``None`` for a 404 when *allow_not_found* is set.
        """
        try:
            resp = await self._http.request(
                method, path, params=params, json=json, timeout=timeout,
            )
            async with resp:
                if resp.status == 404 and allow_not_found:
                    return None
                if resp.status >= 400:
                    raise TransportError(
                        f"{method} {path} failed with HTTP {resp.status}",
                        status=resp.status,
                    )
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"{method} {path} failed: {e or type(e).__name__}") from e

    async def _get_model(
        self,
        path: str,
        adapter: TypeAdapter[T],
        params: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> T:
        body = await self._send("GET", path, params=params, timeout=timeout)
        return self._decode(path, adapter, body or b"null")

    @staticmethod
    def _decode(path: str, adapter: TypeAdapter[T], body: bytes) -> T:
        try:
            return adapter.validate_json(body)
        except ValidationError as e:
            raise ResponseDecodeError(f"GET {path}: invalid response body: {e}") from e

    # -- Snapshots -----------------------------------------------------------

    async def get_config(self) -> DaemonConfig:
        return await self._get_model(CONFIG, TypeAdapter(DaemonConfig))

    async def get_system_status(self) -> SystemStatus:
        return await self._get_model(SYSTEM_STATUS, TypeAdapter(SystemStatus))

    async def get_system_version(self) -> SystemVersion:
        return await self._get_model(SYSTEM_VERSION, TypeAdapter(SystemVersion))

    async def get_connections(self) -> SystemConnections:
        return await self._get_model(SYSTEM_CONNECTIONS, TypeAdapter(SystemConnections))

    async def get_folder_status(self, folder_id: str) -> FolderStatus:
        return await self._get_model(
            DB_STATUS, TypeAdapter(FolderStatus), params={"folder": folder_id},
        )

    async def get_completion(self, device_id: str, folder_id: str) -> Completion | None:
        body = await self._send(
            "GET",
            DB_COMPLETION,
            params={"device": device_id, "folder": folder_id},
            allow_not_found=True,
        )
        if body is None:
            return None
        return self._decode(DB_COMPLETION, TypeAdapter(Completion), body)

    async def get_folder_stats(self) -> dict[str, FolderStats]:
        return await self._get_model(STATS_FOLDER, _FOLDER_STATS)

    async def get_device_stats(self) -> dict[str, DeviceStats]:
        return await self._get_model(STATS_DEVICE, _DEVICE_STATS)

    async def get_pending_devices(self) -> dict[str, PendingDeviceInfo]:
        return await self._get_model(CLUSTER_PENDING_DEVICES, _PENDING_DEVICES)

    async def get_events(self, since: int, timeout: int = 60) -> list[Any]:
        """Long-poll the event log for events with an ID greater than *since*.

        Envelopes are returned raw; decoding happens per event so that one
        malformed payload does not sink the batch.
        """
        return await self._get_model(
            EVENTS,
            _EVENT_LIST,
            params={"since": str(since), "timeout": str(timeout)},
            timeout=timeout + _EVENTS_TIMEOUT_MARGIN,
        )

    # -- Mutations -----------------------------------------------------------

    async def patch_folder(self, folder_id: str, patch: dict[str, Any]) -> None:
        await self._send("PATCH", f"{CONFIG_FOLDERS}/{quote(folder_id, safe='')}", json=patch)

    async def pause_folder(self, folder_id: str, paused: bool) -> None:
        await self.patch_folder(folder_id, {"paused": paused})

    async def scan(self, folder_id: str) -> None:
        await self._send("POST", DB_SCAN, params={"folder": folder_id})

    async def revert(self, folder_id: str) -> None:
        await self._send("POST", DB_REVERT, params={"folder": folder_id})

    async def put_config(self, config: DaemonConfig) -> None:
        await self._send("PUT", CONFIG, json=config.to_wire())

    async def add_device(self, device: DeviceConfig) -> None:
        await self._send("POST", CONFIG_DEVICES, json=device.to_wire())

    async def delete_pending_device(self, device_id: str) -> None:
        await self._send("DELETE", CLUSTER_PENDING_DEVICES, params={"device": device_id})

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> DaemonClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
