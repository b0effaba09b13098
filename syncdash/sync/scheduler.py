"""Snapshot refresh scheduler: fetch commands and periodic producers.

Each ``fetch_*`` coroutine performs one request and wraps the outcome in a
result message; a :class:`~syncdash.client.errors.DaemonError` becomes the
message's ``error``. These are the commands the engine spawns.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from syncdash.client.errors import DaemonError
from syncdash.sync.messages import (
    ClockTicked,
    Command,
    CompletionFetched,
    ConfigFetched,
    ConnectionsFetched,
    DeviceStatsFetched,
    FolderStatsFetched,
    FolderStatusFetched,
    Message,
    PendingDevicesFetched,
    SystemStatusFetched,
    VersionFetched,
)

if TYPE_CHECKING:
    from syncdash.client.rest import DaemonClient
    from syncdash.config import RefreshSettings

logger = logging.getLogger(__name__)


# -- One-shot fetches ---------------------------------------------------------


async def fetch_system_status(client: DaemonClient) -> SystemStatusFetched:
    try:
        return SystemStatusFetched(status=await client.get_system_status())
    except DaemonError as e:
        return SystemStatusFetched(error=e)


async def fetch_config(client: DaemonClient) -> ConfigFetched:
    try:
        return ConfigFetched(config=await client.get_config())
    except DaemonError as e:
        return ConfigFetched(error=e)


async def fetch_version(client: DaemonClient) -> VersionFetched:
    try:
        return VersionFetched(version=await client.get_system_version())
    except DaemonError as e:
        return VersionFetched(error=e)


async def fetch_connections(client: DaemonClient) -> ConnectionsFetched:
    try:
        return ConnectionsFetched(connections=await client.get_connections())
    except DaemonError as e:
        return ConnectionsFetched(error=e)


async def fetch_folder_status(client: DaemonClient, folder_id: str) -> FolderStatusFetched:
    try:
        return FolderStatusFetched(folder_id, status=await client.get_folder_status(folder_id))
    except DaemonError as e:
        return FolderStatusFetched(folder_id, error=e)


async def fetch_completion(
    client: DaemonClient, device_id: str, folder_id: str,
) -> CompletionFetched:
    try:
        completion = await client.get_completion(device_id, folder_id)
    except DaemonError as e:
        return CompletionFetched(device_id, folder_id, error=e)
    return CompletionFetched(device_id, folder_id, completion=completion)


async def fetch_folder_stats(client: DaemonClient) -> FolderStatsFetched:
    try:
        return FolderStatsFetched(stats=await client.get_folder_stats())
    except DaemonError as e:
        return FolderStatsFetched(error=e)


async def fetch_device_stats(client: DaemonClient) -> DeviceStatsFetched:
    try:
        return DeviceStatsFetched(stats=await client.get_device_stats())
    except DaemonError as e:
        return DeviceStatsFetched(error=e)


async def fetch_pending_devices(client: DaemonClient) -> PendingDevicesFetched:
    try:
        return PendingDevicesFetched(pending=await client.get_pending_devices())
    except DaemonError as e:
        return PendingDevicesFetched(error=e)


async def read_clock() -> ClockTicked:
    return ClockTicked(now=datetime.now(UTC))


# -- Periodic producers -------------------------------------------------------


class SnapshotScheduler:
    """Builds the long-lived periodic producers.

    System status is fetched during start-up, so its loop sleeps first;
    connections are fetched immediately and then on every interval.
    """

    def __init__(
        self,
        client: DaemonClient,
        deliver: Callable[[Message], Awaitable[None]],
        refresh: RefreshSettings,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Command = read_clock,
    ):
        self.client = client
        self.deliver = deliver
        self.refresh = refresh
        self._sleep = sleep
        self._clock = clock

    async def periodic(self, command: Command, interval: float, *, immediate: bool = True) -> None:
        """Run *command* every *interval* seconds, delivering each result."""
        if not immediate:
            await self._sleep(interval)
        while True:
            msg = await command()
            if msg.error is not None:
                logger.warning("%s failed: %s", type(msg).__name__, msg.error)
            await self.deliver(msg)
            await self._sleep(interval)

    def loops(self) -> list[Coroutine[Any, Any, None]]:
        interval = self.refresh.status_interval
        return [
            self.periodic(
                lambda: fetch_system_status(self.client), interval, immediate=False,
            ),
            self.periodic(lambda: fetch_connections(self.client), interval),
            self.periodic(self._clock, self.refresh.clock_interval),
        ]
