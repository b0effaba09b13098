"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from syncdash.client.rest import DaemonClient
from syncdash.config import RefreshSettings
from syncdash.models.config import DaemonConfig
from syncdash.models.db import Completion, FolderStats, FolderStatus
from syncdash.models.system import (
    PendingDeviceInfo,
    SystemConnections,
    SystemStatus,
    SystemVersion,
)
from syncdash.sync.store import ProjectionStore

MY_ID = "LAPTOP1-AAAAAAA-AAAAAAA-AAAAAAA-AAAAAAA-AAAAAAA-AAAAAAA-AAAAAAA"
NAS_ID = "NASNAS1-BBBBBBB-BBBBBBB-BBBBBBB-BBBBBBB-BBBBBBB-BBBBBBB-BBBBBBB"
PHONE_ID = "PHONE01-CCCCCCC-CCCCCCC-CCCCCCC-CCCCCCC-CCCCCCC-CCCCCCC-CCCCCCC"
STRANGER_ID = "STRANGE-DDDDDDD-DDDDDDD-DDDDDDD-DDDDDDD-DDDDDDD-DDDDDDD-DDDDDDD"

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


def config_wire() -> dict[str, Any]:
    """A ``GET /rest/config`` body with three folders and three devices."""
    return {
        "version": 37,
        "folders": [
            {
                "id": "docs",
                "label": "Documents",
                "path": "/home/me/docs",
                "type": "sendreceive",
                "devices": [{"deviceID": MY_ID}, {"deviceID": NAS_ID}],
                "rescanIntervalS": 3600,
                "fsWatcherEnabled": True,
                "paused": False,
                "order": "random",
            },
            {
                "id": "photos",
                "label": "Photos",
                "path": "/home/me/photos",
                "type": "receiveonly",
                "devices": [
                    {"deviceID": MY_ID},
                    {"deviceID": NAS_ID},
                    {"deviceID": PHONE_ID},
                ],
                "paused": False,
            },
            {
                "id": "scratch",
                "label": "",
                "path": "/tmp/scratch",
                "devices": [{"deviceID": MY_ID}],
            },
        ],
        "devices": [
            {"deviceID": MY_ID, "name": "laptop"},
            {"deviceID": NAS_ID, "name": "nas", "compression": "always"},
            {"deviceID": PHONE_ID, "name": "phone"},
        ],
        "options": {"maxSendKbps": 100, "maxRecvKbps": 0},
        "defaults": {
            "device": {
                "deviceID": "",
                "compression": "always",
                "addresses": ["dynamic"],
                "autoAcceptFolders": True,
            },
        },
        "remoteIgnoredDevices": [],
        "gui": {"enabled": True, "address": "127.0.0.1:8384"},
    }


def folder_status(**overrides: Any) -> FolderStatus:
    wire: dict[str, Any] = {
        "state": "idle",
        "globalBytes": 1000,
        "globalFiles": 10,
        "localBytes": 1000,
        "localFiles": 10,
        "localDirectories": 2,
        "needBytes": 0,
        "needTotalItems": 0,
    }
    wire.update(overrides)
    return FolderStatus.model_validate(wire)


def completion(need_bytes: int = 0, global_bytes: int = 1000, **overrides: Any) -> Completion:
    return Completion(
        completion=100.0 * (1 - need_bytes / global_bytes) if global_bytes else 100.0,
        global_bytes=global_bytes,
        need_bytes=need_bytes,
        **overrides,
    )


@pytest.fixture
def daemon_config() -> DaemonConfig:
    return DaemonConfig.model_validate(config_wire())


@pytest.fixture
def store(daemon_config) -> ProjectionStore:
    """Store after system status and config have been applied."""
    s = ProjectionStore()
    s.apply_system_status(SystemStatus(my_id=MY_ID, uptime=3600))
    s.merge_config(daemon_config)
    s.tick(NOW)
    return s


@pytest.fixture
def mock_client() -> AsyncMock:
    return AsyncMock(spec=DaemonClient)


@pytest.fixture
def refresh() -> RefreshSettings:
    return RefreshSettings(
        status_interval=10.0,
        clock_interval=1.0,
        events_timeout=60,
        retry_delay=1.0,
        retry_backoff="fixed",
    )


@pytest.fixture
def answering_client(mock_client, daemon_config) -> AsyncMock:
    """A client that answers every snapshot request successfully."""
    mock_client.get_system_status.return_value = SystemStatus(my_id=MY_ID, uptime=60)
    mock_client.get_config.return_value = daemon_config
    mock_client.get_system_version.return_value = SystemVersion(version="v1.27.0", os="linux")
    mock_client.get_connections.return_value = SystemConnections()
    mock_client.get_folder_status.return_value = folder_status()
    mock_client.get_completion.return_value = completion()
    mock_client.get_folder_stats.return_value = {"docs": FolderStats(last_scan=NOW)}
    mock_client.get_device_stats.return_value = {}
    mock_client.get_pending_devices.return_value = {
        STRANGER_ID: PendingDeviceInfo(time=NOW, name="stranger", address="1.2.3.4"),
    }
    mock_client.__aexit__.return_value = False
    return mock_client
