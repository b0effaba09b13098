"""Tests for the projection store."""

from __future__ import annotations

from datetime import timedelta

from conftest import MY_ID, NAS_ID, NOW, PHONE_ID, STRANGER_ID, completion, config_wire, folder_status

from syncdash.models.config import DaemonConfig
from syncdash.models.db import DeviceStats, FolderStats
from syncdash.models.events import PendingDeviceAdded
from syncdash.models.system import (
    Connection,
    ConnectionTotal,
    PendingDeviceInfo,
    SystemConnections,
    SystemStatus,
    SystemVersion,
)
from syncdash.sync.decoder import (
    DeviceChange,
    DeviceStateChanged,
    FolderScanProgress,
    FolderStateChanged,
)
from syncdash.sync.store import ProjectionStore


def _connections(at, total_in, total_out, per_device=None):
    return SystemConnections(
        total=ConnectionTotal(at=at, in_bytes_total=total_in, out_bytes_total=total_out),
        connections={
            device_id: Connection(
                at=at, connected=True, in_bytes_total=i, out_bytes_total=o,
            )
            for device_id, (i, o) in (per_device or {}).items()
        },
    )


class TestMergeConfig:
    def test_excludes_this_device(self, store):
        assert set(store.devices) == {NAS_ID, PHONE_ID}
        assert store.this_device.name == "laptop"

    def test_shared_devices_exclude_self(self, store):
        assert store.folders["docs"].shared_devices == ["nas"]
        assert store.folders["photos"].shared_devices == ["nas", "phone"]
        assert store.folders["scratch"].shared_devices == []

    def test_device_folders(self, store):
        assert store.devices[NAS_ID].folders == [("docs", "Documents"), ("photos", "Photos")]
        assert store.devices[PHONE_ID].folders == [("photos", "Photos")]

    def test_global_limits(self, store):
        assert store.this_device.max_send_kbps == 100
        assert store.this_device.max_recv_kbps == 0

    def test_returns_new_folders_only(self, daemon_config):
        s = ProjectionStore()
        assert s.merge_config(daemon_config) == ["docs", "photos", "scratch"]
        assert s.merge_config(daemon_config) == []

    def test_preserves_runtime_state(self, store):
        store.apply_folder_status("docs", folder_status(state="syncing"))
        store.apply_completion(NAS_ID, "docs", completion(need_bytes=10))

        wire = config_wire()
        wire["folders"][0]["label"] = "Docs (renamed)"
        store.merge_config(DaemonConfig.model_validate(wire))

        assert store.folders["docs"].label == "Docs (renamed)"
        assert store.folders["docs"].status.state == "syncing"
        assert "docs" in store.devices[NAS_ID].completion

    def test_removes_absent_entities(self, store):
        wire = config_wire()
        wire["folders"] = [f for f in wire["folders"] if f["id"] != "photos"]
        wire["devices"] = [d for d in wire["devices"] if d["deviceID"] != PHONE_ID]
        store.apply_completion(NAS_ID, "photos", completion())

        store.merge_config(DaemonConfig.model_validate(wire))

        assert "photos" not in store.folders
        assert PHONE_ID not in store.devices
        assert "photos" not in store.devices[NAS_ID].completion

    def test_keeps_raw_config_and_defaults(self, store, daemon_config):
        assert store.config is daemon_config
        assert store.device_defaults.compression == "always"
        assert store.device_defaults.auto_accept_folders is True

    def test_own_id_learned_after_config(self, daemon_config):
        s = ProjectionStore()
        s.merge_config(daemon_config)
        assert MY_ID in s.devices

        s.apply_system_status(SystemStatus(my_id=MY_ID))
        assert MY_ID not in s.devices
        assert s.this_device.name == "laptop"


class TestFolders:
    def test_status_idempotent(self, store):
        status = folder_status(state="idle", needTotalItems=2)
        store.apply_folder_status("docs", status)
        first = store.folders["docs"].status
        store.apply_folder_status("docs", status)
        assert store.folders["docs"].status == first

    def test_status_cleared(self, store):
        store.apply_folder_status("docs", folder_status())
        store.apply_folder_status("docs", None)
        assert store.folders["docs"].status is None

    def test_unknown_folder_ignored(self, store):
        store.apply_folder_status("nope", folder_status())
        assert "nope" not in store.folders

    def test_scan_progress(self, store):
        store.apply_scan_progress(FolderScanProgress("docs", current=50, total=200, rate=10.0))
        progress = store.folders["docs"].scan_progress
        assert progress.current == 50
        assert progress.percent == 25.0

    def test_entering_scanning_clears_progress(self, store):
        store.apply_scan_progress(FolderScanProgress("docs", current=50, total=200))
        store.apply_folder_state(FolderStateChanged("docs", from_state="idle", to_state="scanning"))
        assert store.folders["docs"].scan_progress is None

    def test_state_change_updates_known_status(self, store):
        store.apply_folder_status("docs", folder_status(state="idle"))
        store.apply_folder_state(FolderStateChanged("docs", from_state="idle", to_state="syncing"))
        assert store.folders["docs"].status.state == "syncing"

    def test_folder_stats(self, store):
        stats = FolderStats(last_scan=NOW)
        store.apply_folder_stats({"docs": stats, "gone": FolderStats()})
        assert store.folders["docs"].stats is stats
        assert store.folders["photos"].stats is None


class TestDevices:
    def test_completion_upsert_then_delete(self, store):
        store.apply_completion(NAS_ID, "docs", completion(need_bytes=100))
        assert store.devices[NAS_ID].completion["docs"].need_bytes == 100

        store.apply_completion(NAS_ID, "docs", None)
        assert "docs" not in store.devices[NAS_ID].completion

    def test_completion_entries_independent(self, store):
        store.apply_completion(NAS_ID, "docs", completion())
        store.apply_completion(NAS_ID, "photos", completion())
        store.apply_completion(NAS_ID, "docs", None)
        assert list(store.devices[NAS_ID].completion) == ["photos"]

    def test_connected_flag_needs_known_record(self, store):
        event = DeviceStateChanged(NAS_ID, DeviceChange.DISCONNECTED)
        store.apply_device_state(event)
        assert store.devices[NAS_ID].connection is None

        store.devices[NAS_ID].connection = Connection(connected=True)
        store.apply_device_state(event)
        assert store.devices[NAS_ID].connection.connected is False

        store.apply_device_state(
            DeviceStateChanged(NAS_ID, DeviceChange.CONNECTED, address="10.0.0.2:22000")
        )
        assert store.devices[NAS_ID].connection.connected is True
        assert store.devices[NAS_ID].connection.address == "10.0.0.2:22000"

    def test_pause_resume(self, store):
        store.apply_device_state(DeviceStateChanged(PHONE_ID, DeviceChange.PAUSED))
        assert store.devices[PHONE_ID].config.paused is True
        store.apply_device_state(DeviceStateChanged(PHONE_ID, DeviceChange.RESUMED))
        assert store.devices[PHONE_ID].config.paused is False

    def test_device_stats(self, store):
        store.apply_device_stats({NAS_ID: DeviceStats(last_seen=NOW)})
        assert store.devices[NAS_ID].stats.last_seen == NOW
        assert store.devices[PHONE_ID].stats is None


class TestConnections:
    def test_first_sample_has_no_rate(self, store):
        store.apply_connections(_connections(NOW, 1000, 1000, {NAS_ID: (500, 500)}))
        assert store.this_device.in_bytes_per_second == 0
        assert store.devices[NAS_ID].in_bytes_per_second == 0
        assert store.devices[NAS_ID].connection.connected is True

    def test_rates_from_consecutive_samples(self, store):
        later = NOW + timedelta(seconds=10)
        store.apply_connections(_connections(NOW, 1000, 2000, {NAS_ID: (500, 800)}))
        store.apply_connections(_connections(later, 11000, 2500, {NAS_ID: (5500, 900)}))

        me = store.this_device
        assert (me.in_bytes_per_second, me.out_bytes_per_second) == (1000, 50)
        assert (me.in_bytes_total, me.out_bytes_total) == (11000, 2500)
        nas = store.devices[NAS_ID]
        assert (nas.in_bytes_per_second, nas.out_bytes_per_second) == (500, 10)

    def test_absent_device_loses_record(self, store):
        store.apply_connections(_connections(NOW, 1, 1, {NAS_ID: (1, 1)}))
        store.apply_connections(_connections(NOW + timedelta(seconds=10), 2, 2))
        assert store.devices[NAS_ID].connection is None
        assert store.devices[NAS_ID].in_bytes_per_second == 0


class TestPendingDevices:
    def test_add_then_remove(self, store):
        added = [PendingDeviceAdded(device_id=STRANGER_ID, name="stranger", address="1.2.3.4")]
        store.apply_pending_devices(added, [], NOW)
        assert store.pending[STRANGER_ID].name == "stranger"
        assert store.pending[STRANGER_ID].at == NOW

        store.apply_pending_devices([], [STRANGER_ID], NOW)
        assert STRANGER_ID not in store.pending

    def test_snapshot_upserts(self, store):
        store.apply_pending_devices(
            [PendingDeviceAdded(device_id=NAS_ID, name="old")], [], NOW,
        )
        store.merge_pending_devices({
            STRANGER_ID: PendingDeviceInfo(time=NOW, name="stranger", address="1.2.3.4"),
        })
        assert set(store.pending) == {NAS_ID, STRANGER_ID}

    def test_remove_pending(self, store):
        store.merge_pending_devices({STRANGER_ID: PendingDeviceInfo(name="stranger")})
        store.remove_pending(STRANGER_ID)
        store.remove_pending(STRANGER_ID)
        assert store.pending == {}


class TestSystem:
    def test_version_and_tick(self, store):
        store.apply_version(SystemVersion(version="v1.27.0", os="linux", arch="amd64"))
        store.tick(NOW + timedelta(seconds=1))
        assert store.version.version == "v1.27.0"
        assert store.now == NOW + timedelta(seconds=1)

    def test_errors_latest_per_source(self, store):
        store.record_error("config", "boom")
        store.record_error("events", "timeout")
        store.record_error("config", "boom again")
        assert store.errors == {"events": "timeout", "config": "boom again"}
        assert store.last_error == "boom again"

        store.clear_error("config")
        assert store.last_error == "timeout"
