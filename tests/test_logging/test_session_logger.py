"""Tests for SessionLogger, the bus subscriber that writes session logs."""

from __future__ import annotations

import json

from conftest import NAS_ID, NOW, completion

from syncdash.client.errors import TransportError
from syncdash.events.bus import Event, EventBus, EventType
from syncdash.logging.session_logger import SessionLogger, summarize
from syncdash.sync.decoder import DaemonEvent, OpaqueEvent
from syncdash.sync.messages import (
    ClockTicked,
    CompletionFetched,
    EventsFetched,
    PendingDevicesFetched,
    SystemStatusFetched,
)


class TestSummarize:
    def test_events_fetched(self):
        msg = EventsFetched(
            since=4,
            events=[
                DaemonEvent(id=5, type="Starting", payload=OpaqueEvent("Starting")),
                DaemonEvent(id=6, type="Ping", payload=OpaqueEvent("Ping")),
            ],
            last_id=6,
        )
        assert summarize(msg) == {
            "message": "EventsFetched",
            "source": "events",
            "since": 4,
            "last_id": 6,
            "count": 2,
            "types": ["Ping", "Starting"],
        }

    def test_error(self):
        record = summarize(SystemStatusFetched(error=TransportError("refused")))
        assert record["error"] == "refused"
        assert "my_id" not in record

    def test_completion(self):
        record = summarize(CompletionFetched(NAS_ID, "docs", completion=completion(need_bytes=500)))
        assert record["folder"] == "docs"
        assert record["completion"] == 50.0

    def test_pending(self):
        record = summarize(PendingDevicesFetched())
        assert record["pending"] == []


class TestSessionLogger:
    async def test_creates_session_directory(self, tmp_path):
        log_dir = tmp_path / "logs"
        session = SessionLogger(log_dir, EventBus(), host="nas:8384")
        await session.open()
        await session.close()

        assert session.session_dir.parent == log_dir
        assert session.session_dir.name.endswith("_nas_8384")
        text = (session.session_dir / "session.log").read_text(encoding="utf-8")
        assert "[SESSION] started" in text
        assert "[SESSION] closed" in text

    async def test_records_handled_messages(self, tmp_path):
        bus = EventBus()
        session = SessionLogger(tmp_path, bus, host="laptop")
        await session.open()

        bus.emit(Event(EventType.MESSAGE_HANDLED, {
            "message": CompletionFetched(NAS_ID, "docs", completion=completion()),
        }))
        bus.emit(Event(EventType.MESSAGE_HANDLED, {"message": ClockTicked(now=NOW)}))
        bus.emit(Event(EventType.MESSAGE_HANDLED, {"message": "not a message"}))
        await session.close()

        lines = (session.session_dir / "messages.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["message"] == "CompletionFetched"
        assert record["device"] == NAS_ID
        assert "timestamp" in record

    async def test_text_log_entries(self, tmp_path):
        bus = EventBus()
        session = SessionLogger(tmp_path, bus, host="laptop")
        await session.open()

        bus.emit(Event(EventType.ERROR_RECORDED, {"source": "events", "error": "timeout"}))
        bus.emit(Event(EventType.ACTION_COMPLETED, {"action": "rescan", "target": "docs", "ok": True}))
        bus.emit(Event(EventType.EVENTS_APPLIED, {"count": 3, "last_id": 42}))
        await session.close()

        text = (session.session_dir / "session.log").read_text(encoding="utf-8")
        assert "[ERROR] events: timeout" in text
        assert "[ACTION] rescan docs (ok)" in text
        assert "[EVENTS] applied 3 events up to 42" in text

    async def test_rotates_old_sessions(self, tmp_path):
        for name in ("20200101_000000_old", "20200102_000000_old"):
            (tmp_path / name).mkdir()

        session = SessionLogger(tmp_path, EventBus(), host="laptop", max_sessions=2)

        remaining = sorted(d.name for d in tmp_path.iterdir())
        assert len(remaining) == 2
        assert "20200101_000000_old" not in remaining
        assert session.session_dir.name in remaining
