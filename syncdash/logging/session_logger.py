"""SessionLogger: subscribes to the EventBus and records every handled message."""

from __future__ import annotations

import asyncio
import logging
import socket
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from syncdash.events.bus import Event, EventBus, EventType
from syncdash.logging.cleanup import cleanup_old_sessions
from syncdash.logging.writer import JsonlWriter, TextWriter
from syncdash.sync.messages import (
    ActionCompleted,
    ClockTicked,
    CompletionFetched,
    ConfigFetched,
    ConnectionsFetched,
    EventsFailed,
    EventsFetched,
    EventsRecovered,
    FolderStatusFetched,
    Message,
    PendingDevicesFetched,
    SystemStatusFetched,
)

logger = logging.getLogger(__name__)


def _ts() -> str:
    return datetime.now(UTC).strftime("%H:%M:%S")


def summarize(msg: Message) -> dict[str, Any]:
    """Compact, JSON-friendly description of a result message."""
    record: dict[str, Any] = {"message": type(msg).__name__, "source": msg.source}
    if msg.error is not None:
        record["error"] = str(msg.error)

    match msg:
        case EventsFetched():
            record.update(
                since=msg.since,
                last_id=msg.last_id,
                count=len(msg.events),
                types=sorted({e.type for e in msg.events}),
            )
        case EventsFailed() | EventsRecovered():
            record["since"] = msg.since
        case SystemStatusFetched(status=status) if status is not None:
            record.update(my_id=status.my_id, uptime=status.uptime)
        case ConfigFetched(config=config) if config is not None:
            record.update(folders=len(config.folders), devices=len(config.devices))
        case ConnectionsFetched(connections=connections) if connections is not None:
            record.update(
                connections=len(connections.connections),
                in_bytes_total=connections.total.in_bytes_total,
                out_bytes_total=connections.total.out_bytes_total,
            )
        case FolderStatusFetched():
            record["folder"] = msg.folder_id
            if msg.status is not None:
                record["state"] = msg.status.state
        case CompletionFetched():
            record.update(device=msg.device_id, folder=msg.folder_id)
            record["completion"] = msg.completion.completion if msg.completion else None
        case PendingDevicesFetched():
            record["pending"] = sorted(msg.pending)
        case ActionCompleted():
            record.update(action=msg.action, target=msg.target)
    return record


class SessionLogger:
    """Persistent message log for one dashboard session.

    Creates ``<log_dir>/YYYYMMDD_HHMMSS_<host>/`` and writes:
    - ``messages.jsonl``: one record per handled message
    - ``session.log``: errors, actions and event batches, human-readable

    Clock ticks are not recorded.
    """

    def __init__(
        self,
        log_dir: Path,
        bus: EventBus,
        *,
        host: str | None = None,
        max_sessions: int = 20,
    ) -> None:
        stamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        safe_host = (host or socket.gethostname()).replace(":", "_").replace("/", "_")
        self._session_dir = log_dir / f"{stamp}_{safe_host}"
        self._session_dir.mkdir(parents=True, exist_ok=True)

        cleanup_old_sessions(log_dir, max_sessions)

        self._jsonl = JsonlWriter(self._session_dir / "messages.jsonl")
        self._text = TextWriter(self._session_dir / "session.log")
        self._pending: set[asyncio.Task] = set()

        bus.subscribe(EventType.MESSAGE_HANDLED, self._on_message)
        bus.subscribe(EventType.ERROR_RECORDED, self._on_error)
        bus.subscribe(EventType.ACTION_COMPLETED, self._on_action)
        bus.subscribe(EventType.EVENTS_APPLIED, self._on_events_applied)

    @property
    def session_dir(self) -> Path:
        return self._session_dir

    async def open(self) -> None:
        await self._jsonl.open()
        await self._text.open()
        await self._text.write(f"[{_ts()}] [SESSION] started")

    # -- Handlers ------------------------------------------------------------

    def _on_message(self, event: Event) -> None:
        msg = event.data.get("message")
        if not isinstance(msg, Message) or isinstance(msg, ClockTicked):
            return
        record = {"timestamp": datetime.now(UTC).isoformat(), **summarize(msg)}
        self._schedule(self._jsonl.write(record))

    def _on_error(self, event: Event) -> None:
        d = event.data
        self._write_text("ERROR", f"{d.get('source', '?')}: {d.get('error', '')}")

    def _on_action(self, event: Event) -> None:
        d = event.data
        outcome = "ok" if d.get("ok") else "failed"
        self._write_text("ACTION", f"{d.get('action', '')} {d.get('target', '')} ({outcome})")

    def _on_events_applied(self, event: Event) -> None:
        d = event.data
        self._write_text("EVENTS", f"applied {d.get('count', 0)} events up to {d.get('last_id')}")

    # -- Write helpers -------------------------------------------------------

    def _write_text(self, tag: str, message: str) -> None:
        self._schedule(self._text.write(f"[{_ts()}] [{tag}] {message}"))

    def _schedule(self, coro: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("No running loop; session log entry dropped")
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        """Wait for scheduled writes, then close both writers."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._text.write(f"[{_ts()}] [SESSION] closed")
        await self._jsonl.close()
        await self._text.close()
