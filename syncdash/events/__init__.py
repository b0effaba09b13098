"""Notifications from the sync engine to display and logging observers."""

from __future__ import annotations

from syncdash.events.bus import Event, EventBus, EventType

__all__ = ["Event", "EventBus", "EventType"]
