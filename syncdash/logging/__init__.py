"""Persistent per-session message logs."""

from __future__ import annotations

from syncdash.logging.session_logger import SessionLogger

__all__ = ["SessionLogger"]
