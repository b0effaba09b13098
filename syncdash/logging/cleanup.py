"""Session log rotation."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def cleanup_old_sessions(log_dir: Path, max_sessions: int) -> list[Path]:
    """Delete the oldest session directories beyond *max_sessions*.

    Session directories are named ``YYYYMMDD_HHMMSS_<host>`` so sorting by
    name is chronological. Returns the removed directories.
    """
    if not log_dir.is_dir():
        return []

    dirs = sorted((d for d in log_dir.iterdir() if d.is_dir()), key=lambda d: d.name)
    excess = len(dirs) - max(max_sessions, 0)
    if excess <= 0:
        return []

    removed = dirs[:excess]
    for d in removed:
        shutil.rmtree(d, ignore_errors=True)
    logger.debug("Removed %d old session logs from %s", len(removed), log_dir)
    return removed
