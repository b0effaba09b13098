"""syncdash: live dashboard client for a Syncthing daemon."""

from __future__ import annotations

__version__ = "0.4.0"
