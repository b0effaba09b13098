"""Rich rendering of the dashboard."""

from __future__ import annotations

from syncdash.display.live import LiveDashboard, render_dashboard

__all__ = ["LiveDashboard", "render_dashboard"]
