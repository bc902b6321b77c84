"""
Central version management for Game Backlog Tracker.
"""

from __future__ import annotations

__all__ = ["__app_name__", "__version__", "__release_date__", "__license__", "USER_AGENT"]

__app_name__ = "Game Backlog Tracker"
__version__ = "0.4.0"
__release_date__ = "2026-10-19"
__license__ = "MIT"

USER_AGENT = f"GameBacklogTracker/{__version__}"
