"""Session tracking: activity kinds and the session manager."""

from .activity import Activity, Checkout, Committed, FileChanged, ManualNote
from .manager import INACTIVITY_THRESHOLD, SessionManager, SessionStats, format_duration

__all__ = [
    "Activity",
    "Checkout",
    "Committed",
    "FileChanged",
    "INACTIVITY_THRESHOLD",
    "ManualNote",
    "SessionManager",
    "SessionStats",
    "format_duration",
]
