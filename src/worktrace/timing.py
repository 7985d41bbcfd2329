"""Time helpers shared by live tracking and the commit-based estimate."""

from __future__ import annotations

import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, halves rounded up."""

    return int(math.floor((end - start).total_seconds() / 60 + 0.5))


def format_duration(minutes: int) -> str:
    """Render minutes as ``"2h 5m"`` or ``"45m"``."""

    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


__all__ = ["format_duration", "minutes_between", "utc_now"]
