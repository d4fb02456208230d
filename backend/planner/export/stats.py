"""Header statistics for a planner day."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class DayStats:
    appointments: int
    scheduled_hours: float
    available_hours: float
    free_time_percent: int


def day_stats(events: Iterable) -> DayStats:
    events = list(events)
    scheduled = sum((e.end_time - e.start_time).total_seconds() for e in events) / 3600
    # overlapping or multi-day events can exceed the day
    available = max(24 - scheduled, 0.0)
    return DayStats(
        appointments=len(events),
        scheduled_hours=round(scheduled, 1),
        available_hours=round(available, 1),
        free_time_percent=round(available / 24 * 100),
    )
