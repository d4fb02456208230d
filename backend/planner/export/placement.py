"""Vertical position and side-by-side lanes for events on the planner grid."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from ..classify import EventKind, kind_of
from ..timeslots import FIRST_HOUR, SLOT_MINUTES, TIME_SLOTS, to_local

GRID_MINUTES = len(TIME_SLOTS) * SLOT_MINUTES


@dataclass
class PlacedEvent:
    event: object
    kind: EventKind
    start: datetime  # local
    end: datetime    # local
    offset_minutes: float
    duration_minutes: float
    lane: int = 0
    lanes: int = 1

    def top(self, slot_height: float) -> float:
        return self.offset_minutes / SLOT_MINUTES * slot_height

    def height(self, slot_height: float) -> float:
        return self.duration_minutes / SLOT_MINUTES * slot_height


def place_events(
    events: Iterable,
    day: date,
    tz: Optional[ZoneInfo] = None,
    max_lanes: int = 4,
) -> List[PlacedEvent]:
    """
    Position ``events`` on the grid of ``day``.

    Offsets are minutes from 06:00 clipped to the grid; events entirely
    outside 06:00-24:00 are dropped. Overlapping events take the first free
    lane, and a group of overlapping events shares its lane count so boxes
    in the group have equal width. Past ``max_lanes`` events stack on the
    last lane.
    """
    tz = tz or timezone.utc
    grid_start = datetime.combine(day, time(hour=FIRST_HOUR), tzinfo=tz)
    placed: List[PlacedEvent] = []
    for ev in events:
        start = to_local(ev.start_time, tz)
        end = to_local(ev.end_time, tz)
        top = (start - grid_start).total_seconds() / 60
        bottom = (end - grid_start).total_seconds() / 60
        if bottom <= 0 or top >= GRID_MINUTES:
            continue
        top, bottom = max(top, 0.0), min(bottom, float(GRID_MINUTES))
        placed.append(PlacedEvent(ev, kind_of(ev), start, end, top, bottom - top))

    placed.sort(key=lambda p: (p.offset_minutes, -p.duration_minutes))

    lane_ends: List[float] = []
    group: List[PlacedEvent] = []
    group_end = -1.0
    for p in placed:
        p_end = p.offset_minutes + p.duration_minutes
        if p.offset_minutes >= group_end and group:
            _close_group(group, len(lane_ends))
            group, lane_ends = [], []
        for i, lane_end in enumerate(lane_ends):
            if lane_end <= p.offset_minutes:
                p.lane = i
                lane_ends[i] = p_end
                break
        else:
            if len(lane_ends) < max_lanes:
                p.lane = len(lane_ends)
                lane_ends.append(p_end)
            else:
                p.lane = max_lanes - 1
                lane_ends[-1] = max(lane_ends[-1], p_end)
        group.append(p)
        group_end = max(group_end, p_end)
    if group:
        _close_group(group, len(lane_ends))
    return placed


def _close_group(group: List[PlacedEvent], lanes: int) -> None:
    for p in group:
        p.lanes = max(lanes, 1)
