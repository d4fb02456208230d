"""Half-hour planner grid (06:00 to 23:30) and datetime helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse as iso_parse

FIRST_HOUR = 6
LAST_HOUR = 23
SLOT_MINUTES = 30


@dataclass(frozen=True)
class TimeSlot:
    time: str
    hour: int
    minute: int

    @property
    def is_hour(self) -> bool:
        return self.minute == 0


def generate_time_slots() -> list[TimeSlot]:
    return [
        TimeSlot(f"{hour:02d}:{minute:02d}", hour, minute)
        for hour in range(FIRST_HOUR, LAST_HOUR + 1)
        for minute in range(0, 60, SLOT_MINUTES)
    ]


TIME_SLOTS = generate_time_slots()


def time_slot_index(value: str) -> int:
    for i, slot in enumerate(TIME_SLOTS):
        if slot.time == value:
            return i
    return -1


def event_in_time_slot(start: datetime, end: datetime, slot: TimeSlot) -> bool:
    slot_start = start.replace(hour=slot.hour, minute=slot.minute, second=0, microsecond=0)
    slot_end = slot_start + timedelta(minutes=SLOT_MINUTES)
    return start < slot_end and end > slot_start


def duration_in_slots(start: datetime, end: datetime) -> int:
    minutes = (end - start).total_seconds() / 60
    return math.ceil(minutes / SLOT_MINUTES)


def format_military(dt: datetime) -> str:
    return dt.strftime("%H:%M")


# ───────────────────────── datetime helpers ─────────────────────────
def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_z(s: str) -> datetime:
    return as_utc(iso_parse(s))


def to_local(dt: datetime, tz: Optional[ZoneInfo]) -> datetime:
    return as_utc(dt).astimezone(tz) if tz else as_utc(dt)


def day_bounds(day: date, tz: Optional[ZoneInfo] = None) -> tuple[datetime, datetime]:
    """UTC start/end of a calendar day in ``tz``."""
    start = datetime.combine(day, time.min, tzinfo=tz or timezone.utc)
    return as_utc(start), as_utc(start + timedelta(days=1))


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())
