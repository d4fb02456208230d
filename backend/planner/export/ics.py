"""iCalendar export of stored events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from ..timeslots import as_utc


def _ics_dt(dt: datetime) -> str:
    # stored UTC
    return as_utc(dt).strftime("%Y%m%dT%H%M%SZ")


def _escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _fold(line: str, limit: int = 75) -> str:
    """Fold a content line at ``limit`` octets; continuation lines start with a space."""
    parts = []
    current, size = "", 0
    for ch in line:
        width = len(ch.encode("utf-8"))
        if size + width > limit:
            parts.append(current)
            current, size = " ", 1
        current += ch
        size += width
    parts.append(current)
    return "\r\n".join(parts)


def render_ics(events: Iterable, now: Optional[datetime] = None) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Planner//Planner API//EN",
    ]
    stamp = _ics_dt(now or datetime.now(timezone.utc))
    for e in events:
        uid = f"{e.source}-{e.source_id}" if e.source_id else f"planner-{e.id}"
        lines += [
            "BEGIN:VEVENT",
            f"UID:{uid}@planner",
            f"DTSTAMP:{stamp}",
            f"DTSTART:{_ics_dt(e.start_time)}",
            f"DTEND:{_ics_dt(e.end_time)}",
            f"SUMMARY:{_escape(e.title or '')}",
            *([f"LOCATION:{_escape(e.location)}"] if getattr(e, "location", None) else []),
            *([f"DESCRIPTION:{_escape(e.description)}"] if getattr(e, "description", None) else []),
            "END:VEVENT",
        ]
    lines.append("END:VCALENDAR")
    return "\r\n".join(_fold(line) for line in lines) + "\r\n"
