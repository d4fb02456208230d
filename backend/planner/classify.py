"""Event source classification shared by sync, exports and the legend."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

HOLIDAY_CALENDAR_ID = "en.usa#holiday@group.v.calendar.google.com"

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class EventStyle:
    fill: RGB
    border: RGB
    border_width: float
    dash: Optional[Tuple[float, float]] = None
    left_flag_width: float = 0.0


class EventKind(str, Enum):
    SIMPLEPRACTICE = "simplepractice"
    GOOGLE = "google"
    HOLIDAY = "holiday"
    MANUAL = "manual"

    @property
    def legend_label(self) -> str:
        return _LEGEND_LABELS[self]

    @property
    def source_label(self) -> str:
        return self.legend_label.upper()

    @property
    def style(self) -> EventStyle:
        return _STYLES[self]


_LEGEND_LABELS = {
    EventKind.SIMPLEPRACTICE: "SimplePractice",
    EventKind.GOOGLE: "Google Calendar",
    EventKind.HOLIDAY: "Holidays in United States",
    EventKind.MANUAL: "Manual",
}

_STYLES = {
    EventKind.SIMPLEPRACTICE: EventStyle(fill=(255, 255, 255), border=(100, 149, 237), border_width=1, left_flag_width=4),
    EventKind.GOOGLE: EventStyle(fill=(255, 255, 255), border=(52, 168, 83), border_width=1, dash=(3, 2)),
    EventKind.HOLIDAY: EventStyle(fill=(251, 188, 4), border=(255, 152, 0), border_width=1),
    EventKind.MANUAL: EventStyle(fill=(255, 255, 255), border=(150, 150, 150), border_width=1),
}

LEGEND_KINDS = (EventKind.SIMPLEPRACTICE, EventKind.GOOGLE, EventKind.HOLIDAY)


def classify_event(
    title: Optional[str],
    source: Optional[str] = None,
    calendar_id: Optional[str] = None,
    description: Optional[str] = "",
    notes: Optional[str] = "",
) -> EventKind:
    t = (title or "").lower()
    if "holiday" in t or calendar_id == HOLIDAY_CALENDAR_ID:
        return EventKind.HOLIDAY
    if (
        source == EventKind.SIMPLEPRACTICE.value
        or "simple practice" in t
        or "simple practice" in (notes or "").lower()
        or "simple practice" in (description or "").lower()
        or "appointment" in t
    ):
        return EventKind.SIMPLEPRACTICE
    if source == EventKind.GOOGLE.value:
        return EventKind.GOOGLE
    return EventKind.MANUAL


def kind_of(event) -> EventKind:
    """Classify a stored Event row or anything with the same attributes."""
    return classify_event(
        getattr(event, "title", None),
        getattr(event, "source", None),
        getattr(event, "calendar_id", None),
        getattr(event, "description", None),
        getattr(event, "notes", None),
    )
