from datetime import datetime, timezone
from types import SimpleNamespace

from planner.classify import HOLIDAY_CALENDAR_ID, LEGEND_KINDS, EventKind, classify_event, kind_of
from planner.text import clean_event_title, display_title
from planner.timeslots import (
    TIME_SLOTS,
    as_utc,
    day_bounds,
    duration_in_slots,
    event_in_time_slot,
    format_military,
    parse_iso_z,
    time_slot_index,
    week_start,
)
from zoneinfo import ZoneInfo


# ───────────────────────── classification ───────────────────────────
def test_holiday_wins_over_other_rules():
    assert classify_event("Independence Day", "google", HOLIDAY_CALENDAR_ID) is EventKind.HOLIDAY
    assert classify_event("Company Holiday Appointment", "google") is EventKind.HOLIDAY


def test_simplepractice_detected_from_title_or_notes():
    assert classify_event("Jane Doe Appointment", "google", "primary") is EventKind.SIMPLEPRACTICE
    assert classify_event("Session", "google", notes="Booked in Simple Practice") is EventKind.SIMPLEPRACTICE
    assert classify_event("Session", "simplepractice") is EventKind.SIMPLEPRACTICE


def test_google_and_manual_fallbacks():
    assert classify_event("Standup", "google", "primary") is EventKind.GOOGLE
    assert classify_event("Lunch", "manual") is EventKind.MANUAL
    assert classify_event(None) is EventKind.MANUAL


def test_kind_of_reads_event_attributes():
    ev = SimpleNamespace(title="Dentist", source="google", calendar_id="primary", description="", notes=None)
    assert kind_of(ev) is EventKind.GOOGLE


def test_styles_match_legend():
    sp = EventKind.SIMPLEPRACTICE.style
    assert sp.border == (100, 149, 237) and sp.left_flag_width == 4
    assert EventKind.GOOGLE.style.dash == (3, 2)
    assert EventKind.HOLIDAY.style.fill == (251, 188, 4)
    assert EventKind.HOLIDAY.style.border == (255, 152, 0)
    assert [k.legend_label for k in LEGEND_KINDS] == [
        "SimplePractice",
        "Google Calendar",
        "Holidays in United States",
    ]
    assert EventKind.GOOGLE.source_label == "GOOGLE CALENDAR"


# ───────────────────────── titles ───────────────────────────────────
def test_clean_event_title_strips_symbols_and_mojibake():
    assert clean_event_title("\U0001F512 John Smith Appointment") == "John Smith Appointment"
    assert clean_event_title("Ã˜=ÃœÃ… Team  sync") == "Team sync"
    assert clean_event_title("Review • Page 2 of 8") == "Review"
    assert clean_event_title(None) == ""


def test_display_title():
    assert display_title("John Smith Appointment") == "John Smith"
    assert display_title("") == "Untitled Event"
    assert display_title("•") == "Untitled Event"


# ───────────────────────── time slots ───────────────────────────────
def test_time_slots_cover_0600_to_2330():
    assert len(TIME_SLOTS) == 36
    assert TIME_SLOTS[0].time == "06:00" and TIME_SLOTS[0].is_hour
    assert TIME_SLOTS[-1].time == "23:30" and not TIME_SLOTS[-1].is_hour
    assert time_slot_index("07:30") == 3
    assert time_slot_index("05:00") == -1


def test_slot_helpers():
    start = datetime(2025, 7, 7, 9, 15, tzinfo=timezone.utc)
    end = datetime(2025, 7, 7, 10, 0, tzinfo=timezone.utc)
    assert duration_in_slots(start, end) == 2
    assert event_in_time_slot(start, end, TIME_SLOTS[6])      # 09:00
    assert event_in_time_slot(start, end, TIME_SLOTS[7])      # 09:30
    assert not event_in_time_slot(start, end, TIME_SLOTS[8])  # 10:00
    assert format_military(end) == "10:00"


def test_datetime_helpers():
    assert parse_iso_z("2025-07-07T10:00:00Z") == datetime(2025, 7, 7, 10, tzinfo=timezone.utc)
    assert as_utc(datetime(2025, 1, 1)).tzinfo is timezone.utc
    start, end = day_bounds(datetime(2025, 1, 6).date(), ZoneInfo("America/New_York"))
    assert start == datetime(2025, 1, 6, 5, tzinfo=timezone.utc)
    assert end == datetime(2025, 1, 7, 5, tzinfo=timezone.utc)
    assert week_start(datetime(2025, 7, 10).date()).isoformat() == "2025-07-07"
