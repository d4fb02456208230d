import io
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
from pypdf import PdfReader

from planner.classify import EventKind
from planner.export import DAILY, WEEKLY, render_daily, render_ics, render_weekly, render_weekly_package
from planner.export.placement import GRID_MINUTES, place_events
from planner.export.stats import day_stats
from planner.export.weekly import week_label

NY = ZoneInfo("America/New_York")
DAY = date(2025, 7, 7)  # Monday


def ev(title, hour, minute=0, minutes=60, source="google", tz=NY, **extra):
    start = datetime(DAY.year, DAY.month, DAY.day, hour, minute, tzinfo=tz)
    fields = dict(
        id=extra.pop("id", 1),
        title=title,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        source=source,
        source_id=None,
        calendar_id="primary",
        description="",
        location=None,
        notes=None,
        action_items=None,
    )
    fields.update(extra)
    return SimpleNamespace(**fields)


def _text(pdf: bytes) -> list[str]:
    return [page.extract_text() for page in PdfReader(io.BytesIO(pdf)).pages]


# ───────────────────────── layout constants ─────────────────────────
def test_layout_geometry():
    assert (DAILY.page_width, DAILY.page_height) == (595, 1600)
    assert DAILY.grid_start_y == 107 and DAILY.grid_height == 1080
    assert WEEKLY.content_width == 1150
    assert WEEKLY.day_column_width == 150
    assert WEEKLY.grid_start_y == 115
    assert WEEKLY.grid_height == 677
    cfg = DAILY.to_config()
    assert cfg["dayColumnWidth"] == 495 and cfg["fonts"]["family"] == "Helvetica"
    assert cfg["fonts"]["event_title"]["size"] == 10


# ───────────────────────── stats & placement ────────────────────────
def test_day_stats():
    stats = day_stats([ev("A", 9), ev("B", 13, minutes=90)])
    assert stats.appointments == 2
    assert stats.scheduled_hours == 2.5
    assert stats.available_hours == 21.5
    assert stats.free_time_percent == 90


def test_day_stats_never_report_negative_free_time():
    stats = day_stats([ev("Retreat", 0, minutes=30 * 60), ev("Overlap", 9)])
    assert stats.scheduled_hours == 31.0
    assert stats.available_hours == 0
    assert stats.free_time_percent == 0


def test_place_events_offsets_and_clipping():
    placed = place_events(
        [ev("Early", 5, minutes=120), ev("Night", 1), ev("Late", 23, minutes=120)],
        DAY,
        NY,
    )
    by_title = {p.event.title: p for p in placed}
    assert "Night" not in by_title
    assert by_title["Early"].offset_minutes == 0 and by_title["Early"].duration_minutes == 60
    assert by_title["Late"].offset_minutes + by_title["Late"].duration_minutes == GRID_MINUTES
    assert by_title["Early"].top(DAILY.slot_height) == 0
    assert by_title["Early"].height(DAILY.slot_height) == 60


def test_overlapping_events_share_lanes():
    placed = place_events(
        [ev("A", 9, minutes=120), ev("B", 9, 30), ev("C", 10), ev("D", 12)],
        DAY,
        NY,
    )
    lanes = {p.event.title: (p.lane, p.lanes) for p in placed}
    assert lanes["A"] == (0, 3)
    assert lanes["B"] == (1, 3)
    assert lanes["C"] == (2, 3)
    assert lanes["D"] == (0, 1)


def test_lanes_are_capped():
    placed = place_events([ev(str(i), 9) for i in range(6)], DAY, NY, max_lanes=4)
    assert max(p.lane for p in placed) == 3
    assert all(p.lanes == 4 for p in placed)


def test_placement_classifies_events():
    placed = place_events([ev("Jane Appointment", 9), ev("July 4th Holiday", 10)], DAY, NY)
    assert [p.kind for p in placed] == [EventKind.SIMPLEPRACTICE, EventKind.HOLIDAY]


# ───────────────────────── PDF renderers ────────────────────────────
def test_render_daily_page():
    events = [
        ev("John Smith Appointment", 9, minutes=50, source="simplepractice"),
        ev("Standup", 10, minutes=15),
        ev("Planning", 13, minutes=120, notes="Agenda review", action_items="Send recap"),
    ]
    pdf = render_daily(DAY, events, notes="Call the pharmacy", tz=NY)
    reader = PdfReader(io.BytesIO(pdf))
    assert len(reader.pages) == 1
    box = reader.pages[0].mediabox
    assert (float(box.width), float(box.height)) == (595, 1600)
    text = reader.pages[0].extract_text()
    for expected in ("Daily Planner", "Monday, July 7, 2025", "John Smith", "SIMPLEPRACTICE",
                     "09:00-09:50", "Event Notes", "Action Items", "Call the pharmacy", "06:00", "23:30"):
        assert expected in text
    assert "John Smith Appointment" not in text


def test_render_weekly_page():
    events = [ev("Team Sync", 9), ev("Dentist", 15, id=2, start_time=datetime(2025, 7, 10, 15, tzinfo=NY),
                                      end_time=datetime(2025, 7, 10, 16, tzinfo=NY))]
    pdf = render_weekly(date(2025, 7, 9), events, tz=NY)
    reader = PdfReader(io.BytesIO(pdf))
    assert len(reader.pages) == 1
    box = reader.pages[0].mediabox
    assert (float(box.width), float(box.height)) == (1190, 842)
    text = reader.pages[0].extract_text()
    for expected in ("WEEKLY PLANNER", "July 7-13", "Week 28", "TIME", "MON", "SUN", "Team Sync", "Dentist"):
        assert expected in text


def test_week_label_spanning_months():
    assert week_label(date(2025, 6, 30)) == "June 30 - July 6 • Week 27"


def test_weekly_package_has_overview_and_seven_days():
    pdf = render_weekly_package(DAY, [ev("Team Sync", 9)], {"2025-07-09": "Wednesday note"}, tz=NY)
    pages = PdfReader(io.BytesIO(pdf)).pages
    assert len(pages) == 8
    assert float(pages[0].mediabox.width) == 1190
    assert all(float(p.mediabox.height) == 1600 for p in pages[1:])
    texts = _text(pdf)
    assert "WEEKLY PLANNER" in texts[0]
    assert "Monday, July 7, 2025" in texts[1] and "Team Sync" in texts[1]
    assert "Wednesday note" in texts[3]
    assert "Sunday, July 13, 2025" in texts[7]


# ───────────────────────── ICS ──────────────────────────────────────
def test_render_ics():
    events = [
        ev("Review; notes, etc", 9, id=7, location="Room 1", description="line one\nline two"),
        ev("Synced", 11, id=8, source_id="g-55"),
    ]
    ics = render_ics(events, now=datetime(2025, 7, 1, 12, tzinfo=ZoneInfo("UTC")))
    lines = ics.split("\r\n")
    assert lines[0] == "BEGIN:VCALENDAR" and ics.endswith("END:VCALENDAR\r\n")
    assert "UID:planner-7@planner" in lines
    assert "UID:google-g-55@planner" in lines
    assert "DTSTART:20250707T130000Z" in lines
    assert "DTSTAMP:20250701T120000Z" in lines
    assert "SUMMARY:Review\\; notes\\, etc" in lines
    assert "LOCATION:Room 1" in lines
    assert "DESCRIPTION:line one\\nline two" in lines
    assert lines.count("BEGIN:VEVENT") == 2


def test_render_ics_folds_long_lines():
    title = "Supervision with Dr. Müller: quarterly case review and documentation catch-up ✓"
    ics = render_ics([ev(title, 9, id=3, description="ü" * 120)], now=datetime(2025, 7, 1, 12, tzinfo=ZoneInfo("UTC")))
    physical = ics.split("\r\n")
    assert all(len(line.encode("utf-8")) <= 75 for line in physical)
    assert any(line.startswith(" ") for line in physical)

    unfolded = ics.replace("\r\n ", "").split("\r\n")
    assert f"SUMMARY:{title}" in unfolded
    assert "DESCRIPTION:" + "ü" * 120 in unfolded
