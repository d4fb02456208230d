"""Daily planner page."""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from reportlab.pdfgen.canvas import Canvas

from ..text import display_title
from ..timeslots import TIME_SLOTS, format_military, to_local
from .drawing import Page, bold_font, draw_event_box, draw_legend, fit_text, regular_font, wrap_text
from .layout import DAILY, DailyLayout
from .placement import PlacedEvent, place_events
from .stats import day_stats

logger = logging.getLogger(__name__)


def _header(page: Page, layout: DailyLayout, day: date, events: list) -> None:
    cx = layout.page_width / 2
    top = layout.margin
    fonts = layout.fonts
    page.fill(layout.colors.black)

    page.font(fonts["title"].size, True)
    page.text(cx, top + 15, "Daily Planner", align="center")
    page.font(fonts["date"].size)
    page.text(cx, top + 30, f"{day:%A, %B} {day.day}, {day.year}", align="center")

    stats = day_stats(events)
    cells = (
        (str(stats.appointments), "Appointments"),
        (f"{stats.scheduled_hours:.1f}h", "Scheduled"),
        (f"{stats.available_hours:.1f}h", "Available"),
        (f"{stats.free_time_percent}%", "Free Time"),
    )
    spacing = 135
    x = layout.margin + 80
    for value, label in cells:
        page.font(fonts["stats"].size, True)
        page.text(x, top + 50, value, align="center")
        page.font(fonts["stats_label"].size)
        page.text(x, top + 62, label, align="center")
        x += spacing


def _grid(page: Page, layout: DailyLayout) -> None:
    left = layout.margin
    top = layout.grid_start_y
    width = layout.content_width
    colors = layout.colors

    for i, slot in enumerate(TIME_SLOTS):
        row_top = top + i * layout.slot_height
        if slot.is_hour:
            page.fill(colors.light_gray)
        else:
            page.fill(colors.very_light_gray)
        page.rect(left, row_top, layout.time_column_width, layout.slot_height, fill=True, stroke=False)

        page.stroke(colors.medium_gray if slot.is_hour else colors.light_gray, 1 if slot.is_hour else 0.5)
        page.line(left, row_top, left + width, row_top)

        page.fill(colors.black)
        page.font(layout.fonts["time_labels"].size, slot.is_hour)
        page.text(left + layout.time_column_width / 2, row_top + layout.slot_height / 2 + 3, slot.time, align="center")

    page.stroke(colors.black, 1)
    page.rect(left, top, width, layout.grid_height)
    page.line(left + layout.time_column_width, top, left + layout.time_column_width, top + layout.grid_height)


def _event(page: Page, layout: DailyLayout, p: PlacedEvent) -> None:
    fonts = layout.fonts
    colors = layout.colors
    available = layout.appointment_column_width - 8
    width = available / p.lanes - (2 if p.lanes > 1 else 0)
    x = layout.margin + layout.time_column_width + 4 + p.lane * (available / p.lanes)
    top = layout.grid_start_y + p.top(layout.slot_height) + 1
    height = max(p.height(layout.slot_height) - 2, 10)

    draw_event_box(page, p.kind, x, top, width, height)

    ev = p.event
    title = display_title(getattr(ev, "title", ""))
    notes = (getattr(ev, "notes", None) or "").strip()
    actions = (getattr(ev, "action_items", None) or "").strip()
    time_range = f"{format_military(p.start)}-{format_military(p.end)}"
    pad = layout.text_padding + 2
    title_font = bold_font(layout.font_family)
    body_font = regular_font(layout.font_family)

    if (notes or actions) and height >= layout.expanded_min_height:
        col_w = min(width * 0.33, 140)
        col1_x, col2_x, col3_x = x + pad, x + col_w + 8, x + 2 * col_w + 10
        page.stroke(colors.light_gray, 0.5)
        if notes:
            page.line(col2_x - 2, top + 5, col2_x - 2, top + height - 5)
        if actions:
            page.line(col3_x - 2, top + 5, col3_x - 2, top + height - 5)
        _event_summary(page, layout, col1_x, top, col_w - pad, title, p.kind.source_label, time_range)
        max_lines = int((height - 28) // 10)
        for col_x, heading, body, col_width in (
            (col2_x, "Event Notes", notes, col_w - 10),
            (col3_x, "Action Items", actions, x + width - col3_x - pad),
        ):
            if not body:
                continue
            page.fill(colors.black)
            page.font(fonts["notes_header"].size, True)
            page.text(col_x, top + 14, heading)
            page.font(fonts["event_notes"].size)
            for i, line in enumerate(wrap_text(body, body_font, fonts["event_notes"].size, col_width, max_lines)):
                page.text(col_x, top + 26 + i * 10, f"• {line}")
        return

    if height < 26:
        # single line: title and time side by side
        page.fill(colors.black)
        page.font(fonts["event_title"].size, True)
        label = fit_text(f"{title}  {time_range}", title_font, fonts["event_title"].size, width - 2 * pad)
        page.text(x + pad, top + height / 2 + 3, label)
        return
    _event_summary(page, layout, x + pad, top, width - 2 * pad, title, p.kind.source_label, time_range)


def _event_summary(page: Page, layout: DailyLayout, x: float, top: float, width: float, title: str, source: str, time_range: str) -> None:
    fonts = layout.fonts
    page.fill(layout.colors.black)
    page.font(fonts["event_title"].size, True)
    page.text(x, top + 14, fit_text(title, bold_font(layout.font_family), fonts["event_title"].size, width))
    page.fill(layout.colors.gray)
    page.font(fonts["event_source"].size)
    page.text(x, top + 26, fit_text(source, regular_font(layout.font_family), fonts["event_source"].size, width))
    page.fill(layout.colors.black)
    page.font(fonts["event_time"].size, True)
    page.text(x, top + 38, time_range)


def _notes_footer(page: Page, layout: DailyLayout, notes: str) -> None:
    top = layout.grid_start_y + layout.grid_height + 12
    width = layout.content_width
    page.stroke(layout.colors.black, 1)
    page.rect(layout.margin, top, width, layout.notes_height)
    page.fill(layout.colors.black)
    page.font(layout.fonts["notes_header"].size, True)
    page.text(layout.margin + 6, top + 14, "Daily Notes")
    page.font(layout.fonts["event_notes"].size)
    max_lines = int((layout.notes_height - 24) // 10)
    lines = wrap_text(notes, regular_font(layout.font_family), layout.fonts["event_notes"].size, width - 12, max_lines)
    for i, line in enumerate(lines):
        page.text(layout.margin + 6, top + 28 + i * 10, line)


def draw_daily_page(
    canvas: Canvas,
    day: date,
    events: Iterable,
    notes: Optional[str] = None,
    tz: Optional[ZoneInfo] = None,
    layout: DailyLayout = DAILY,
) -> None:
    """Draw one daily page onto ``canvas`` and finish the page."""
    events = list(events)
    canvas.setPageSize((layout.page_width, layout.page_height))
    page = Page(canvas, layout.page_height, layout.font_family)

    page.fill(layout.colors.white)
    page.rect(0, 0, layout.page_width, layout.page_height, fill=True, stroke=False)

    _header(page, layout, day, [e for e in events if to_local(e.start_time, tz).date() == day])
    draw_legend(
        page,
        layout.margin,
        layout.margin + layout.header_height,
        layout.content_width,
        layout.legend_height,
        spacing=175,
        font_size=9,
    )
    _grid(page, layout)
    for p in place_events(events, day, tz, layout.max_lanes):
        _event(page, layout, p)
    _notes_footer(page, layout, notes or "")
    canvas.showPage()


def render_daily(
    day: date,
    events: Iterable,
    notes: Optional[str] = None,
    tz: Optional[ZoneInfo] = None,
    layout: DailyLayout = DAILY,
) -> bytes:
    buf = io.BytesIO()
    canvas = Canvas(buf, pagesize=(layout.page_width, layout.page_height))
    canvas.setTitle(f"Daily Planner {day.isoformat()}")
    draw_daily_page(canvas, day, events, notes, tz, layout)
    canvas.save()
    logger.debug("Rendered daily planner for %s", day)
    return buf.getvalue()
