"""Weekly overview page, A3 landscape."""

from __future__ import annotations

import io
import logging
from datetime import date, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from reportlab.pdfgen.canvas import Canvas

from ..text import display_title
from ..timeslots import TIME_SLOTS, format_military, week_start as monday_of
from .drawing import Page, bold_font, draw_event_box, draw_legend, fit_text, regular_font
from .layout import WEEKLY, WeeklyLayout
from .placement import place_events

logger = logging.getLogger(__name__)

DAY_NAMES = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


def week_label(monday: date) -> str:
    sunday = monday + timedelta(days=6)
    if monday.month == sunday.month:
        span = f"{monday:%B} {monday.day}-{sunday.day}"
    else:
        span = f"{monday:%B} {monday.day} - {sunday:%B} {sunday.day}"
    return f"{span} • Week {monday.isocalendar()[1]}"


def _header(page: Page, layout: WeeklyLayout, monday: date) -> None:
    cx = layout.page_width / 2
    page.fill(layout.colors.black)
    page.font(layout.fonts["title"].size, True)
    page.text(cx, layout.margin + 25, "WEEKLY PLANNER", align="center")
    page.font(layout.fonts["week"].size, True)
    page.text(cx, layout.margin + 48, week_label(monday), align="center")


def _grid(page: Page, layout: WeeklyLayout, monday: date) -> None:
    left = layout.grid_start_x
    top = layout.grid_start_y
    day_w = layout.day_column_width
    time_w = layout.time_column_width
    rows_top = top + layout.day_header_height
    row_h = layout.row_height
    width = time_w + 7 * day_w
    colors = layout.colors

    page.fill(colors.light_gray)
    page.rect(left, top, width, layout.day_header_height, fill=True, stroke=False)
    page.fill(colors.black)
    page.font(layout.fonts["time_header"].size, True)
    page.text(left + time_w / 2, top + layout.day_header_height / 2 + 5, "TIME", align="center")
    for i, name in enumerate(DAY_NAMES):
        cx = left + time_w + i * day_w + day_w / 2
        page.font(layout.fonts["day_name"].size, True)
        page.text(cx, top + 16, name, align="center")
        page.font(layout.fonts["day_number"].size, True)
        page.text(cx, top + 34, str((monday + timedelta(days=i)).day), align="center")

    for i, slot in enumerate(TIME_SLOTS):
        row_top = rows_top + i * row_h
        if slot.is_hour:
            page.fill(colors.very_light_gray)
            page.rect(left, row_top, width, row_h, fill=True, stroke=False)
        page.stroke(colors.medium_gray if slot.is_hour else colors.light_gray, 0.5)
        page.line(left, row_top, left + width, row_top)
        page.fill(colors.black)
        page.font(layout.fonts["time_labels"].size, slot.is_hour)
        page.text(left + time_w / 2, row_top + row_h / 2 + 3, slot.time, align="center")

    page.stroke(colors.black, 1)
    page.rect(left, top, width, layout.grid_height)
    page.line(left, rows_top, left + width, rows_top)
    for i in range(8):
        x = left + time_w + i * day_w
        page.line(x, top, x, top + layout.grid_height)


def _events(page: Page, layout: WeeklyLayout, monday: date, events: list, tz: Optional[ZoneInfo]) -> None:
    rows_top = layout.grid_start_y + layout.day_header_height
    row_h = layout.row_height
    day_w = layout.day_column_width
    title_font = bold_font(layout.font_family)
    time_font = regular_font(layout.font_family)
    title_size = layout.fonts["event_title"].size
    time_size = layout.fonts["event_time"].size

    for i in range(7):
        day = monday + timedelta(days=i)
        col_x = layout.grid_start_x + layout.time_column_width + i * day_w
        for p in place_events(events, day, tz):
            lane_w = (day_w - 4) / p.lanes
            x = col_x + 2 + p.lane * lane_w
            w = lane_w - (1 if p.lanes > 1 else 0)
            top = rows_top + p.top(row_h) + 1
            h = max(p.height(row_h) - 2, 6)
            draw_event_box(page, p.kind, x, top, w, h)

            inner = w - 2 * layout.cell_padding
            page.fill(layout.colors.black)
            page.font(title_size, True)
            page.text(x + layout.cell_padding, top + title_size + 1,
                      fit_text(display_title(getattr(p.event, "title", "")), title_font, title_size, inner))
            if h >= title_size + time_size + 4:
                page.font(time_size)
                label = f"{format_military(p.start)}-{format_military(p.end)}"
                page.text(x + layout.cell_padding, top + title_size + time_size + 3,
                          fit_text(label, time_font, time_size, inner))


def draw_weekly_page(
    canvas: Canvas,
    week_start: date,
    events: Iterable,
    tz: Optional[ZoneInfo] = None,
    layout: WeeklyLayout = WEEKLY,
) -> None:
    monday = monday_of(week_start)
    events = list(events)
    canvas.setPageSize((layout.page_width, layout.page_height))
    page = Page(canvas, layout.page_height, layout.font_family)

    _header(page, layout, monday)
    draw_legend(
        page,
        layout.margin,
        layout.margin + layout.header_height,
        layout.content_width,
        layout.legend_height,
        spacing=layout.legend_item_spacing,
        font_size=layout.fonts["legend"].size,
    )
    _grid(page, layout, monday)
    _events(page, layout, monday, events, tz)
    canvas.showPage()


def render_weekly(
    week_start: date,
    events: Iterable,
    tz: Optional[ZoneInfo] = None,
    layout: WeeklyLayout = WEEKLY,
) -> bytes:
    monday = monday_of(week_start)
    buf = io.BytesIO()
    canvas = Canvas(buf, pagesize=(layout.page_width, layout.page_height))
    canvas.setTitle(f"Weekly Planner {monday.isoformat()}")
    draw_weekly_page(canvas, monday, events, tz, layout)
    canvas.save()
    logger.debug("Rendered weekly planner for week of %s", monday)
    return buf.getvalue()
