"""Weekly overview followed by the seven daily pages, merged into one PDF."""

from __future__ import annotations

import io
import logging
from datetime import date, timedelta
from typing import Dict, Iterable, Optional
from zoneinfo import ZoneInfo

from pypdf import PdfReader, PdfWriter

from ..timeslots import week_start as monday_of
from .daily import render_daily
from .weekly import render_weekly

logger = logging.getLogger(__name__)


def render_weekly_package(
    week_start: date,
    events: Iterable,
    notes_by_date: Optional[Dict[str, str]] = None,
    tz: Optional[ZoneInfo] = None,
) -> bytes:
    """
    Page 1 is the A3 weekly grid, pages 2-8 are Monday..Sunday daily pages.

    ``notes_by_date`` maps ``YYYY-MM-DD`` to the daily note printed in each
    daily page's footer.
    """
    monday = monday_of(week_start)
    events = list(events)
    notes_by_date = notes_by_date or {}

    parts = [render_weekly(monday, events, tz)]
    for i in range(7):
        day = monday + timedelta(days=i)
        parts.append(render_daily(day, events, notes_by_date.get(day.isoformat()), tz))

    writer = PdfWriter()
    for part in parts:
        for page in PdfReader(io.BytesIO(part)).pages:
            writer.add_page(page)
    writer.add_metadata({"/Title": f"Weekly Package {monday.isoformat()}"})

    out = io.BytesIO()
    writer.write(out)
    logger.info("Rendered weekly package for week of %s (%d pages)", monday, len(writer.pages))
    return out.getvalue()
