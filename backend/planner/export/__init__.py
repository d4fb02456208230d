"""PDF and iCalendar exports of the planner."""

from .daily import render_daily
from .ics import render_ics
from .layout import DAILY, WEEKLY, DailyLayout, WeeklyLayout
from .package import render_weekly_package
from .weekly import render_weekly

__all__ = [
    "DAILY",
    "WEEKLY",
    "DailyLayout",
    "WeeklyLayout",
    "render_daily",
    "render_ics",
    "render_weekly",
    "render_weekly_package",
]
