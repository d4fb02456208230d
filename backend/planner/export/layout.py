"""
Page geometry for the exported planner pages.

Both renderers and the layout audit read these values, so a change here is
what the audit compares against the dashboard.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Tuple

from ..timeslots import TIME_SLOTS

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class FontSpec:
    size: float
    bold: bool = False


@dataclass(frozen=True)
class Palette:
    black: RGB = (0, 0, 0)
    gray: RGB = (100, 100, 100)
    medium_gray: RGB = (150, 150, 150)
    light_gray: RGB = (240, 240, 240)
    very_light_gray: RGB = (248, 248, 248)
    white: RGB = (255, 255, 255)


@dataclass(frozen=True)
class DailyLayout:
    page_width: float = 595
    page_height: float = 1600
    margin: float = 12
    time_column_width: float = 65
    appointment_column_width: float = 495
    slot_height: float = 30
    header_height: float = 75
    legend_height: float = 20
    notes_height: float = 110
    cell_padding: float = 3
    text_padding: float = 4
    font_family: str = "Helvetica"
    max_lanes: int = 4
    expanded_min_height: float = 70
    fonts: Dict[str, FontSpec] = field(default_factory=lambda: {
        "title": FontSpec(16, True),
        "date": FontSpec(12),
        "stats": FontSpec(12, True),
        "stats_label": FontSpec(10),
        "time_labels": FontSpec(9),
        "event_title": FontSpec(10, True),
        "event_source": FontSpec(8),
        "event_time": FontSpec(10, True),
        "event_notes": FontSpec(8),
        "notes_header": FontSpec(9, True),
    })
    colors: Palette = field(default_factory=Palette)

    @property
    def total_slots(self) -> int:
        return len(TIME_SLOTS)

    @property
    def grid_start_y(self) -> float:
        """Distance from the top of the page to the first slot row."""
        return self.margin + self.header_height + self.legend_height

    @property
    def grid_height(self) -> float:
        return self.total_slots * self.slot_height

    @property
    def content_width(self) -> float:
        return self.time_column_width + self.appointment_column_width

    def to_config(self) -> Dict[str, Any]:
        return {
            "view": "daily",
            "pageWidth": self.page_width,
            "pageHeight": self.page_height,
            "margin": self.margin,
            "timeColumnWidth": self.time_column_width,
            "dayColumnWidth": self.appointment_column_width,
            "slotHeight": self.slot_height,
            "totalSlots": self.total_slots,
            "contentWidth": self.content_width,
            "cellPadding": self.cell_padding,
            "textPadding": self.text_padding,
            "fonts": {
                "family": self.font_family,
                **{name: asdict(spec) for name, spec in self.fonts.items()},
            },
        }


@dataclass(frozen=True)
class WeeklyLayout:
    # A3 landscape in points
    page_width: float = 1190
    page_height: float = 842
    margin: float = 20
    header_height: float = 60
    legend_height: float = 35
    day_header_height: float = 40
    time_column_width: float = 95
    slot_height: float = 20
    cell_padding: float = 3
    text_padding: float = 4
    font_family: str = "Times-Roman"
    legend_item_spacing: float = 220
    fonts: Dict[str, FontSpec] = field(default_factory=lambda: {
        "title": FontSpec(24, True),
        "week": FontSpec(16, True),
        "legend": FontSpec(12),
        "time_header": FontSpec(14, True),
        "day_name": FontSpec(12, True),
        "day_number": FontSpec(16, True),
        "time_labels": FontSpec(8),
        "event_title": FontSpec(7, True),
        "event_time": FontSpec(6),
    })
    colors: Palette = field(default_factory=Palette)

    @property
    def total_slots(self) -> int:
        return len(TIME_SLOTS)

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def day_column_width(self) -> int:
        return math.floor((self.content_width - self.time_column_width) / 7)

    @property
    def grid_start_x(self) -> float:
        return self.margin

    @property
    def grid_start_y(self) -> float:
        return self.margin + self.header_height + self.legend_height

    @property
    def grid_height(self) -> float:
        available = self.page_height - self.grid_start_y - self.margin
        return min(self.total_slots * self.slot_height, available - 30)

    @property
    def row_height(self) -> float:
        """Drawn slot height once the grid is squeezed to fit the page."""
        return (self.grid_height - self.day_header_height) / self.total_slots

    def to_config(self) -> Dict[str, Any]:
        return {
            "view": "weekly",
            "pageWidth": self.page_width,
            "pageHeight": self.page_height,
            "margin": self.margin,
            "timeColumnWidth": self.time_column_width,
            "dayColumnWidth": self.day_column_width,
            "slotHeight": self.slot_height,
            "totalSlots": self.total_slots,
            "contentWidth": self.content_width,
            "gridStartY": self.grid_start_y,
            "gridHeight": self.grid_height,
            "cellPadding": self.cell_padding,
            "textPadding": self.text_padding,
            "fonts": {
                "family": self.font_family,
                **{name: asdict(spec) for name, spec in self.fonts.items()},
            },
        }


DAILY = DailyLayout()
WEEKLY = WeeklyLayout()
