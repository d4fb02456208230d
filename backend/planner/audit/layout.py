"""
Compare dashboard measurements with the PDF layout constants.

The client measures the rendered dashboard and posts the values; each row of
the resulting truth table pairs one browser value with the value the PDF
renderer actually uses.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from ..export.layout import WEEKLY, DailyLayout, WeeklyLayout
from ..schemas import DashboardMeasurements, LayoutAuditReport, LayoutMeasurement

logger = logging.getLogger(__name__)

PERFECT = "Perfect match"
MATCH = "Match"
DIFFERENT = "Different"
CANNOT_COMPARE = "Cannot compare"

GRID_CONTAINER_WIDTH = WEEKLY.content_width

COMPROMISES = [
    "Font family: the PDF uses the built-in Helvetica/Times faces instead of browser web fonts",
    "Font sizing: PDF uses pt units vs browser px units (no direct conversion)",
    "Cell padding: PDF uses a fixed 3 pt padding vs browser CSS-computed padding",
    "Text positioning: PDF uses absolute positioning vs browser CSS layout",
    "Grid lines: PDF draws manual lines vs browser CSS borders",
    "Event borders: PDF draws borders per event type vs browser CSS",
    "Color accuracy: PDF RGB values may not match browser computed colors",
    "Responsive sizing: PDF uses fixed page dimensions vs browser responsive layout",
]

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _number(value: Any) -> Optional[float]:
    """First number in a CSS value like ``"3px 4px"``; None when absent."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = _NUMBER_RE.search(str(value))
    return float(m.group()) if m else None


def _fmt(value: Optional[float], unit: str = "px") -> str:
    return "N/A" if value is None else f"{value:g} {unit}"


def calculate_difference(browser: Optional[float], pdf: Optional[float]) -> str:
    if not browser or not pdf:
        return CANNOT_COMPARE
    diff = pdf - browser
    if diff == 0:
        return PERFECT
    return f"{'+' if diff > 0 else ''}{diff:g} px"


def _is_discrepancy(difference: str) -> bool:
    return difference == DIFFERENT or difference.endswith(" px")


def _row(element: str, browser: Optional[float], pdf: Optional[float], source: str) -> LayoutMeasurement:
    return LayoutMeasurement(
        element=element,
        browser_value=_fmt(browser),
        pdf_value=_fmt(pdf),
        difference=calculate_difference(browser, pdf),
        source=source,
    )


def truth_table(m: DashboardMeasurements, config: Dict[str, Any]) -> List[LayoutMeasurement]:
    box = m.event_box
    fonts = config.get("fonts", {})
    browser_family = box.font_family if box else None
    pdf_family = fonts.get("family")
    title_size = (fonts.get("event_title") or {}).get("size")
    view = config.get("view", "daily")

    def px(item) -> Optional[float]:
        return item.pixels if item else None

    return [
        _row("Day column width", px(m.day_column_width), config.get("dayColumnWidth"),
             f"{view}.dayColumnWidth"),
        _row("Time column width", px(m.time_column_width), config.get("timeColumnWidth"),
             f"{view}.timeColumnWidth"),
        _row("Time slot height", px(m.time_slot_height), config.get("slotHeight"),
             f"{view}.slotHeight"),
        LayoutMeasurement(
            element="Font family (events)",
            browser_value=browser_family or "N/A",
            pdf_value=pdf_family or "N/A",
            difference=MATCH if browser_family and browser_family == pdf_family else DIFFERENT,
            source=f"{view}.fonts.family",
        ),
        LayoutMeasurement(
            element="Font size (event titles)",
            browser_value=(box.font_size if box and box.font_size else "N/A"),
            pdf_value=_fmt(title_size, "pt"),
            difference=f"{CANNOT_COMPARE} (px vs pt)",
            source=f"{view}.fonts.event_title.size",
        ),
        _row("Cell padding", _number(box.padding) if box else None, config.get("cellPadding"),
             f"{view}.cellPadding"),
        _row("Border thickness", _number(box.border_width) if box else None, 1.0,
             "EventStyle.border_width"),
        _row("Grid container width", px(m.grid_container), GRID_CONTAINER_WIDTH,
             "WeeklyLayout.content_width"),
    ]


def audit_layout(measurements: DashboardMeasurements, layout: Union[DailyLayout, WeeklyLayout]) -> LayoutAuditReport:
    """Build the truth table comparing ``measurements`` with one page layout."""
    config = layout.to_config()
    rows = truth_table(measurements, config)
    perfect = sum(1 for r in rows if r.difference in (PERFECT, MATCH))
    score = round(100 * perfect / len(rows))
    discrepancies = sum(1 for r in rows if _is_discrepancy(r.difference))
    now = datetime.now(timezone.utc)
    logger.info("Layout audit (%s): %d%% accuracy, %d discrepancies", config.get("view"), score, discrepancies)
    return LayoutAuditReport(
        timestamp=now,
        view=config.get("view", "daily"),
        measurements=rows,
        score=score,
        compromises=list(COMPROMISES),
        traceability={
            "measurementTimestamp": now.isoformat(),
            "browserValues": measurements.model_dump(by_alias=True, exclude_none=True),
            "pdfValues": config,
        },
        summary=(
            f"Pixel-perfect audit completed with {score}% accuracy. "
            f"{discrepancies} discrepancies found."
        ),
    )
