"""reportlab helpers shared by the daily and weekly pages. Coordinates are top-down."""

from __future__ import annotations

from typing import Sequence, Tuple

from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from ..classify import LEGEND_KINDS, EventKind

RGB = Tuple[int, int, int]


def bold_font(family: str) -> str:
    if family.startswith("Times"):
        return "Times-Bold"
    return f"{family}-Bold"


def regular_font(family: str) -> str:
    return family


class Page:
    """A canvas page addressed from the top-left corner, like the dashboard."""

    def __init__(self, canvas: Canvas, height: float, family: str) -> None:
        self.c = canvas
        self.height = height
        self.family = family

    def y(self, top: float) -> float:
        return self.height - top

    def fill(self, rgb: RGB) -> None:
        self.c.setFillColorRGB(*(v / 255 for v in rgb))

    def stroke(self, rgb: RGB, width: float = 1, dash: Sequence[float] | None = None) -> None:
        self.c.setStrokeColorRGB(*(v / 255 for v in rgb))
        self.c.setLineWidth(width)
        self.c.setDash(list(dash) if dash else [])

    def font(self, size: float, bold: bool = False) -> None:
        self.c.setFont(bold_font(self.family) if bold else regular_font(self.family), size)

    def rect(self, x: float, top: float, w: float, h: float, *, fill: bool = False, stroke: bool = True) -> None:
        self.c.rect(x, self.y(top + h), w, h, stroke=int(stroke), fill=int(fill))

    def line(self, x1: float, top1: float, x2: float, top2: float) -> None:
        self.c.line(x1, self.y(top1), x2, self.y(top2))

    def text(self, x: float, top: float, s: str, align: str = "left") -> None:
        if align == "center":
            self.c.drawCentredString(x, self.y(top), s)
        elif align == "right":
            self.c.drawRightString(x, self.y(top), s)
        else:
            self.c.drawString(x, self.y(top), s)


def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    """Truncate ``text`` with an ellipsis so it fits ``max_width`` points."""
    if max_width <= 0:
        return ""
    if stringWidth(text, font, size) <= max_width:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font, size) > max_width:
        text = text[:-1]
    return (text + ellipsis) if text else ""


def wrap_text(text: str, font: str, size: float, max_width: float, max_lines: int) -> list[str]:
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}".strip()
            if stringWidth(candidate, font, size) <= max_width:
                current = candidate
            else:
                if current:
                    lines.append(current)
                current = fit_text(word, font, size, max_width)
        if current:
            lines.append(current)
    if len(lines) > max_lines:
        lines = lines[:max_lines]
        lines[-1] = fit_text(lines[-1] + " ...", font, size, max_width)
    return lines


def draw_event_box(page: Page, kind: EventKind, x: float, top: float, w: float, h: float) -> None:
    style = kind.style
    page.fill(style.fill)
    page.rect(x, top, w, h, fill=True, stroke=False)
    page.stroke(style.border, style.border_width, style.dash)
    page.rect(x, top, w, h)
    if style.left_flag_width:
        page.stroke(style.border, style.left_flag_width)
        page.line(x, top, x, top + h)
    page.stroke((0, 0, 0), 1)


def draw_legend(page: Page, x: float, top: float, width: float, height: float, spacing: float, font_size: float) -> None:
    page.fill((248, 248, 248))
    page.rect(x, top, width, height, fill=True, stroke=False)
    page.stroke((0, 0, 0), 1)
    page.rect(x, top, width, height)

    total = len(LEGEND_KINDS) * spacing
    item_x = x + (width - total) / 2
    swatch_top = top + (height - 12) / 2
    for kind in LEGEND_KINDS:
        draw_event_box(page, kind, item_x, swatch_top, 18, 12)
        page.fill((0, 0, 0))
        page.font(font_size)
        page.text(item_x + 24, swatch_top + 10, kind.legend_label)
        item_x += spacing
