"""Title cleanup for dashboard and PDF output."""

from __future__ import annotations

import re

_SYMBOL_RE = re.compile(
    "["
    "\U0001F300-\U0001F6FF"  # pictographs, emoticons, transport
    "\u2600-\u27BF"          # misc symbols, dingbats
    "\u2500-\u259F"          # box drawing, block elements
    "\u2022-\u2025"          # bullets
    "]"
)

# Mojibake left behind by double-encoded UTF-8 in calendar titles.
_MOJIBAKE = (
    "ðŸ”’",
    "Ã˜=ÃœÃ…",
    "Ã˜=Ã",
    "Ã˜=",
    "ÃœÃ…",
    "!â€¢",
    "â€¢",
    "â—¦",
    "â–ª",
    "â–«",
    "â†’",
    "â†",
)

_NAV_RE = re.compile(r"Page \d+ of \d+|Back to Weekly Overview|Weekly Overview")


def clean_event_title(title: str | None) -> str:
    if not title:
        return ""
    t = title
    for junk in _MOJIBAKE:
        t = t.replace(junk, "")
    t = _SYMBOL_RE.sub("", t)
    t = _NAV_RE.sub("", t)
    return re.sub(r"\s+", " ", t).strip()


def display_title(title: str | None) -> str:
    t = clean_event_title(title) or "Untitled Event"
    if t.endswith(" Appointment"):
        t = t[: -len(" Appointment")]
    return t
