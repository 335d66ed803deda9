from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence


_MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}


@dataclass(frozen=True)
class DateHeading:
    index: int
    date: str


# Only level-two headings carry dates; "### ..." is a workgroup boundary.
_HEADING_RE = re.compile(r"(?m)^##[ \t]+(?P<text>[^\n]+)$")

# "January 1st 2024", "Monday, January 1st, 2024"
_MONTH_FIRST_RE = re.compile(
    r"^(?:[A-Za-z]+,?\s+)?(?P<month>[A-Za-z]+)\s+(?P<day>\d{1,2})(?:st|nd|rd|th),?\s+(?P<year>\d{4})\b"
)
# "Monday 1st January 2024" (GitBook timeline style)
_DAY_FIRST_RE = re.compile(
    r"^(?:[A-Za-z]+,?\s+)?(?P<day>\d{1,2})(?:st|nd|rd|th)\s+(?P<month>[A-Za-z]+),?\s+(?P<year>\d{4})\b"
)


def parse_date_heading(text: str) -> Optional[str]:
    """Return ISO date (YYYY-MM-DD) for a date heading's text, else None."""

    for pattern in (_MONTH_FIRST_RE, _DAY_FIRST_RE):
        m = pattern.match(text.strip())
        if not m:
            continue
        month = _MONTHS.get(m.group("month").lower())
        if month is None:
            continue
        try:
            dt = datetime(int(m.group("year")), month, int(m.group("day")))
        except ValueError:
            continue
        return dt.strftime("%Y-%m-%d")
    return None


def extract_date_headings(markdown: str) -> List[DateHeading]:
    headings: List[DateHeading] = []
    for m in _HEADING_RE.finditer(markdown):
        iso = parse_date_heading(m.group("text"))
        if iso is not None:
            headings.append(DateHeading(index=m.start(), date=iso))
    return headings


def find_closest_date(position: int, headings: Sequence[DateHeading]) -> Optional[str]:
    """Date of the nearest heading at or before `position`.

    Headings after the position are never considered, however close.
    """

    closest: Optional[str] = None
    best = None
    for h in headings:
        if h.index > position:
            continue
        distance = position - h.index
        if best is None or distance < best:
            best = distance
            closest = h.date
    return closest
