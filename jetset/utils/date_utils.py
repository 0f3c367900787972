"""Calendar-date helpers shared by flight search, payments and quotes.

All helpers work on local calendar dates expressed as ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Formats seen in booking payloads coming back from the UI.
_HUMAN_FORMATS_WITH_YEAR = (
    "%A, %B %d, %Y",
    "%a, %b %d, %Y",
    "%a, %b %d %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%m/%d/%Y",
)
_HUMAN_FORMATS_NO_YEAR = (
    "%a, %b %d",
    "%A, %B %d",
    "%b %d",
    "%B %d",
)


def _split_iso(date_string: str) -> date:
    year, month, day = (int(part) for part in date_string.strip().split("-"))
    return date(year, month, day)


def is_iso_date(value: str) -> bool:
    return bool(value) and bool(_ISO_DATE_RE.match(value.strip()))


def get_today_date() -> str:
    return date.today().isoformat()


def get_next_day(date_string: Optional[str]) -> str:
    """Day after ``date_string``; today when nothing is given."""
    if not date_string:
        return get_today_date()
    return (_split_iso(date_string) + timedelta(days=1)).isoformat()


def format_date_display(date_string: Optional[str]) -> str:
    """``2026-05-15`` -> ``Fri, May 15``."""
    if not date_string:
        return ""
    d = _split_iso(date_string)
    return f"{d.strftime('%a')}, {d.strftime('%b')} {d.day}"


def get_safe_date(date_string: Optional[str]) -> datetime:
    """Noon local time on the given date, so timezone shifts never change the day."""
    if not date_string:
        return datetime.now()
    d = _split_iso(date_string)
    return datetime(d.year, d.month, d.day, 12, 0, 0)


def format_date_to_iso(value: Union[date, datetime, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_to_iso_date(value: Union[str, date, datetime, None], today: Optional[date] = None) -> str:
    """
    Best-effort conversion of a departure date into ``YYYY-MM-DD``.

    Accepts ISO dates, ISO datetimes and the human formats the booking UI
    renders (``Fri, Feb 6``, ``Friday, February 6, 2026``). A missing year
    means the current year. Anything unparsable falls back to today.
    """
    today = today or date.today()
    if value is None or value == "":
        return today.isoformat()
    if isinstance(value, (date, datetime)):
        return format_date_to_iso(value)

    text = str(value).strip()
    if _ISO_DATE_RE.match(text):
        return text
    if "T" in text:
        return text.split("T", 1)[0]

    for fmt in _HUMAN_FORMATS_WITH_YEAR:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    for fmt in _HUMAN_FORMATS_NO_YEAR:
        try:
            # Parse with the year attached so Feb 29 is accepted in leap years.
            parsed = datetime.strptime(f"{text} {today.year}", f"{fmt} %Y")
            return parsed.date().isoformat()
        except ValueError:
            continue

    logger.warning("Could not parse date %r, falling back to today", value)
    return today.isoformat()


def default_analytics_period(today: Optional[date] = None) -> str:
    """Previous calendar month as ``YYYY-MM``."""
    today = today or date.today()
    last_month = today.replace(day=1) - timedelta(days=1)
    return f"{last_month.year:04d}-{last_month.month:02d}"


def is_past_date(date_string: str, today: Optional[date] = None) -> bool:
    return _split_iso(date_string) < (today or date.today())
