"""Time helpers.

Keep all timestamps timezone-aware and all source dates strictly parsed.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

# KBO extracts write dates as DD-MM-YYYY.
SOURCE_DATE_FORMAT = "%d-%m-%Y"
_SOURCE_DATE_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$")


def utcnow() -> datetime:
    """Return the current time as a timezone-aware datetime in UTC (+00:00)."""

    return datetime.now(timezone.utc)


def parse_source_date(date_str: str) -> date:
    """Parse a DD-MM-YYYY string into a `datetime.date`.

    There is no fallback to other layouts: '1998-03-05' or '5-3-1998' are
    rejected, as are impossible calendar dates such as '31-02-2020'.

    Raises:
        ValueError: if `date_str` is not a valid DD-MM-YYYY date.
    """

    s = (date_str or "").strip()
    if not _SOURCE_DATE_RE.match(s):
        raise ValueError(f"expected DD-MM-YYYY date, got {date_str!r}")
    return datetime.strptime(s, SOURCE_DATE_FORMAT).date()


def iso_date(value: date | None) -> str | None:
    """Format a date as YYYY-MM-DD (None stays None)."""

    if value is None:
        return None
    return value.isoformat()
