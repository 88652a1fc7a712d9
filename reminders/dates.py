"""Calendar-date helpers.

All helpers are pure and return new values; callers never mutate a date in
place. Deadlines are handled as naive local wall-clock datetimes.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable

FRENCH_MONTHS = [
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
]

_DATE_ONLY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
# Date-only deadlines are often stored as ISO midnight, in UTC or local time.
_MIDNIGHT_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T00:00(?::00(?:\.0+)?)?(?:Z|[+-]00:00)?$")

Clock = Callable[[], datetime]


def start_of_day(value: datetime | date) -> datetime:
    """Return local midnight of the calendar date of ``value``."""

    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min)


def add_days(value: datetime, days: int) -> datetime:
    return value + timedelta(days=days)


def calendar_date(value: datetime | date) -> date:
    return value.date() if isinstance(value, datetime) else value


def calendar_date_equals(a: datetime | date, b: datetime | date) -> bool:
    return calendar_date(a) == calendar_date(b)


def date_key(value: datetime | date) -> str:
    """YYYY-MM-DD key used in notification identifiers."""

    return calendar_date(value).isoformat()


def days_between(earlier: datetime | date, later: datetime | date) -> int:
    """Whole calendar days from ``earlier`` to ``later``."""

    return (calendar_date(later) - calendar_date(earlier)).days


def parse_deadline(raw: object, tz: tzinfo | None = None) -> datetime | None:
    """Parse a stored deadline into a naive local datetime.

    Date-only strings and ISO midnights map to local midnight of that date, so
    a deadline stored as ``2025-12-12T00:00:00.000Z`` stays on the 12th in
    every timezone. Other aware timestamps are converted to ``tz`` first.
    Returns None for missing or unparseable values.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()

    match = _DATE_ONLY_RE.match(text) or _MIDNIGHT_RE.match(text)
    if match:
        try:
            return datetime(int(match[1]), int(match[2]), int(match[3]))
        except ValueError:
            return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz or timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(raw: object) -> date | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    parsed = parse_deadline(raw)
    return parsed.date() if parsed else None


def format_date_fr(value: datetime | date) -> str:
    """Format as ``2 décembre 2025``."""

    day = calendar_date(value)
    return f"{day.day} {FRENCH_MONTHS[day.month - 1]} {day.year}"


def format_temperature(temp_c: float) -> str:
    """Round to the nearest degree, halves upward."""

    rounded = math.floor(temp_c + 0.5)
    return f"{rounded}°C"


def local_now(tz: tzinfo | None = None) -> datetime:
    """Current local wall-clock time as a naive datetime."""

    return datetime.now(tz).replace(tzinfo=None)
