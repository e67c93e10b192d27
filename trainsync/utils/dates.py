# trainsync/utils/dates.py
from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime, timedelta

from trainsync.config import settings

__all__ = [
    "WEEKDAYS",
    "weekday_name",
    "weekday_title",
    "parse_weekday",
    "looks_like_iso_date",
    "parse_iso_date",
    "coerce_date",
    "reference_dates",
    "reference_date",
    "is_reference_date",
    "iter_dates",
]

# Index matches date.weekday()
WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_DAY_ALIASES: dict[str, str] = {
    "lundi": "monday",
    "mardi": "tuesday",
    "mercredi": "wednesday",
    "jeudi": "thursday",
    "vendredi": "friday",
    "samedi": "saturday",
    "dimanche": "sunday",
    **{d: d for d in WEEKDAYS},
}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def weekday_name(d: date) -> str:
    return WEEKDAYS[d.weekday()]


def weekday_title(d: date) -> str:
    return weekday_name(d).capitalize()


def parse_weekday(value: str | None) -> str | None:
    """Canonical English weekday for a French or English day name, else None."""
    s = (value or "").strip().lower()
    return _DAY_ALIASES.get(s)


def looks_like_iso_date(value: str | None) -> bool:
    return bool(_ISO_DATE_RE.match((value or "").strip()))


def parse_iso_date(value: str) -> date:
    s = (value or "").strip()
    if not _ISO_DATE_RE.match(s):
        raise ValueError(f"not a YYYY-MM-DD date: {value!r}")
    return datetime.strptime(s, "%Y-%m-%d").date()


def coerce_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(value)


def reference_dates(week_start: date | None = None) -> dict[str, date]:
    start = week_start or settings.REFERENCE_WEEK_START
    if start.weekday() != 0:
        raise ValueError(f"reference week must start on a Monday, got {start.isoformat()}")
    return {day: start + timedelta(days=i) for i, day in enumerate(WEEKDAYS)}


def reference_date(weekday: str, week_start: date | None = None) -> date:
    return reference_dates(week_start)[weekday]


def is_reference_date(d: date | None, weekday: str | None = None) -> bool:
    if d is None:
        return False
    day = weekday or weekday_name(d)
    return reference_dates().get(day) == d


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date in [start, end]; nothing when start > end."""
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=1)
