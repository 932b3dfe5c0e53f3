from __future__ import annotations

import os
from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo


DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
SHORT_DAY_NAMES = ["S", "M", "T", "W", "T", "F", "S"]


def _configured_tz() -> tzinfo:
    """Return the timezone configured for the application."""
    tz_name = os.getenv("CHURCHEVENTS_TZ")
    if tz_name:
        return ZoneInfo(tz_name)
    system_tz = datetime.now().astimezone().tzinfo
    return system_tz if system_tz is not None else ZoneInfo("UTC")


def get_now() -> datetime:
    """Return the current time in the configured timezone.

    Uses the ``CHURCHEVENTS_TZ`` environment variable if set, otherwise
    defaults to the system timezone.
    """
    return datetime.now(_configured_tz())


def parse_datetime(value: str) -> datetime:
    """Parse an ISO formatted datetime string into the configured timezone."""
    return ensure_tz(datetime.fromisoformat(value))


def ensure_tz(dt: datetime | None) -> datetime | None:
    """Ensure ``dt`` is timezone-aware using the configured timezone."""
    if dt is None:
        return None

    tz = _configured_tz()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    if dt.tzinfo == tz:
        return dt
    return dt.astimezone(tz)


def local_date(value: datetime | date) -> date:
    """Return the calendar date of ``value`` in the configured timezone."""
    if isinstance(value, datetime):
        return ensure_tz(value).date()
    return value


def is_same_day(a: datetime | date, b: datetime | date) -> bool:
    return local_date(a) == local_date(b)


def sunday_weekday(value: datetime | date) -> int:
    """Weekday index with Sunday as 0 and Saturday as 6."""
    return (local_date(value).weekday() + 1) % 7


def first_of_month(value: datetime | date) -> date:
    return local_date(value).replace(day=1)


def shift_month(value: datetime | date, months: int) -> date:
    """Return the first day of the month ``months`` away from ``value``."""
    first = first_of_month(value)
    index = first.year * 12 + (first.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def days_in_month(year: int, month: int) -> int:
    first = date(year, month, 1)
    return (shift_month(first, 1) - first).days


def last_of_month(value: datetime | date) -> date:
    first = first_of_month(value)
    return first + timedelta(days=days_in_month(first.year, first.month) - 1)


def day_name(day: int, short: bool = False) -> str:
    names = SHORT_DAY_NAMES if short else DAY_NAMES
    return names[day]


def format_month(value: datetime | date) -> str:
    """e.g. ``February 2024``"""
    return local_date(value).strftime("%B %Y")


def format_date(value: datetime | date) -> str:
    return local_date(value).strftime("%A, %B %d, %Y").replace(" 0", " ")


def format_event_time(dt: datetime) -> str:
    return ensure_tz(dt).strftime("%H:%M")
