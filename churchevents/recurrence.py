from __future__ import annotations

from enum import Enum
from typing import AbstractSet, Iterable, Optional, Set

from .time_utils import day_name


class RecurrenceType(str, Enum):
    Never = "none"
    Daily = "daily"
    Weekly = "weekly"
    Monthly = "monthly"
    Yearly = "yearly"

    @classmethod
    def parse(cls, value: str | RecurrenceType | None) -> Optional[RecurrenceType]:
        if value is None or isinstance(value, RecurrenceType):
            return value
        return cls(value.strip().lower())


RECURRENCE_UNITS = {
    RecurrenceType.Daily: "day",
    RecurrenceType.Weekly: "week",
    RecurrenceType.Monthly: "month",
    RecurrenceType.Yearly: "year",
}


def _check_day(day: int) -> int:
    if not 0 <= day <= 6:
        raise ValueError(f"Weekday index out of range: {day}")
    return day


def encode_days_of_week(days: Iterable[int] | None) -> Optional[int]:
    """Pack a set of weekday indices (0 = Sunday) into one integer.

    The distinct indices are written as decimal digits in ascending order,
    so ``{1, 3, 5}`` becomes ``135``.  Sunday is written last (``{0, 1, 3}``
    becomes ``130``) because a leading zero would be lost.
    """
    if days is None:
        return None
    distinct = sorted({_check_day(d) for d in days}, key=lambda d: (d == 0, d))
    if not distinct:
        return None
    return int("".join(str(d) for d in distinct))


def decode_days_of_week(value: int | None) -> Optional[Set[int]]:
    """Inverse of :func:`encode_days_of_week`; ``None`` stays ``None``.

    Digit order is not significant, so codes written in plain ascending
    order (``13`` for Monday and Wednesday) decode the same way.
    """
    if value is None:
        return None
    if value < 0:
        raise ValueError(f"Invalid weekday code: {value}")
    return {_check_day(int(digit)) for digit in str(value)}


def format_days_of_week(days: AbstractSet[int] | None) -> str:
    if not days:
        return ""
    return ", ".join(day_name(d) for d in sorted(days))


def recurrence_summary(item) -> str:
    """Describe how ``item`` (an event or staged form) repeats.

    A weekly event on Monday and Wednesday every other week reads
    ``Repeats weekly on Mon, Wed every 2 weeks``.
    """
    if not item.is_recurring:
        return ""
    rtype = RecurrenceType.parse(item.recurrence_type)
    if rtype is None or rtype == RecurrenceType.Never:
        return ""
    summary = f"Repeats {rtype.value}"
    if rtype == RecurrenceType.Weekly and item.recurrence_days_of_week:
        summary += f" on {format_days_of_week(item.recurrence_days_of_week)}"
    interval = item.recurrence_interval
    if interval and interval > 1:
        summary += f" every {interval} {RECURRENCE_UNITS[rtype]}s"
    if item.recurrence_end_date:
        summary += f" until {item.recurrence_end_date.strftime('%Y-%m-%d')}"
    return summary
