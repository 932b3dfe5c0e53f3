from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .events import ChurchEvent
from .time_utils import (
    days_in_month,
    first_of_month,
    get_now,
    local_date,
    shift_month,
    sunday_weekday,
)


@dataclass(frozen=True)
class CalendarDay:
    date: date
    day_of_month: int
    day_of_week: int
    is_current_month: bool
    is_today: bool
    events: Tuple[ChurchEvent, ...] = field(default_factory=tuple)


def _bucket_by_date(events: Iterable[ChurchEvent]) -> Dict[date, List[ChurchEvent]]:
    buckets: Dict[date, List[ChurchEvent]] = defaultdict(list)
    for event in events:
        buckets[local_date(event.time)].append(event)
    return buckets


def events_for_day(day: date | datetime, events: Iterable[ChurchEvent]) -> List[ChurchEvent]:
    """Events whose ``time`` falls on the local calendar date of ``day``.

    Only the anchor date is matched; recurrences are not projected onto
    later days.
    """
    target = local_date(day)
    return [e for e in events if local_date(e.time) == target]


def generate_calendar_data(
    month_anchor: date | datetime,
    events: Sequence[ChurchEvent],
    today: Optional[date] = None,
) -> List[CalendarDay]:
    """Build the week-aligned grid for the month containing ``month_anchor``.

    The grid starts on the Sunday on or before the first of the month and is
    padded with days of the next month to a whole number of weeks.  ``today``
    defaults to the current local date and is evaluated once.
    """
    first = first_of_month(month_anchor)
    month_length = days_in_month(first.year, first.month)
    leading = sunday_weekday(first)
    trailing = -(leading + month_length) % 7
    start = first - timedelta(days=leading)
    if today is None:
        today = get_now().date()

    buckets = _bucket_by_date(events)
    days: List[CalendarDay] = []
    for offset in range(leading + month_length + trailing):
        current = start + timedelta(days=offset)
        days.append(
            CalendarDay(
                date=current,
                day_of_month=current.day,
                day_of_week=sunday_weekday(current),
                is_current_month=leading <= offset < leading + month_length,
                is_today=current == today,
                events=tuple(buckets.get(current, ())),
            )
        )
    return days


def weeks(days: Sequence[CalendarDay]) -> List[List[CalendarDay]]:
    return [list(days[i:i + 7]) for i in range(0, len(days), 7)]


def find_day_index(days: Sequence[CalendarDay], day: date | datetime) -> Optional[int]:
    """Position of ``day`` in a generated grid.

    Positions are stable for a given month, so presentation state can be
    kept per index instead of per date.
    """
    target = local_date(day)
    if not days:
        return None
    offset = (target - days[0].date).days
    if 0 <= offset < len(days):
        return offset
    return None


def change_month(anchor: date | datetime, direction: int) -> date:
    """First day of the month before (``-1``) or after (``1``) ``anchor``."""
    return shift_month(anchor, direction)
