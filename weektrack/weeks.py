"""
ISO 8601 week arithmetic.

Rules:
- weeks run Monday..Sunday
- week 1 is the week that contains the year's first Thursday
  (equivalently: the week that contains January 4th)
- a week belongs to the year its Thursday falls in, so Dec 29-31 can be in
  week 1 of the next year and Jan 1-3 can be in week 52/53 of the previous one

All functions accept a `date` or a `datetime`. For a datetime only the
calendar date in its own timezone matters; the time of day never moves a
value into a different week.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, NamedTuple, Optional, Tuple, Union

DateLike = Union[date, datetime]


class WeekKey(NamedTuple):
    week_number: int
    year: int


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_of(value: DateLike) -> WeekKey:
    """
    Return the ISO week number and ISO year of a date.

    Shift to the Thursday of the same Monday..Sunday week, then count the
    weeks from January 1st of that Thursday's year.
    """
    day = _as_date(value)
    thursday = day + timedelta(days=4 - day.isoweekday())
    jan1 = date(thursday.year, 1, 1)
    week_number = math.ceil(((thursday - jan1).days + 1) / 7)
    return WeekKey(week_number, thursday.year)


def week_monday(week_number: int, year: int) -> date:
    # January 4th is always in week 1.
    jan4 = date(year, 1, 4)
    week1_monday = jan4 - timedelta(days=jan4.isoweekday() - 1)
    return week1_monday + timedelta(weeks=week_number - 1)


def bounds_of(week_number: int, year: int, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """
    Return (start, end) of an ISO week: Monday 00:00 through Sunday 23:59:59.999999.

    Pass `tz` to get aware datetimes; by default both bounds are naive.
    """
    monday = week_monday(week_number, year)
    sunday = monday + timedelta(days=6)
    start = datetime.combine(monday, time.min, tzinfo=tz)
    end = datetime.combine(sunday, time.max, tzinfo=tz)
    return start, end


def is_in_week(value: DateLike, week_number: int, year: int) -> bool:
    return week_of(value) == (week_number, year)


def weeks_in_year(year: int) -> int:
    """52 or 53. December 28th always lies in the last ISO week of its year."""
    return week_of(date(year, 12, 28)).week_number


def next_week(week_number: int, year: int) -> WeekKey:
    if week_number >= weeks_in_year(year):
        return WeekKey(1, year + 1)
    return WeekKey(week_number + 1, year)


def previous_week(week_number: int, year: int) -> WeekKey:
    if week_number <= 1:
        return WeekKey(weeks_in_year(year - 1), year - 1)
    return WeekKey(week_number - 1, year)


def days_of_week(week_number: int, year: int) -> List[date]:
    """Monday..Sunday of the given ISO week."""
    monday = week_monday(week_number, year)
    return [monday + timedelta(days=i) for i in range(7)]


def current_week() -> WeekKey:
    return week_of(datetime.now())
