"""Calendar rules shared by shift display, warnings and counter deduction."""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta
from typing import Iterator

from villa_planning.db.models.planning import ShiftType
from villa_planning.services.holidays import holiday_dates


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date between *start* and *end* (inclusive)."""

    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def compute_working_days(start_at: datetime, end_at: datetime, shift_type: ShiftType | str) -> int:
    """Return the number of working days touched by ``[start_at, end_at)``.

    A working day is a Monday to Friday calendar day. Weekend on-duty slots
    count every calendar day they touch. The end instant is exclusive, so a
    shift ending at midnight does not count the following day.
    """

    if end_at <= start_at:
        return 0
    counts_weekends = ShiftType(shift_type).counts_weekends
    last_day = (end_at - timedelta(microseconds=1)).date()
    return sum(
        1 for day in iter_days(start_at.date(), last_day) if counts_weekends or day.weekday() < 5
    )


def count_absence_days(start: date, end: date) -> int:
    """Count Monday to Friday dates in ``[start, end]`` that are not French public holidays."""

    return sum(
        1
        for day in iter_days(start, end)
        if day.weekday() < 5 and day not in holiday_dates(day.year)
    )


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def iter_week_starts(start: date, end: date) -> Iterator[date]:
    """Yield the Monday of every week intersecting ``[start, end]``."""

    current = week_start(start)
    while current <= end:
        yield current
        current += timedelta(weeks=1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def day_range(start: date, end: date) -> tuple[datetime, datetime]:
    """Convert an inclusive date range into a half-open datetime range."""

    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def intervals_overlap(
    first_start: datetime, first_end: datetime, second_start: datetime, second_end: datetime
) -> bool:
    return first_start < second_end and second_start < first_end
