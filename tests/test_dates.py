from datetime import date, datetime

import pytest

from villa_planning.db.models.planning import ShiftType
from villa_planning.services.dates import (
    compute_working_days,
    count_absence_days,
    day_range,
    iter_week_starts,
    month_bounds,
)
from villa_planning.services.holidays import get_french_public_holidays, holiday_dates


@pytest.mark.parametrize(
    ("start_at", "end_at", "shift_type", "expected"),
    [
        # Monday 07:00 to Wednesday 07:00 touches three weekdays.
        (datetime(2026, 1, 5, 7), datetime(2026, 1, 7, 7), ShiftType.GARDE_48H, 3),
        (datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 18), ShiftType.AUTRE, 1),
        # The end instant is exclusive.
        (datetime(2026, 1, 5, 8), datetime(2026, 1, 6, 0), ShiftType.GARDE_24H, 1),
        # Friday evening to Monday morning only counts Friday and Monday.
        (datetime(2026, 1, 9, 20), datetime(2026, 1, 12, 8), ShiftType.GARDE_48H, 2),
        # Weekend duty counts every calendar day.
        (datetime(2026, 1, 10, 8), datetime(2026, 1, 12, 7), ShiftType.GARDE_WEEKEND, 3),
        (datetime(2026, 1, 10, 8), datetime(2026, 1, 11, 20), ShiftType.RENFORT, 0),
    ],
)
def test_compute_working_days(start_at: datetime, end_at: datetime, shift_type: ShiftType, expected: int) -> None:
    assert compute_working_days(start_at, end_at, shift_type) == expected


def test_compute_working_days_is_deterministic() -> None:
    start_at, end_at = datetime(2026, 3, 2, 7), datetime(2026, 3, 4, 7)

    first = compute_working_days(start_at, end_at, "garde_48h")
    second = compute_working_days(start_at, end_at, ShiftType.GARDE_48H)

    assert first == second == 3


def test_compute_working_days_empty_span() -> None:
    moment = datetime(2026, 1, 5, 8)
    assert compute_working_days(moment, moment, ShiftType.AUTRE) == 0
    assert compute_working_days(moment, datetime(2026, 1, 4, 8), ShiftType.AUTRE) == 0


def test_count_absence_days_skips_weekends_and_holidays() -> None:
    # January 2026 has 22 weekdays, New Year's Day being one of them.
    assert count_absence_days(date(2026, 1, 1), date(2026, 1, 31)) == 21
    assert count_absence_days(date(2026, 1, 10), date(2026, 1, 12)) == 1
    assert count_absence_days(date(2026, 5, 1), date(2026, 5, 1)) == 0


def test_french_holidays_follow_easter() -> None:
    holidays = {holiday.code: holiday.date for holiday in get_french_public_holidays(2026)}

    assert len(holidays) == 11
    assert holidays["easter_monday"] == date(2026, 4, 6)
    assert holidays["ascension_day"] == date(2026, 5, 14)
    assert holidays["whit_monday"] == date(2026, 5, 25)
    assert date(2026, 7, 14) in holiday_dates(2026)


def test_iter_week_starts_covers_partial_weeks() -> None:
    mondays = list(iter_week_starts(date(2026, 1, 1), date(2026, 1, 31)))

    assert mondays == [
        date(2025, 12, 29),
        date(2026, 1, 5),
        date(2026, 1, 12),
        date(2026, 1, 19),
        date(2026, 1, 26),
    ]


def test_month_bounds_and_day_range() -> None:
    assert month_bounds(2026, 2) == (date(2026, 2, 1), date(2026, 2, 28))
    assert month_bounds(2028, 2) == (date(2028, 2, 1), date(2028, 2, 29))
    assert day_range(date(2026, 1, 10), date(2026, 1, 12)) == (
        datetime(2026, 1, 10),
        datetime(2026, 1, 13),
    )
