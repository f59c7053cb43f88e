from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import ConflictError, InvalidRequestError, NotFoundError
from villa_planning.db.models.counter import CounterKind
from villa_planning.db.models.villa import User
from villa_planning.repositories import absence as absence_repo
from villa_planning.repositories import counter as counter_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.services import counters

from .factories import build_leave_type_create, build_user_create


@pytest.mark.anyio("asyncio")
async def test_get_or_create_is_the_single_creation_path(session: AsyncSession, educator: User) -> None:
    key = counters.annual_key(educator.id, 2026)

    first = await counters.get_or_create(session, key)
    second = await counters.get_or_create(session, key)

    assert first.id == second.id
    assert first.allocated == 258
    assert first.remaining == 258
    assert first.period == "2026"
    assert first.category == ""
    records = await counter_repo.list_counters(session, educator.id, CounterKind.ANNUAL_DAYS)
    assert len(records) == 1


@pytest.mark.anyio("asyncio")
async def test_consumption_never_goes_negative(session: AsyncSession, educator: User) -> None:
    key = counters.annual_key(educator.id, 2026)
    counter = await counters.get_or_create(session, key)

    await counters.decrement(session, key, 3, reference="shift:1")
    assert counter.consumed == 3
    await counters.increment(session, key, 5, reference="shift:1")
    assert counter.consumed == 0
    await counters.increment(session, key, 1)
    assert counter.consumed == 0
    assert counter.remaining == 258

    movements = await counter_repo.list_movements(session, counter.id)
    assert [movement.operation for movement in movements] == ["decrement", "increment", "increment"]
    assert [movement.consumed_after for movement in movements] == [3, 0, 0]
    assert movements[0].reference == "shift:1"


@pytest.mark.anyio("asyncio")
async def test_mutating_a_missing_counter_fails(session: AsyncSession, educator: User) -> None:
    key = counters.annual_key(educator.id, 2031)

    with pytest.raises(NotFoundError):
        await counters.decrement(session, key, 1)
    with pytest.raises(NotFoundError):
        await counters.increment(session, key, 1)
    assert await counters.get_counter(session, key) is None


@pytest.mark.anyio("asyncio")
async def test_negative_days_are_rejected(session: AsyncSession, educator: User) -> None:
    key = counters.annual_key(educator.id, 2026)
    await counters.get_or_create(session, key)

    with pytest.raises(InvalidRequestError):
        await counters.decrement(session, key, -1)


@pytest.mark.anyio("asyncio")
async def test_adjust_changes_remaining_and_keeps_comment(session: AsyncSession, educator: User) -> None:
    key = counters.annual_key(educator.id, 2026)

    counter = await counters.adjust(session, key, -10, comment="Part-time contract")

    assert counter.adjustment == -10
    assert counter.adjustment_comment == "Part-time contract"
    assert counter.remaining == 248
    movements = await counter_repo.list_movements(session, counter.id)
    assert [movement.operation for movement in movements] == ["adjust"]


@pytest.mark.anyio("asyncio")
async def test_roll_carries_the_previous_season_balance(session: AsyncSession, educator: User) -> None:
    leave_type = await absence_repo.create_absence_type(session, build_leave_type_create())
    current_key = counters.leave_key(educator.id, leave_type, date(2025, 7, 1))
    assert current_key.period == "2025-2026"

    current = await counters.get_or_create(session, current_key)
    await counters.decrement(session, current_key, 5)
    assert current.remaining == 20

    next_key = counters.CounterKey(educator.id, CounterKind.LEAVE, "2026-2027", leave_type.code)
    rolled = await counters.roll_to_new_period(session, next_key)

    assert rolled.opening_balance == 20
    assert rolled.allocated == 25
    assert rolled.remaining == 45

    with pytest.raises(ConflictError):
        await counters.roll_to_new_period(session, next_key)


@pytest.mark.anyio("asyncio")
async def test_only_seasonal_counters_roll(session: AsyncSession, educator: User) -> None:
    with pytest.raises(InvalidRequestError):
        await counters.roll_to_new_period(session, counters.annual_key(educator.id, 2027))


def test_season_period_boundaries() -> None:
    assert counters.season_period(date(2025, 6, 1)) == "2025-2026"
    assert counters.season_period(date(2026, 5, 31)) == "2025-2026"
    assert counters.season_period(date(2026, 6, 1)) == "2026-2027"
    assert counters.shift_season("2025-2026", -1) == "2024-2025"
    assert counters.leave_periods_for_year(2026) == ["2026", "2026-2027"]


def test_monthly_accrual_is_prorated_from_the_hire_date() -> None:
    assert counters.monthly_accrual(2026, 1, None) == 2.5
    assert counters.monthly_accrual(2026, 1, date(2025, 9, 1)) == 2.5
    assert counters.monthly_accrual(2026, 1, date(2026, 1, 1)) == 2.5
    assert counters.monthly_accrual(2026, 1, date(2026, 1, 17)) == 1.21
    assert counters.monthly_accrual(2026, 1, date(2026, 2, 2)) == 0


@pytest.mark.anyio("asyncio")
async def test_monthly_credit_is_applied_once_per_month(session: AsyncSession, educator: User) -> None:
    leave_type = await absence_repo.create_absence_type(session, build_leave_type_create())

    assert await counters.credit_monthly(session, educator, leave_type, 2026, 1) == 2.5
    assert await counters.credit_monthly(session, educator, leave_type, 2026, 1) == 0
    assert await counters.credit_monthly(session, educator, leave_type, 2026, 2) == 2.5

    counter = await counters.get_counter(session, counters.leave_key(educator.id, leave_type, date(2026, 1, 1)))
    assert counter.allocated == 30
    movements = await counter_repo.list_movements(session, counter.id)
    assert [(movement.operation, movement.reference) for movement in movements] == [
        ("credit", "accrual 2026-01"),
        ("credit", "accrual 2026-02"),
    ]


@pytest.mark.anyio("asyncio")
async def test_monthly_credit_requires_known_type_and_user(session: AsyncSession, educator: User) -> None:
    with pytest.raises(NotFoundError):
        await counters.credit_monthly_for_all(session, "CP", 2026, 1)
    await absence_repo.create_absence_type(session, build_leave_type_create())
    with pytest.raises(NotFoundError):
        await counters.credit_monthly_for_all(session, "CP", 2026, 1, user_id=educator.id + 100)

    assert await counters.credit_monthly_for_all(session, "CP", 2026, 1) == {educator.id: 2.5}


@pytest.mark.anyio("asyncio")
async def test_year_reset_skips_existing_counters_and_future_hires(session: AsyncSession, educator: User) -> None:
    future_hire = await villa_repo.create_user(
        session,
        build_user_create(
            first_name="Bruno", last_name="Martin", email="b.martin@example.org", hired_on=date(2027, 2, 1)
        ),
    )
    await counters.adjust(session, counters.annual_key(educator.id, 2026), -4)

    reset = await counters.reset_annual_counters(session, 2026)

    assert (reset.created, reset.skipped) == ([], [educator.id])
    assert await counters.get_counter(session, counters.annual_key(future_hire.id, 2026)) is None
    assert (await counters.get_counter(session, counters.annual_key(educator.id, 2026))).remaining == 254

    reset = await counters.reset_annual_counters(session, 2027)
    assert reset.created == [educator.id, future_hire.id]


@pytest.mark.anyio("asyncio")
async def test_opening_an_annual_counter_twice_conflicts(session: AsyncSession, educator: User) -> None:
    counter = await counters.open_annual_counter(session, educator.id, 2026)
    assert counter.allocated == 258

    with pytest.raises(ConflictError):
        await counters.open_annual_counter(session, educator.id, 2026)
