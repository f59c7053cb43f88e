"""Per-user, per-period day counters.

Consumption only changes through :func:`decrement` and :func:`increment`;
administrative corrections go through :func:`adjust` and earned leave through
:func:`credit_monthly`. Counters are only opened on these mutation paths. Each
mutation locks the counter row, bumps its version and leaves a
:class:`CounterMovement` behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.config import get_settings
from villa_planning.core.errors import ConflictError, InvalidRequestError, NotFoundError
from villa_planning.db.models.absence import AbsenceType
from villa_planning.db.models.counter import CounterKind, DayCounter
from villa_planning.db.models.villa import User
from villa_planning.repositories import absence as absence_repo
from villa_planning.repositories import counter as counter_repo
from villa_planning.repositories import planning as planning_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.services.dates import month_bounds

logger = logging.getLogger(__name__)

# Leave seasons run from June 1st to May 31st.
SEASON_START_MONTH = 6


@dataclass(frozen=True)
class CounterKey:
    user_id: int
    kind: CounterKind
    period: str
    category: str = ""

    @property
    def is_seasonal(self) -> bool:
        return "-" in self.period

    def describe(self) -> str:
        label = f"{self.kind.value}:{self.category}" if self.category else self.kind.value
        return f"{label} {self.period} of user #{self.user_id}"


def season_period(day: date) -> str:
    start_year = day.year if day.month >= SEASON_START_MONTH else day.year - 1
    return f"{start_year}-{start_year + 1}"


def shift_season(period: str, offset: int) -> str:
    start_year = int(period.split("-", 1)[0]) + offset
    return f"{start_year}-{start_year + 1}"


def annual_key(user_id: int, year: int) -> CounterKey:
    return CounterKey(user_id=user_id, kind=CounterKind.ANNUAL_DAYS, period=str(year))


def leave_key(user_id: int, absence_type: AbsenceType, on_date: date) -> CounterKey:
    period = season_period(on_date) if absence_type.seasonal else str(on_date.year)
    return CounterKey(user_id=user_id, kind=CounterKind.LEAVE, period=period, category=absence_type.code)


def leave_periods_for_year(year: int) -> list[str]:
    """Periods reported for *year*: the calendar year and the season starting in it."""

    return [str(year), f"{year}-{year + 1}"]


async def get_counter(session: AsyncSession, key: CounterKey, *, for_update: bool = False) -> DayCounter | None:
    return await counter_repo.get_counter(
        session, key.user_id, key.kind, key.period, key.category, for_update=for_update
    )


async def _require_counter(session: AsyncSession, key: CounterKey) -> DayCounter:
    counter = await get_counter(session, key, for_update=True)
    if counter is None:
        raise NotFoundError(f"No counter for {key.describe()}")
    return counter


async def _allocation_for(session: AsyncSession, key: CounterKey) -> float:
    if key.kind is CounterKind.ANNUAL_DAYS:
        return get_settings().annual_day_allocation
    absence_type = await absence_repo.get_absence_type_by_code(session, key.category)
    if absence_type is None:
        raise NotFoundError(f"Absence type {key.category} not found")
    return absence_type.default_allocation


async def _opening_balance_for(session: AsyncSession, key: CounterKey) -> float:
    if not key.is_seasonal:
        return 0.0
    previous_key = CounterKey(key.user_id, key.kind, shift_season(key.period, -1), key.category)
    previous = await get_counter(session, previous_key)
    return previous.remaining if previous is not None else 0.0


async def expected_opening(session: AsyncSession, key: CounterKey) -> tuple[float, float]:
    """Opening balance and allocation a counter for *key* would start with, without creating it."""

    return await _opening_balance_for(session, key), await _allocation_for(session, key)


async def get_or_create(session: AsyncSession, key: CounterKey) -> DayCounter:
    """Return the counter for *key*, creating it with the period's allocation when missing."""

    counter = await get_counter(session, key)
    if counter is not None:
        return counter

    counter = DayCounter(
        user_id=key.user_id,
        kind=key.kind,
        category=key.category,
        period=key.period,
        opening_balance=await _opening_balance_for(session, key),
        allocated=await _allocation_for(session, key),
        consumed=0.0,
        adjustment=0.0,
    )
    counter = await counter_repo.add_counter(session, counter)
    logger.info(
        "Opened counter %s (allocated %.2f, opening %.2f)",
        key.describe(),
        counter.allocated,
        counter.opening_balance,
        extra={"counter_id": counter.id},
    )
    return counter


def _ensure_positive(days: float) -> None:
    if days < 0:
        raise InvalidRequestError("Number of days must be positive")


def _record(
    session: AsyncSession,
    counter: DayCounter,
    operation: str,
    days: float,
    before: float,
    reference: str | None,
) -> None:
    counter_repo.add_movement(
        session, counter, operation=operation, days=days, consumed_before=before, reference=reference
    )
    logger.info(
        "Counter #%s %s %.2f days: consumed %.2f -> %.2f, remaining %.2f",
        counter.id,
        operation,
        days,
        before,
        counter.consumed,
        counter.remaining,
        extra={"counter_id": counter.id, "reference": reference},
    )


async def decrement(
    session: AsyncSession, key: CounterKey, days: float, *, reference: str | None = None
) -> DayCounter:
    """Consume *days* from the counter identified by *key*."""

    _ensure_positive(days)
    counter = await _require_counter(session, key)
    before = counter.consumed
    counter.consumed = before + days
    _record(session, counter, "decrement", days, before, reference)
    return counter


async def increment(
    session: AsyncSession, key: CounterKey, days: float, *, reference: str | None = None
) -> DayCounter:
    """Give *days* back; consumption never drops below zero."""

    _ensure_positive(days)
    counter = await _require_counter(session, key)
    before = counter.consumed
    counter.consumed = max(0.0, before - days)
    _record(session, counter, "increment", days, before, reference)
    return counter


async def adjust(session: AsyncSession, key: CounterKey, delta: float, *, comment: str | None = None) -> DayCounter:
    await get_or_create(session, key)
    counter = await _require_counter(session, key)
    counter.adjustment = counter.adjustment + delta
    counter.adjustment_comment = comment
    _record(session, counter, "adjust", delta, counter.consumed, comment)
    return counter


async def roll_to_new_period(session: AsyncSession, key: CounterKey) -> DayCounter:
    """Open the seasonal counter *key*, carrying the previous season's remaining balance."""

    if not key.is_seasonal:
        raise InvalidRequestError("Only seasonal counters can be rolled to a new period")
    if await get_counter(session, key) is not None:
        raise ConflictError(f"Counter {key.describe()} already exists")
    return await get_or_create(session, key)


async def open_annual_counter(session: AsyncSession, user_id: int, year: int) -> DayCounter:
    key = annual_key(user_id, year)
    if await get_counter(session, key) is not None:
        raise ConflictError(f"Counter {key.describe()} already exists")
    return await get_or_create(session, key)


@dataclass
class YearReset:
    year: int
    created: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


async def reset_annual_counters(session: AsyncSession, year: int) -> YearReset:
    """Open the annual counter of *year* for every user employed by then.

    Counters are never prorated and existing ones are left untouched.
    """

    result = YearReset(year=year)
    for user in await villa_repo.list_users(session):
        if user.hired_on is not None and user.hired_on.year > year:
            continue
        key = annual_key(user.id, year)
        if await get_counter(session, key) is not None:
            result.skipped.append(user.id)
            continue
        await get_or_create(session, key)
        result.created.append(user.id)
    logger.info(
        "Annual counters for %d: %d opened, %d already present", year, len(result.created), len(result.skipped)
    )
    return result


def monthly_accrual(year: int, month: int, hired_on: date | None) -> float:
    """Leave days earned in a month, prorated when the user was hired during it."""

    first_day, last_day = month_bounds(year, month)
    if hired_on is None or hired_on < first_day:
        ratio = 1.0
    elif hired_on > last_day:
        ratio = 0.0
    else:
        ratio = (last_day.day - hired_on.day + 1) / last_day.day
    return round(get_settings().monthly_leave_accrual * ratio, 2)


async def credit_monthly(
    session: AsyncSession, user: User, absence_type: AbsenceType, year: int, month: int
) -> float:
    """Credit the leave earned by *user* in the given month; a month is credited at most once."""

    days = monthly_accrual(year, month, user.hired_on)
    if days <= 0:
        return 0.0

    key = leave_key(user.id, absence_type, date(year, month, 1))
    reference = f"accrual {year}-{month:02d}"
    await get_or_create(session, key)
    counter = await _require_counter(session, key)
    if await counter_repo.has_movement(session, counter.id, "credit", reference):
        logger.info("Counter #%s was already credited for %d-%02d", counter.id, year, month)
        return 0.0

    counter.allocated = counter.allocated + days
    _record(session, counter, "credit", days, counter.consumed, reference)
    return days


async def credit_monthly_for_all(
    session: AsyncSession, absence_type_code: str, year: int, month: int, *, user_id: int | None = None
) -> dict[int, float]:
    absence_type = await absence_repo.get_absence_type_by_code(session, absence_type_code)
    if absence_type is None:
        raise NotFoundError(f"Absence type {absence_type_code} not found")
    if user_id is not None:
        user = await villa_repo.get_user(session, user_id)
        if user is None:
            raise NotFoundError(f"User #{user_id} not found")
        users = [user]
    else:
        users = await villa_repo.list_users(session)

    credited = {user.id: await credit_monthly(session, user, absence_type, year, month) for user in users}
    logger.info(
        "Credited %s leave for %d-%02d: %.2f day(s) over %d user(s)",
        absence_type_code,
        year,
        month,
        sum(credited.values()),
        len(credited),
    )
    return credited


async def projected_annual_balance(session: AsyncSession, user_id: int, year: int) -> float | None:
    """Remaining annual days once every assigned, not yet deducted shift of *year* is deducted.

    Returns ``None`` when the user has no annual counter for *year*.
    """

    counter = await get_counter(session, annual_key(user_id, year))
    if counter is None:
        return None
    pending = await planning_repo.sum_pending_working_days(session, user_id, year)
    return counter.remaining - pending
