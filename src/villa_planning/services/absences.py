"""Absence requests and the leave counters they draw from."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import ConflictError, InvalidRequestError, NotFoundError
from villa_planning.db.models.absence import Absence, AbsenceStatus, AbsenceType
from villa_planning.db.models.counter import CounterKind, DayCounter
from villa_planning.repositories import absence as absence_repo
from villa_planning.repositories import counter as counter_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.schemas.absence import AbsenceCreate
from villa_planning.services import counters
from villa_planning.services.dates import count_absence_days

logger = logging.getLogger(__name__)

ABSENCE_TRANSITIONS: dict[AbsenceStatus, frozenset[AbsenceStatus]] = {
    AbsenceStatus.PENDING: frozenset({AbsenceStatus.APPROVED, AbsenceStatus.REFUSED, AbsenceStatus.CANCELLED}),
    AbsenceStatus.APPROVED: frozenset({AbsenceStatus.CANCELLED}),
    AbsenceStatus.REFUSED: frozenset(),
    AbsenceStatus.CANCELLED: frozenset(),
}


@dataclass
class BalanceCheck:
    has_counter: bool
    deducts: bool
    working_days: float
    earned: float = 0
    taken: float = 0
    remaining: float = 0

    @property
    def has_sufficient_balance(self) -> bool:
        return not self.deducts or self.remaining >= self.working_days

    @property
    def deficit(self) -> float:
        if not self.deducts:
            return 0.0
        return max(0.0, self.working_days - self.remaining)


async def _require_type(session: AsyncSession, absence_type_id: int) -> AbsenceType:
    absence_type = await absence_repo.get_absence_type(session, absence_type_id)
    if absence_type is None:
        raise NotFoundError(f"Absence type #{absence_type_id} not found")
    return absence_type


async def get_absence_or_raise(session: AsyncSession, absence_id: int) -> Absence:
    absence = await absence_repo.get_absence(session, absence_id)
    if absence is None:
        raise NotFoundError(f"Absence #{absence_id} not found")
    return absence


def _transition(absence: Absence, target: AbsenceStatus) -> None:
    if target not in ABSENCE_TRANSITIONS[absence.status]:
        raise ConflictError(f"Absence #{absence.id} cannot move from {absence.status.value} to {target.value}")
    absence.status = target


async def create_absence(session: AsyncSession, payload: AbsenceCreate) -> Absence:
    if payload.end_date < payload.start_date:
        raise InvalidRequestError("endDate must not be before startDate")
    if await villa_repo.get_user(session, payload.user_id) is None:
        raise NotFoundError(f"User #{payload.user_id} not found")
    absence_type = await _require_type(session, payload.absence_type_id)

    return await absence_repo.add_absence(
        session,
        Absence(
            user_id=payload.user_id,
            absence_type_id=absence_type.id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            status=AbsenceStatus.PENDING,
            deducts_from_counter=absence_type.deducts_from_counter,
            working_days=count_absence_days(payload.start_date, payload.end_date),
            reason=payload.reason,
        ),
    )


async def approve_absence(session: AsyncSession, absence: Absence) -> Absence:
    _transition(absence, AbsenceStatus.APPROVED)
    if absence.deducts_from_counter and absence.working_days > 0:
        absence_type = await _require_type(session, absence.absence_type_id)
        key = counters.leave_key(absence.user_id, absence_type, absence.start_date)
        await counters.get_or_create(session, key)
        await counters.decrement(session, key, absence.working_days, reference=f"absence:{absence.id}")
        absence.deducted = True
    logger.info("Absence #%s approved for user #%s", absence.id, absence.user_id)
    return absence


async def refuse_absence(session: AsyncSession, absence: Absence) -> Absence:
    _transition(absence, AbsenceStatus.REFUSED)
    return absence


async def cancel_absence(session: AsyncSession, absence: Absence) -> Absence:
    _transition(absence, AbsenceStatus.CANCELLED)
    if absence.deducted:
        absence_type = await _require_type(session, absence.absence_type_id)
        key = counters.leave_key(absence.user_id, absence_type, absence.start_date)
        await counters.increment(session, key, absence.working_days, reference=f"absence:{absence.id}")
        absence.deducted = False
    logger.info("Absence #%s cancelled for user #%s", absence.id, absence.user_id)
    return absence


async def check_balance(
    session: AsyncSession,
    user_id: int,
    absence_type_id: int,
    *,
    working_days: float | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> BalanceCheck:
    """Tell whether *user_id* can take *working_days* (or the given date range) of this absence type."""

    if await villa_repo.get_user(session, user_id) is None:
        raise NotFoundError(f"User #{user_id} not found")
    absence_type = await _require_type(session, absence_type_id)
    if working_days is None:
        if end_date < start_date:
            raise InvalidRequestError("endDate must not be before startDate")
        working_days = count_absence_days(start_date, end_date)

    if not absence_type.deducts_from_counter:
        return BalanceCheck(has_counter=False, deducts=False, working_days=working_days)

    key = counters.leave_key(user_id, absence_type, start_date or date.today())
    counter = await counters.get_counter(session, key)
    if counter is None:
        opening, allocated = await counters.expected_opening(session, key)
        return BalanceCheck(
            has_counter=False,
            deducts=True,
            working_days=working_days,
            earned=opening + allocated,
            remaining=opening + allocated,
        )
    return BalanceCheck(
        has_counter=True,
        deducts=True,
        working_days=working_days,
        earned=counter.opening_balance + counter.allocated + counter.adjustment,
        taken=counter.consumed,
        remaining=counter.remaining,
    )


async def list_leave_counters(
    session: AsyncSession, user_id: int, year: int
) -> list[tuple[DayCounter, AbsenceType | None]]:
    if await villa_repo.get_user(session, user_id) is None:
        raise NotFoundError(f"User #{user_id} not found")
    records = await counter_repo.list_counters(
        session, user_id, CounterKind.LEAVE, counters.leave_periods_for_year(year)
    )
    types = {absence_type.code: absence_type for absence_type in await absence_repo.list_absence_types(session)}
    return [(counter, types.get(counter.category)) for counter in records]
