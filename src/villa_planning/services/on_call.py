"""Weekly on-call periods; at most one period covers any instant."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import ConflictError, InvalidRequestError, NotFoundError
from villa_planning.db.models.on_call import OnCallDuty
from villa_planning.repositories import on_call as on_call_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.services.dates import iter_week_starts, month_bounds

logger = logging.getLogger(__name__)


def period_label(start_at: datetime) -> str:
    return f"S{start_at.isocalendar()[1]}"


async def get_on_call_or_raise(session: AsyncSession, on_call_id: int) -> OnCallDuty:
    on_call = await on_call_repo.get_on_call(session, on_call_id)
    if on_call is None:
        raise NotFoundError(f"On-call period #{on_call_id} not found")
    return on_call


async def _ensure_user(session: AsyncSession, user_id: int | None) -> None:
    if user_id is not None and await villa_repo.get_user(session, user_id) is None:
        raise NotFoundError(f"User #{user_id} not found")


async def create_on_call(
    session: AsyncSession,
    start_at: datetime,
    end_at: datetime,
    *,
    user_id: int | None = None,
    comment: str | None = None,
) -> OnCallDuty:
    if start_at >= end_at:
        raise InvalidRequestError("startAt must be before endAt")
    await _ensure_user(session, user_id)
    if await on_call_repo.find_overlapping_on_call(session, start_at, end_at):
        raise ConflictError("This period overlaps an existing on-call period")
    return await on_call_repo.add_on_call(
        session,
        OnCallDuty(
            start_at=start_at,
            end_at=end_at,
            user_id=user_id,
            period_label=period_label(start_at),
            comment=comment,
        ),
    )


async def assign_on_call(session: AsyncSession, on_call: OnCallDuty, user_id: int | None) -> OnCallDuty:
    """Set the assignee; handing the period from one user to another counts as a replacement."""

    await _ensure_user(session, user_id)
    previous = on_call.user_id
    if previous is not None and user_id is not None and previous != user_id:
        on_call.replacement_count += 1
    on_call.user_id = user_id
    logger.info("On-call #%s assigned to %s (was %s)", on_call.id, user_id, previous)
    return on_call


async def generate_month(session: AsyncSession, year: int, month: int) -> list[OnCallDuty]:
    """Create Monday-to-Monday periods covering the month, skipping weeks already covered."""

    first_day, last_day = month_bounds(year, month)
    created: list[OnCallDuty] = []
    for monday in iter_week_starts(first_day, last_day):
        start_at = datetime.combine(monday, time.min)
        end_at = start_at + timedelta(weeks=1)
        if await on_call_repo.find_overlapping_on_call(session, start_at, end_at):
            continue
        on_call = OnCallDuty(start_at=start_at, end_at=end_at, period_label=period_label(start_at))
        session.add(on_call)
        created.append(on_call)
    await session.flush()
    logger.info("Generated %d on-call period(s) for %04d-%02d", len(created), year, month)
    return created
