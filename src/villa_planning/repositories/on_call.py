from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.on_call import OnCallDuty


async def list_on_call(
    session: AsyncSession, *, start: datetime | None = None, end: datetime | None = None
) -> list[OnCallDuty]:
    query = select(OnCallDuty).order_by(OnCallDuty.start_at)
    if start is not None:
        query = query.where(OnCallDuty.end_at > start)
    if end is not None:
        query = query.where(OnCallDuty.start_at < end)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_on_call(session: AsyncSession, on_call_id: int) -> OnCallDuty | None:
    return await session.get(OnCallDuty, on_call_id)


async def add_on_call(session: AsyncSession, on_call: OnCallDuty) -> OnCallDuty:
    session.add(on_call)
    await session.flush()
    await session.refresh(on_call)
    return on_call


async def delete_on_call(session: AsyncSession, on_call: OnCallDuty) -> None:
    await session.delete(on_call)


async def find_overlapping_on_call(
    session: AsyncSession, start: datetime, end: datetime, *, exclude_id: int | None = None
) -> list[OnCallDuty]:
    query = select(OnCallDuty).where(OnCallDuty.start_at < end).where(OnCallDuty.end_at > start)
    if exclude_id is not None:
        query = query.where(OnCallDuty.id != exclude_id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def find_assigned_on_call_in_range(
    session: AsyncSession, user_id: int, start: datetime, end: datetime
) -> list[OnCallDuty]:
    result = await session.execute(
        select(OnCallDuty)
        .where(OnCallDuty.user_id == user_id)
        .where(OnCallDuty.start_at < end)
        .where(OnCallDuty.end_at > start)
        .order_by(OnCallDuty.start_at)
    )
    return list(result.scalars().all())
