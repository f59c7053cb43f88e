from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.counter import CounterKind, CounterMovement, DayCounter


async def get_counter(
    session: AsyncSession,
    user_id: int,
    kind: CounterKind,
    period: str,
    category: str = "",
    *,
    for_update: bool = False,
) -> DayCounter | None:
    query = (
        select(DayCounter)
        .where(DayCounter.user_id == user_id)
        .where(DayCounter.kind == kind)
        .where(DayCounter.category == category)
        .where(DayCounter.period == period)
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalars().first()


async def list_counters(
    session: AsyncSession, user_id: int, kind: CounterKind, periods: list[str] | None = None
) -> list[DayCounter]:
    query = (
        select(DayCounter)
        .where(DayCounter.user_id == user_id)
        .where(DayCounter.kind == kind)
        .order_by(DayCounter.period, DayCounter.category)
    )
    if periods is not None:
        query = query.where(DayCounter.period.in_(periods))
    result = await session.execute(query)
    return list(result.scalars().all())


async def add_counter(session: AsyncSession, counter: DayCounter) -> DayCounter:
    session.add(counter)
    await session.flush()
    await session.refresh(counter)
    return counter


def add_movement(
    session: AsyncSession,
    counter: DayCounter,
    *,
    operation: str,
    days: float,
    consumed_before: float,
    reference: str | None,
) -> CounterMovement:
    movement = CounterMovement(
        counter_id=counter.id,
        operation=operation,
        days=days,
        consumed_before=consumed_before,
        consumed_after=counter.consumed,
        reference=reference,
    )
    session.add(movement)
    return movement


async def list_movements(session: AsyncSession, counter_id: int) -> list[CounterMovement]:
    result = await session.execute(
        select(CounterMovement).where(CounterMovement.counter_id == counter_id).order_by(CounterMovement.id)
    )
    return list(result.scalars().all())


async def get_counter_by_id(session: AsyncSession, counter_id: int) -> DayCounter | None:
    return await session.get(DayCounter, counter_id)


async def has_movement(session: AsyncSession, counter_id: int, operation: str, reference: str) -> bool:
    movement_id = await session.scalar(
        select(CounterMovement.id)
        .where(CounterMovement.counter_id == counter_id)
        .where(CounterMovement.operation == operation)
        .where(CounterMovement.reference == reference)
        .limit(1)
    )
    return movement_id is not None
