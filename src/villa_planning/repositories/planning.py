from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.planning import (
    MonthStatus,
    PlanningMonth,
    PlanningPublication,
    Shift,
    ShiftStatus,
)


async def get_planning_month(session: AsyncSession, planning_id: int) -> PlanningMonth | None:
    return await session.get(PlanningMonth, planning_id)


async def lock_planning_month(session: AsyncSession, planning_id: int) -> PlanningMonth | None:
    """Load a month schedule with a row lock held until the transaction ends."""

    result = await session.execute(
        select(PlanningMonth)
        .where(PlanningMonth.id == planning_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def find_planning_month(
    session: AsyncSession, villa_id: int | None, year: int, month: int
) -> PlanningMonth | None:
    villa_clause = PlanningMonth.villa_id.is_(None) if villa_id is None else PlanningMonth.villa_id == villa_id
    result = await session.execute(
        select(PlanningMonth)
        .where(villa_clause)
        .where(PlanningMonth.year == year)
        .where(PlanningMonth.month == month)
    )
    return result.scalars().first()


async def get_or_create_planning_month(
    session: AsyncSession, villa_id: int | None, year: int, month: int
) -> tuple[PlanningMonth, bool]:
    planning = await find_planning_month(session, villa_id, year, month)
    if planning:
        return planning, False

    planning = PlanningMonth(villa_id=villa_id, year=year, month=month, status=MonthStatus.DRAFT)
    session.add(planning)
    await session.flush()
    await session.refresh(planning)
    return planning, True


async def list_planning_months(session: AsyncSession, year: int, month: int) -> list[PlanningMonth]:
    result = await session.execute(
        select(PlanningMonth)
        .where(PlanningMonth.year == year)
        .where(PlanningMonth.month == month)
        .order_by(PlanningMonth.villa_id)
    )
    return list(result.scalars().all())


async def get_shift(session: AsyncSession, shift_id: int) -> Shift | None:
    return await session.get(Shift, shift_id)


async def list_shifts_for_month(session: AsyncSession, planning_id: int) -> list[Shift]:
    result = await session.execute(
        select(Shift).where(Shift.planning_month_id == planning_id).order_by(Shift.start_at, Shift.id)
    )
    return list(result.scalars().all())


async def list_shifts_for_months(session: AsyncSession, planning_ids: list[int]) -> list[Shift]:
    if not planning_ids:
        return []
    result = await session.execute(
        select(Shift).where(Shift.planning_month_id.in_(planning_ids)).order_by(Shift.start_at, Shift.id)
    )
    return list(result.scalars().all())


async def find_overlapping_shifts(
    session: AsyncSession,
    user_id: int,
    start: datetime,
    end: datetime,
    *,
    exclude_shift_id: int | None = None,
) -> list[Shift]:
    """Return the non-cancelled shifts assigned to *user_id* that overlap ``[start, end)``."""

    query = (
        select(Shift)
        .where(Shift.user_id == user_id)
        .where(Shift.status != ShiftStatus.CANCELLED)
        .where(Shift.start_at < end)
        .where(Shift.end_at > start)
        .order_by(Shift.start_at)
    )
    if exclude_shift_id is not None:
        query = query.where(Shift.id != exclude_shift_id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def find_template_slot_keys(
    session: AsyncSession, template_id: int, villa_id: int | None, slot_keys: list[str]
) -> set[str]:
    """Return which of *slot_keys* were already generated from a template for a villa."""

    if not slot_keys:
        return set()
    villa_clause = Shift.villa_id.is_(None) if villa_id is None else Shift.villa_id == villa_id
    result = await session.execute(
        select(Shift.template_slot)
        .where(Shift.template_id == template_id)
        .where(villa_clause)
        .where(Shift.template_slot.in_(slot_keys))
    )
    return set(result.scalars().all())


async def sum_pending_working_days(session: AsyncSession, user_id: int, year: int) -> int:
    """Working days of assigned shifts starting in *year* that were not deducted yet."""

    total = await session.scalar(
        select(func.coalesce(func.sum(Shift.working_days), 0))
        .where(Shift.user_id == user_id)
        .where(Shift.status != ShiftStatus.CANCELLED)
        .where(Shift.deducted_days.is_(None))
        .where(Shift.start_at >= datetime(year, 1, 1))
        .where(Shift.start_at < datetime(year + 1, 1, 1))
    )
    return int(total or 0)


async def add_shift(session: AsyncSession, shift: Shift) -> Shift:
    session.add(shift)
    await session.flush()
    await session.refresh(shift)
    return shift


async def delete_shift(session: AsyncSession, shift: Shift) -> None:
    await session.delete(shift)


async def delete_draft_shifts(
    session: AsyncSession, year: int, month: int | None = None, villa_id: int | None = None
) -> int:
    planning_query = (
        select(PlanningMonth.id)
        .where(PlanningMonth.year == year)
        .where(PlanningMonth.status != MonthStatus.PUBLISHED)
    )
    if month is not None:
        planning_query = planning_query.where(PlanningMonth.month == month)
    if villa_id is not None:
        planning_query = planning_query.where(PlanningMonth.villa_id == villa_id)

    result = await session.execute(
        delete(Shift)
        .where(Shift.planning_month_id.in_(planning_query))
        .where(Shift.status == ShiftStatus.DRAFT)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def create_publication(
    session: AsyncSession,
    planning: PlanningMonth,
    *,
    published_by: str | None,
    deducted_shifts: int,
    deducted_days: float,
    warnings: list[dict],
    failures: list[dict],
) -> PlanningPublication:
    publication = PlanningPublication(
        planning_month_id=planning.id,
        published_at=planning.published_at or datetime.now(),
        published_by=published_by,
        deducted_shifts=deducted_shifts,
        deducted_days=deducted_days,
        warnings=warnings,
        failures=failures,
    )
    session.add(publication)
    await session.flush()
    await session.refresh(publication)
    return publication


async def list_publications(session: AsyncSession, planning_id: int) -> list[PlanningPublication]:
    result = await session.execute(
        select(PlanningPublication)
        .where(PlanningPublication.planning_month_id == planning_id)
        .order_by(PlanningPublication.published_at.desc(), PlanningPublication.id.desc())
    )
    return list(result.scalars().all())
