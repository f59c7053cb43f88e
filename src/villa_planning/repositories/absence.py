from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.absence import Absence, AbsenceStatus, AbsenceType
from villa_planning.schemas.absence import AbsenceTypeCreate


async def list_absence_types(session: AsyncSession) -> list[AbsenceType]:
    result = await session.execute(select(AbsenceType).order_by(AbsenceType.code))
    return list(result.scalars().all())


async def get_absence_type(session: AsyncSession, absence_type_id: int) -> AbsenceType | None:
    return await session.get(AbsenceType, absence_type_id)


async def get_absence_type_by_code(session: AsyncSession, code: str) -> AbsenceType | None:
    result = await session.execute(select(AbsenceType).where(AbsenceType.code == code))
    return result.scalars().first()


async def create_absence_type(session: AsyncSession, payload: AbsenceTypeCreate) -> AbsenceType:
    absence_type = AbsenceType(**payload.model_dump())
    session.add(absence_type)
    await session.flush()
    await session.refresh(absence_type)
    return absence_type


async def get_absence(session: AsyncSession, absence_id: int) -> Absence | None:
    return await session.get(Absence, absence_id)


async def list_absences(
    session: AsyncSession, *, user_id: int | None = None, status: AbsenceStatus | None = None
) -> list[Absence]:
    query = select(Absence).order_by(Absence.start_date)
    if user_id is not None:
        query = query.where(Absence.user_id == user_id)
    if status is not None:
        query = query.where(Absence.status == status)
    result = await session.execute(query)
    return list(result.scalars().all())


async def add_absence(session: AsyncSession, absence: Absence) -> Absence:
    session.add(absence)
    await session.flush()
    await session.refresh(absence)
    return absence


async def find_approved_absences_in_range(
    session: AsyncSession, user_id: int, start: date, end: date
) -> list[tuple[Absence, AbsenceType]]:
    """Return approved absences of *user_id* whose dates intersect ``[start, end]``."""

    result = await session.execute(
        select(Absence, AbsenceType)
        .join(AbsenceType, Absence.absence_type_id == AbsenceType.id)
        .where(Absence.user_id == user_id)
        .where(Absence.status == AbsenceStatus.APPROVED)
        .where(Absence.start_date <= end)
        .where(Absence.end_date >= start)
        .order_by(Absence.start_date)
    )
    return [(row.Absence, row.AbsenceType) for row in result]
