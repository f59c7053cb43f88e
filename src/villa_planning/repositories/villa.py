from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.planning import PlanningMonth, Shift
from villa_planning.db.models.villa import User, Villa
from villa_planning.schemas.villa import UserCreate, VillaCreate


async def list_villas(session: AsyncSession) -> list[Villa]:
    result = await session.execute(select(Villa).order_by(Villa.name))
    return list(result.scalars().all())


async def get_villa(session: AsyncSession, villa_id: int) -> Villa | None:
    return await session.get(Villa, villa_id)


async def get_villa_by_name(session: AsyncSession, name: str) -> Villa | None:
    result = await session.execute(select(Villa).where(Villa.name == name))
    return result.scalars().first()


async def get_villas_by_ids(session: AsyncSession, villa_ids: set[int]) -> dict[int, Villa]:
    if not villa_ids:
        return {}
    result = await session.execute(select(Villa).where(Villa.id.in_(villa_ids)))
    return {villa.id: villa for villa in result.scalars().all()}


async def create_villa(session: AsyncSession, payload: VillaCreate) -> Villa:
    villa = Villa(**payload.model_dump())
    session.add(villa)
    await session.flush()
    await session.refresh(villa)
    return villa


async def count_villa_dependencies(session: AsyncSession, villa_id: int) -> tuple[int, int]:
    """Return the number of shifts and users attached to a villa."""

    shifts = await session.scalar(select(func.count(Shift.id)).where(Shift.villa_id == villa_id))
    users = await session.scalar(select(func.count(User.id)).where(User.villa_id == villa_id))
    return shifts or 0, users or 0


async def delete_villa(session: AsyncSession, villa: Villa) -> None:
    await session.execute(delete(PlanningMonth).where(PlanningMonth.villa_id == villa.id))
    await session.delete(villa)


async def list_users(session: AsyncSession, *, villa_id: int | None = None) -> list[User]:
    query = select(User).order_by(User.last_name, User.first_name)
    if villa_id is not None:
        query = query.where(User.villa_id == villa_id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_user(session: AsyncSession, user_id: int) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def get_users_by_ids(session: AsyncSession, user_ids: set[int]) -> dict[int, User]:
    if not user_ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(user_ids)))
    return {user.id: user for user in result.scalars().all()}


async def create_user(session: AsyncSession, payload: UserCreate) -> User:
    user = User(**payload.model_dump())
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user
