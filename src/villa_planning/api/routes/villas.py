from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.session import get_db_session
from villa_planning.repositories import villa as villa_repo
from villa_planning.schemas.villa import UserCreate, UserRead, VillaCreate, VillaRead

router = APIRouter()


@router.get("/villas", response_model=list[VillaRead])
async def list_villas(session: Annotated[AsyncSession, Depends(get_db_session)]) -> list[VillaRead]:
    villas = await villa_repo.list_villas(session)
    return [VillaRead.model_validate(villa) for villa in villas]


@router.post("/villas", response_model=VillaRead, status_code=status.HTTP_201_CREATED)
async def create_villa(
    payload: VillaCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> VillaRead:
    if await villa_repo.get_villa_by_name(session, payload.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A villa with this name already exists")
    villa = await villa_repo.create_villa(session, payload)
    await session.commit()
    return VillaRead.model_validate(villa)


@router.get("/villas/{villa_id}", response_model=VillaRead)
async def get_villa(villa_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]) -> VillaRead:
    villa = await villa_repo.get_villa(session, villa_id)
    if not villa:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Villa not found")
    return VillaRead.model_validate(villa)


@router.delete("/villas/{villa_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_villa(villa_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]) -> Response:
    villa = await villa_repo.get_villa(session, villa_id)
    if not villa:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Villa not found")
    shifts, users = await villa_repo.count_villa_dependencies(session, villa_id)
    if shifts or users:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Villa is still referenced by {shifts} shift(s) and {users} user(s)",
        )
    await villa_repo.delete_villa(session, villa)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users", response_model=list[UserRead])
async def list_users(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    villa_id: Annotated[int | None, Query(alias="villaId")] = None,
) -> list[UserRead]:
    users = await villa_repo.list_users(session, villa_id=villa_id)
    return [UserRead.model_validate(user) for user in users]


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, session: Annotated[AsyncSession, Depends(get_db_session)]) -> UserRead:
    if payload.villa_id is not None and not await villa_repo.get_villa(session, payload.villa_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Villa not found")
    if await villa_repo.get_user_by_email(session, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")
    user = await villa_repo.create_user(session, payload)
    await session.commit()
    return UserRead.model_validate(user)


@router.get("/users/{user_id}", response_model=UserRead)
async def get_user(user_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]) -> UserRead:
    user = await villa_repo.get_user(session, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserRead.model_validate(user)
