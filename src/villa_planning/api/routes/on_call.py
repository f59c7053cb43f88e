from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.session import get_db_session
from villa_planning.repositories import on_call as on_call_repo
from villa_planning.schemas.on_call import (
    OnCallAssign,
    OnCallCreate,
    OnCallGenerateRequest,
    OnCallGenerateResponse,
    OnCallRead,
)
from villa_planning.services import on_call as on_call_service
from villa_planning.services.dates import day_range

router = APIRouter()


@router.get("/", response_model=list[OnCallRead])
async def list_on_call(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
) -> list[OnCallRead]:
    start = day_range(start_date, start_date)[0] if start_date else None
    end = day_range(end_date, end_date)[1] if end_date else None
    periods = await on_call_repo.list_on_call(session, start=start, end=end)
    return [OnCallRead.model_validate(period) for period in periods]


@router.post("/", response_model=OnCallRead, status_code=status.HTTP_201_CREATED)
async def create_on_call(
    payload: OnCallCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> OnCallRead:
    period = await on_call_service.create_on_call(
        session, payload.start_at, payload.end_at, user_id=payload.user_id, comment=payload.comment
    )
    await session.commit()
    return OnCallRead.model_validate(period)


@router.post("/generate", response_model=OnCallGenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_on_call(
    payload: OnCallGenerateRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> OnCallGenerateResponse:
    created = await on_call_service.generate_month(session, payload.year, payload.month)
    await session.commit()
    return OnCallGenerateResponse(
        created=len(created), items=[OnCallRead.model_validate(period) for period in created]
    )


@router.put("/{on_call_id}/assign", response_model=OnCallRead)
async def assign_on_call(
    on_call_id: int,
    payload: OnCallAssign,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> OnCallRead:
    period = await on_call_service.get_on_call_or_raise(session, on_call_id)
    period = await on_call_service.assign_on_call(session, period, payload.user_id)
    await session.commit()
    return OnCallRead.model_validate(period)


@router.delete("/{on_call_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_on_call(on_call_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]) -> Response:
    period = await on_call_service.get_on_call_or_raise(session, on_call_id)
    await on_call_repo.delete_on_call(session, period)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
