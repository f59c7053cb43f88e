from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.counter import CounterKind
from villa_planning.db.session import get_db_session
from villa_planning.repositories import counter as counter_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.schemas.counter import (
    AnnualCounterOpenRequest,
    AnnualResetRequest,
    AnnualResetResponse,
    CounterAdjustRequest,
    CounterMovementRead,
    DayCounterRead,
    LeaveCreditRead,
    LeaveCreditRequest,
    LeaveCreditResponse,
    LeaveRollRequest,
)
from villa_planning.services import counters

router = APIRouter()


async def _require_user(session: AsyncSession, user_id: int) -> None:
    if not await villa_repo.get_user(session, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


@router.post("/annual/reset", response_model=AnnualResetResponse)
async def reset_annual_counters(
    payload: AnnualResetRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AnnualResetResponse:
    result = await counters.reset_annual_counters(session, payload.year)
    await session.commit()
    return AnnualResetResponse(year=result.year, created=result.created, skipped=result.skipped)


@router.get("/annual/{user_id}", response_model=DayCounterRead)
async def get_annual_counter(
    user_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
) -> DayCounterRead:
    await _require_user(session, user_id)
    year = year or date.today().year
    counter = await counters.get_counter(session, counters.annual_key(user_id, year))
    if counter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No annual day counter for {year}")
    return DayCounterRead.model_validate(counter)


@router.post("/annual/{user_id}", response_model=DayCounterRead, status_code=status.HTTP_201_CREATED)
async def open_annual_counter(
    user_id: int,
    payload: AnnualCounterOpenRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> DayCounterRead:
    await _require_user(session, user_id)
    counter = await counters.open_annual_counter(session, user_id, payload.year)
    await session.commit()
    return DayCounterRead.model_validate(counter)


@router.post("/annual/{user_id}/adjust", response_model=DayCounterRead)
async def adjust_annual_counter(
    user_id: int,
    payload: CounterAdjustRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> DayCounterRead:
    await _require_user(session, user_id)
    counter = await counters.adjust(
        session, counters.annual_key(user_id, payload.year), payload.adjustment, comment=payload.comment
    )
    await session.commit()
    return DayCounterRead.model_validate(counter)


@router.post("/leave/credit-monthly", response_model=LeaveCreditResponse)
async def credit_monthly_leave(
    payload: LeaveCreditRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> LeaveCreditResponse:
    credited = await counters.credit_monthly_for_all(
        session, payload.absence_type_code, payload.year, payload.month, user_id=payload.user_id
    )
    await session.commit()
    return LeaveCreditResponse(
        credited=[LeaveCreditRead(user_id=user_id, days=days) for user_id, days in credited.items()],
        total_days=round(sum(credited.values()), 2),
    )


@router.post("/leave/{user_id}/roll", response_model=DayCounterRead, status_code=status.HTTP_201_CREATED)
async def roll_leave_counter(
    user_id: int,
    payload: LeaveRollRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> DayCounterRead:
    await _require_user(session, user_id)
    key = counters.CounterKey(
        user_id=user_id, kind=CounterKind.LEAVE, period=payload.period, category=payload.absence_type_code
    )
    counter = await counters.roll_to_new_period(session, key)
    await session.commit()
    return DayCounterRead.model_validate(counter)


@router.get("/{counter_id}/movements", response_model=list[CounterMovementRead])
async def list_counter_movements(
    counter_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> list[CounterMovementRead]:
    if not await counter_repo.get_counter_by_id(session, counter_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Counter not found")
    movements = await counter_repo.list_movements(session, counter_id)
    return [CounterMovementRead.model_validate(movement) for movement in movements]
