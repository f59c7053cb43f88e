from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.absence import AbsenceStatus
from villa_planning.db.session import get_db_session
from villa_planning.repositories import absence as absence_repo
from villa_planning.schemas.absence import (
    AbsenceCreate,
    AbsenceRead,
    AbsenceTypeCreate,
    AbsenceTypeRead,
    BalanceCheckRequest,
    BalanceCheckResponse,
    CounterTypeRead,
    LeaveCounterRead,
    WorkingDaysRequest,
    WorkingDaysResponse,
)
from villa_planning.services import absences
from villa_planning.services.dates import count_absence_days

router = APIRouter()


@router.get("/types", response_model=list[AbsenceTypeRead])
async def list_absence_types(session: Annotated[AsyncSession, Depends(get_db_session)]) -> list[AbsenceTypeRead]:
    absence_types = await absence_repo.list_absence_types(session)
    return [AbsenceTypeRead.model_validate(absence_type) for absence_type in absence_types]


@router.post("/types", response_model=AbsenceTypeRead, status_code=status.HTTP_201_CREATED)
async def create_absence_type(
    payload: AbsenceTypeCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AbsenceTypeRead:
    if await absence_repo.get_absence_type_by_code(session, payload.code):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Absence type code already exists")
    absence_type = await absence_repo.create_absence_type(session, payload)
    await session.commit()
    return AbsenceTypeRead.model_validate(absence_type)


@router.get("/", response_model=list[AbsenceRead])
async def list_absences(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    user_id: Annotated[int | None, Query(alias="userId")] = None,
    absence_status: Annotated[AbsenceStatus | None, Query(alias="status")] = None,
) -> list[AbsenceRead]:
    records = await absence_repo.list_absences(session, user_id=user_id, status=absence_status)
    return [AbsenceRead.model_validate(absence) for absence in records]


@router.post("/", response_model=AbsenceRead, status_code=status.HTTP_201_CREATED)
async def create_absence(
    payload: AbsenceCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AbsenceRead:
    absence = await absences.create_absence(session, payload)
    await session.commit()
    return AbsenceRead.model_validate(absence)


@router.post("/{absence_id}/approve", response_model=AbsenceRead)
async def approve_absence(
    absence_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AbsenceRead:
    absence = await absences.get_absence_or_raise(session, absence_id)
    absence = await absences.approve_absence(session, absence)
    await session.commit()
    return AbsenceRead.model_validate(absence)


@router.post("/{absence_id}/refuse", response_model=AbsenceRead)
async def refuse_absence(
    absence_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AbsenceRead:
    absence = await absences.get_absence_or_raise(session, absence_id)
    absence = await absences.refuse_absence(session, absence)
    await session.commit()
    return AbsenceRead.model_validate(absence)


@router.post("/{absence_id}/cancel", response_model=AbsenceRead)
async def cancel_absence(
    absence_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AbsenceRead:
    absence = await absences.get_absence_or_raise(session, absence_id)
    absence = await absences.cancel_absence(session, absence)
    await session.commit()
    return AbsenceRead.model_validate(absence)


@router.get("/compteurs/{user_id}", response_model=list[LeaveCounterRead])
async def list_leave_counters(
    user_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
) -> list[LeaveCounterRead]:
    records = await absences.list_leave_counters(session, user_id, year or date.today().year)
    return [
        LeaveCounterRead(
            id=counter.id,
            type=CounterTypeRead(
                code=counter.category,
                label=absence_type.label if absence_type else counter.category,
            ),
            year=int(counter.period[:4]),
            period=counter.period,
            earned=counter.opening_balance + counter.allocated + counter.adjustment,
            taken=counter.consumed,
            remaining=counter.remaining,
            is_negative=counter.is_negative,
        )
        for counter, absence_type in records
    ]


@router.post("/check-balance", response_model=BalanceCheckResponse)
async def check_balance(
    payload: BalanceCheckRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> BalanceCheckResponse:
    check = await absences.check_balance(
        session,
        payload.user_id,
        payload.absence_type_id,
        working_days=payload.working_days,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    await session.commit()
    return BalanceCheckResponse(
        has_counter=check.has_counter,
        earned=check.earned,
        taken=check.taken,
        remaining=check.remaining,
        working_days=check.working_days,
        has_sufficient_balance=check.has_sufficient_balance,
        deficit=check.deficit,
    )


@router.post("/calculate-working-days", response_model=WorkingDaysResponse)
async def calculate_working_days(payload: WorkingDaysRequest) -> WorkingDaysResponse:
    if payload.end_date < payload.start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="endDate must not be before startDate")
    return WorkingDaysResponse(
        start_date=payload.start_date,
        end_date=payload.end_date,
        working_days=count_absence_days(payload.start_date, payload.end_date),
    )
