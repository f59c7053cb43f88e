from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.session import get_db_session
from villa_planning.repositories import appointment as appointment_repo
from villa_planning.schemas.appointment import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
    ParticipantRead,
    PresenceUpdate,
)
from villa_planning.services import appointments

router = APIRouter()


@router.get("/", response_model=list[AppointmentRead])
async def list_appointments(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    user_id: Annotated[int | None, Query(alias="userId")] = None,
) -> list[AppointmentRead]:
    records = await appointment_repo.list_appointments(session, user_id=user_id)
    return [AppointmentRead.model_validate(appointment) for appointment in records]


@router.post("/", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AppointmentRead:
    appointment = await appointments.create_appointment(session, payload)
    await session.commit()
    return AppointmentRead.model_validate(appointment)


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AppointmentRead:
    appointment = await appointments.get_appointment_or_raise(session, appointment_id)
    return AppointmentRead.model_validate(appointment)


@router.post("/{appointment_id}/status", response_model=AppointmentRead)
async def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> AppointmentRead:
    appointment = await appointments.get_appointment_or_raise(session, appointment_id)
    appointments.change_status(appointment, payload.status)
    await session.commit()
    return AppointmentRead.model_validate(appointment)


@router.put("/{appointment_id}/participants/{user_id}", response_model=ParticipantRead)
async def update_participant_presence(
    appointment_id: int,
    user_id: int,
    payload: PresenceUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ParticipantRead:
    appointment = await appointments.get_appointment_or_raise(session, appointment_id)
    participant = await appointments.set_presence(session, appointment, user_id, payload.presence)
    await session.commit()
    return ParticipantRead.model_validate(participant)
