from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import ConflictError, InvalidRequestError, NotFoundError
from villa_planning.db.models.appointment import (
    Appointment,
    AppointmentParticipant,
    AppointmentStatus,
    ParticipantPresence,
)
from villa_planning.repositories import appointment as appointment_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.schemas.appointment import AppointmentCreate

APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.REFUSED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.REFUSED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


async def create_appointment(session: AsyncSession, payload: AppointmentCreate) -> Appointment:
    if payload.start_at >= payload.end_at:
        raise InvalidRequestError("startAt must be before endAt")
    user_ids = {payload.organizer_id, *payload.participant_ids}
    known = await villa_repo.get_users_by_ids(session, user_ids)
    missing = sorted(user_ids - known.keys())
    if missing:
        raise NotFoundError(f"User(s) not found: {', '.join(f'#{user_id}' for user_id in missing)}")
    return await appointment_repo.create_appointment(session, payload)


async def get_appointment_or_raise(session: AsyncSession, appointment_id: int) -> Appointment:
    appointment = await appointment_repo.get_appointment(session, appointment_id)
    if appointment is None:
        raise NotFoundError(f"Appointment #{appointment_id} not found")
    return appointment


def change_status(appointment: Appointment, target: AppointmentStatus) -> Appointment:
    if target not in APPOINTMENT_TRANSITIONS[appointment.status]:
        raise ConflictError(
            f"Appointment #{appointment.id} cannot move from {appointment.status.value} to {target.value}"
        )
    appointment.status = target
    return appointment


async def set_presence(
    session: AsyncSession, appointment: Appointment, user_id: int, presence: ParticipantPresence
) -> AppointmentParticipant:
    participant = await appointment_repo.get_participant(session, appointment.id, user_id)
    if participant is None:
        raise NotFoundError(f"User #{user_id} is not a participant of appointment #{appointment.id}")
    participant.presence = presence
    return participant
