from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.appointment import (
    Appointment,
    AppointmentParticipant,
    AppointmentStatus,
    ParticipantPresence,
)
from villa_planning.schemas.appointment import AppointmentCreate

_INACTIVE_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.REFUSED)


async def create_appointment(session: AsyncSession, payload: AppointmentCreate) -> Appointment:
    appointment = Appointment(**payload.model_dump(exclude={"participant_ids"}))
    appointment.participants = [
        AppointmentParticipant(user_id=user_id) for user_id in dict.fromkeys(payload.participant_ids)
    ]
    session.add(appointment)
    await session.flush()
    await session.refresh(appointment)
    return appointment


async def get_appointment(session: AsyncSession, appointment_id: int) -> Appointment | None:
    return await session.get(Appointment, appointment_id)


async def list_appointments(session: AsyncSession, *, user_id: int | None = None) -> list[Appointment]:
    query = select(Appointment).order_by(Appointment.start_at)
    if user_id is not None:
        participant_ids = select(AppointmentParticipant.appointment_id).where(
            AppointmentParticipant.user_id == user_id
        )
        query = query.where(or_(Appointment.organizer_id == user_id, Appointment.id.in_(participant_ids)))
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_participant(
    session: AsyncSession, appointment_id: int, user_id: int
) -> AppointmentParticipant | None:
    result = await session.execute(
        select(AppointmentParticipant)
        .where(AppointmentParticipant.appointment_id == appointment_id)
        .where(AppointmentParticipant.user_id == user_id)
    )
    return result.scalars().first()


async def find_duty_appointments_in_range(
    session: AsyncSession, user_id: int, start: datetime, end: datetime
) -> list[Appointment]:
    """Return active duty-impacting appointments overlapping ``[start, end)`` that involve *user_id*.

    A participant who declined (presence ``absent``) is not considered busy.
    """

    attending = select(AppointmentParticipant.appointment_id).where(
        AppointmentParticipant.user_id == user_id,
        AppointmentParticipant.presence != ParticipantPresence.ABSENT,
    )
    result = await session.execute(
        select(Appointment)
        .where(Appointment.impacts_duty.is_(True))
        .where(Appointment.status.not_in(_INACTIVE_STATUSES))
        .where(Appointment.start_at < end)
        .where(Appointment.end_at > start)
        .where(or_(Appointment.organizer_id == user_id, Appointment.id.in_(attending)))
        .order_by(Appointment.start_at)
    )
    return list(result.scalars().unique().all())
