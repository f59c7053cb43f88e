from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.absence import AbsenceType
from villa_planning.db.models.appointment import AppointmentStatus, ParticipantPresence
from villa_planning.db.models.planning import ShiftType
from villa_planning.db.models.villa import User, Villa
from villa_planning.repositories import villa as villa_repo
from villa_planning.services import absences, appointments, assignment
from villa_planning.services import on_call as on_call_service
from villa_planning.services.availability import resolve_availability

from .factories import build_absence_create, build_appointment_create, build_user_create

JANUARY = (datetime(2026, 1, 1), datetime(2026, 2, 1))


async def _director(session: AsyncSession) -> User:
    return await villa_repo.create_user(
        session, build_user_create(first_name="Denise", last_name="Martin", email="direction@example.org")
    )


@pytest.mark.anyio("asyncio")
async def test_three_sources_give_three_intervals(
    session: AsyncSession, educator: User, sick_leave: AbsenceType
) -> None:
    absence = await absences.create_absence(session, build_absence_create(educator.id, sick_leave.id))
    await absences.approve_absence(session, absence)

    director = await _director(session)
    appointment = await appointments.create_appointment(
        session, build_appointment_create(director.id, participant_ids=[educator.id])
    )
    appointments.change_status(appointment, AppointmentStatus.CONFIRMED)

    await on_call_service.create_on_call(
        session, datetime(2026, 1, 19), datetime(2026, 1, 26), user_id=educator.id
    )

    intervals = await resolve_availability(session, educator.id, *JANUARY)

    assert len(intervals) == 3
    assert [interval.source for interval in intervals] == ["absence", "appointment", "on_call"]
    absence_interval = intervals[0]
    assert absence_interval.start == datetime(2026, 1, 10)
    assert absence_interval.end == datetime(2026, 1, 13)
    assert absence_interval.type == "MAL"
    assert absence_interval.reference_id == absence.id
    assert intervals[1].label == "RDV: Synthèse éducative"
    assert intervals[2].label == "On-call S4"


@pytest.mark.anyio("asyncio")
async def test_inactive_records_are_not_busy(
    session: AsyncSession, educator: User, sick_leave: AbsenceType
) -> None:
    # Pending absences are not busy time.
    await absences.create_absence(session, build_absence_create(educator.id, sick_leave.id))

    director = await _director(session)
    cancelled = await appointments.create_appointment(
        session, build_appointment_create(director.id, participant_ids=[educator.id])
    )
    appointments.change_status(cancelled, AppointmentStatus.CANCELLED)
    await appointments.create_appointment(
        session, build_appointment_create(director.id, participant_ids=[educator.id], impacts_duty=False)
    )
    declined = await appointments.create_appointment(
        session, build_appointment_create(director.id, participant_ids=[educator.id])
    )
    await appointments.set_presence(session, declined, educator.id, ParticipantPresence.ABSENT)

    await on_call_service.create_on_call(session, datetime(2026, 1, 19), datetime(2026, 1, 26))

    assert await resolve_availability(session, educator.id, *JANUARY) == []


@pytest.mark.anyio("asyncio")
async def test_organizer_is_busy_without_being_a_participant(session: AsyncSession, educator: User) -> None:
    await appointments.create_appointment(session, build_appointment_create(educator.id))

    intervals = await resolve_availability(session, educator.id, *JANUARY)

    assert [interval.source for interval in intervals] == ["appointment"]


@pytest.mark.anyio("asyncio")
async def test_assigned_shifts_are_busy_and_can_be_excluded(
    session: AsyncSession, villa: Villa, educator: User
) -> None:
    outcome = await assignment.create_shift(
        session,
        shift_type=ShiftType.GARDE_24H,
        start_at=datetime(2026, 1, 7, 7),
        end_at=datetime(2026, 1, 8, 7),
        villa_id=villa.id,
        user_id=educator.id,
    )

    intervals = await resolve_availability(session, educator.id, *JANUARY)
    assert len(intervals) == 1
    assert intervals[0].source == "shift"
    assert intervals[0].label == "Les Tilleuls (garde_24h)"
    assert intervals[0].color == villa.color

    excluded = await resolve_availability(session, educator.id, *JANUARY, exclude_shift_id=outcome.shift.id)
    assert excluded == []


@pytest.mark.anyio("asyncio")
async def test_intervals_outside_the_range_are_ignored(
    session: AsyncSession, educator: User, sick_leave: AbsenceType
) -> None:
    absence = await absences.create_absence(session, build_absence_create(educator.id, sick_leave.id))
    await absences.approve_absence(session, absence)

    assert await resolve_availability(session, educator.id, datetime(2026, 1, 13), datetime(2026, 1, 20)) == []
    touching = await resolve_availability(session, educator.id, datetime(2026, 1, 12, 23), datetime(2026, 1, 14))
    assert len(touching) == 1
