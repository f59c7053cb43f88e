"""Merge a user's four calendars into a single list of busy intervals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Literal

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.absence import Absence, AbsenceType
from villa_planning.db.models.appointment import Appointment
from villa_planning.db.models.on_call import OnCallDuty
from villa_planning.db.models.planning import Shift
from villa_planning.db.models.villa import Villa
from villa_planning.repositories import absence as absence_repo
from villa_planning.repositories import appointment as appointment_repo
from villa_planning.repositories import on_call as on_call_repo
from villa_planning.repositories import planning as planning_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.services.dates import day_range, intervals_overlap

BusySource = Literal["absence", "appointment", "on_call", "shift"]

DEFAULT_ABSENCE_COLOR = "#FCA5A5"
ABSENCE_COLORS = {"CP": "#FCA5A5", "RTT": "#FCA5A5", "MAL": "#FDBA74", "AT": "#FDBA74"}
APPOINTMENT_COLOR = "#FDE047"
ON_CALL_COLOR = "#C4B5FD"
DEFAULT_SHIFT_COLOR = "#93C5FD"


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime
    source: BusySource
    type: str
    label: str
    color: str
    reference_id: int

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(self.start, self.end, start, end)


def _absence_interval(absence: Absence, absence_type: AbsenceType) -> BusyInterval:
    start, end = day_range(absence.start_date, absence.end_date)
    return BusyInterval(
        start=start,
        end=end,
        source="absence",
        type=absence_type.code,
        label=absence_type.label,
        color=absence_type.color or ABSENCE_COLORS.get(absence_type.code, DEFAULT_ABSENCE_COLOR),
        reference_id=absence.id,
    )


def _appointment_interval(appointment: Appointment) -> BusyInterval:
    return BusyInterval(
        start=appointment.start_at,
        end=appointment.end_at,
        source="appointment",
        type="rdv",
        label=f"RDV: {appointment.subject}",
        color=APPOINTMENT_COLOR,
        reference_id=appointment.id,
    )


def _on_call_interval(on_call: OnCallDuty) -> BusyInterval:
    return BusyInterval(
        start=on_call.start_at,
        end=on_call.end_at,
        source="on_call",
        type="astreinte",
        label=f"On-call {on_call.period_label or ''}".strip(),
        color=ON_CALL_COLOR,
        reference_id=on_call.id,
    )


def _shift_interval(shift: Shift, villas: dict[int, Villa]) -> BusyInterval:
    villa = villas.get(shift.villa_id) if shift.villa_id is not None else None
    place = villa.name if villa else "Reinforcement pool"
    return BusyInterval(
        start=shift.start_at,
        end=shift.end_at,
        source="shift",
        type=shift.type.value,
        label=f"{place} ({shift.type.value})",
        color=villa.color if villa else DEFAULT_SHIFT_COLOR,
        reference_id=shift.id,
    )


def merge_busy_intervals(
    absences: Iterable[tuple[Absence, AbsenceType]],
    appointments: Iterable[Appointment],
    on_calls: Iterable[OnCallDuty],
    shifts: Iterable[Shift],
    villas: dict[int, Villa],
) -> list[BusyInterval]:
    """Build the ordered busy calendar from already loaded source records."""

    intervals = [_absence_interval(absence, absence_type) for absence, absence_type in absences]
    intervals.extend(_appointment_interval(appointment) for appointment in appointments)
    intervals.extend(_on_call_interval(on_call) for on_call in on_calls if on_call.user_id is not None)
    intervals.extend(_shift_interval(shift, villas) for shift in shifts if shift.user_id is not None)
    intervals.sort(key=lambda interval: (interval.start, interval.end, interval.source, interval.reference_id))
    return intervals


async def resolve_availability(
    session: AsyncSession,
    user_id: int,
    start: datetime,
    end: datetime,
    *,
    exclude_shift_id: int | None = None,
) -> list[BusyInterval]:
    """Return every busy interval of *user_id* overlapping ``[start, end)``."""

    last_day = (end - timedelta(microseconds=1)).date() if end > start else start.date()
    absences = await absence_repo.find_approved_absences_in_range(session, user_id, start.date(), last_day)
    appointments = await appointment_repo.find_duty_appointments_in_range(session, user_id, start, end)
    on_calls = await on_call_repo.find_assigned_on_call_in_range(session, user_id, start, end)
    shifts = await planning_repo.find_overlapping_shifts(
        session, user_id, start, end, exclude_shift_id=exclude_shift_id
    )
    villas = await villa_repo.get_villas_by_ids(
        session, {shift.villa_id for shift in shifts if shift.villa_id is not None}
    )
    return merge_busy_intervals(absences, appointments, on_calls, shifts, villas)
