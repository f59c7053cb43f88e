"""Assign users to shifts and edit shift bounds, reporting conflicts as warnings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.config import get_settings
from villa_planning.core.errors import ConflictError, InvalidRequestError, NotFoundError
from villa_planning.db.models.planning import MonthStatus, PlanningMonth, Shift, ShiftStatus, ShiftType
from villa_planning.repositories import planning as planning_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.services import counters
from villa_planning.services.availability import BusyInterval, resolve_availability
from villa_planning.services.dates import compute_working_days
from villa_planning.services.issues import PlanningWarning, Severity

logger = logging.getLogger(__name__)

CONFLICT_TYPES = {
    "absence": "absence_conflict",
    "appointment": "appointment_conflict",
    "on_call": "on_call_conflict",
    "shift": "schedule_conflict",
}


@dataclass
class AssignmentOutcome:
    shift: Shift
    warnings: list[PlanningWarning] = field(default_factory=list)


def _format_span(start: datetime, end: datetime) -> str:
    return f"{start:%d/%m/%Y %H:%M} - {end:%d/%m/%Y %H:%M}"


def conflict_warnings(
    shift: Shift, busy: Iterable[BusyInterval], *, severity: Severity = "warning"
) -> list[PlanningWarning]:
    """Turn the busy intervals overlapping *shift* into warnings."""

    warnings: list[PlanningWarning] = []
    for interval in busy:
        if not interval.overlaps(shift.start_at, shift.end_at):
            continue
        if interval.source == "shift" and ShiftType.RENFORT in (shift.type, ShiftType(interval.type)):
            # Reinforcement shifts may overlap a regular guard.
            continue
        warnings.append(
            PlanningWarning(
                type=CONFLICT_TYPES[interval.source],
                message=f"Overlaps {interval.label} ({_format_span(interval.start, interval.end)})",
                severity=severity,
                affectation_id=shift.id,
                user_id=shift.user_id,
            )
        )
    return warnings


def duration_warnings(shift: Shift) -> list[PlanningWarning]:
    settings = get_settings()
    hours = shift.duration_hours
    if hours < settings.min_shift_hours:
        return [
            PlanningWarning(
                "duration_too_short",
                f"Shift lasts {hours:g}h, less than {settings.min_shift_hours}h",
                "info",
                affectation_id=shift.id,
            )
        ]
    if hours > settings.max_shift_hours:
        return [
            PlanningWarning(
                "duration_too_long",
                f"Shift lasts {hours:g}h, more than {settings.max_shift_hours}h",
                "info",
                affectation_id=shift.id,
            )
        ]
    return []


async def balance_warnings(
    session: AsyncSession, user_id: int, year: int, *, affectation_id: int | None = None
) -> list[PlanningWarning]:
    projected = await counters.projected_annual_balance(session, user_id, year)
    if projected is None:
        return [
            PlanningWarning(
                "missing_counter",
                f"User #{user_id} has no annual day counter for {year}",
                "info",
                affectation_id=affectation_id,
                user_id=user_id,
            )
        ]
    if projected < 0:
        return [
            PlanningWarning(
                "insufficient_balance",
                f"Annual balance for {year} would be {projected:g} days once assigned shifts are deducted",
                affectation_id=affectation_id,
                user_id=user_id,
            )
        ]
    return []


async def collect_warnings(session: AsyncSession, shift: Shift) -> tuple[list[PlanningWarning], list[BusyInterval]]:
    warnings = duration_warnings(shift)
    if shift.user_id is None:
        return warnings, []

    busy = await resolve_availability(
        session, shift.user_id, shift.start_at, shift.end_at, exclude_shift_id=shift.id
    )
    warnings.extend(conflict_warnings(shift, busy))
    warnings.extend(
        await balance_warnings(session, shift.user_id, shift.start_at.year, affectation_id=shift.id)
    )
    return warnings, busy


def _replacement_status(shift: Shift, busy: list[BusyInterval]) -> ShiftStatus:
    if shift.status is not ShiftStatus.DRAFT and not shift.status.pending_replacement:
        return shift.status
    sources = {interval.source for interval in busy if interval.overlaps(shift.start_at, shift.end_at)}
    if "absence" in sources:
        return ShiftStatus.TO_REPLACE_ABSENCE
    if "appointment" in sources:
        return ShiftStatus.TO_REPLACE_RDV
    return ShiftStatus.DRAFT


async def get_shift_or_raise(session: AsyncSession, shift_id: int) -> Shift:
    shift = await planning_repo.get_shift(session, shift_id)
    if shift is None:
        raise NotFoundError(f"Shift #{shift_id} not found")
    return shift


async def ensure_editable(session: AsyncSession, shift: Shift) -> PlanningMonth:
    planning = await planning_repo.get_planning_month(session, shift.planning_month_id)
    if planning is None:
        raise NotFoundError(f"Planning #{shift.planning_month_id} not found")
    if planning.status is MonthStatus.PUBLISHED:
        raise ConflictError(f"Planning #{planning.id} is published; reopen it before editing shift #{shift.id}")
    return planning


async def _ensure_user(session: AsyncSession, user_id: int | None) -> None:
    if user_id is not None and await villa_repo.get_user(session, user_id) is None:
        raise NotFoundError(f"User #{user_id} not found")


def _check_version(shift: Shift, expected_version: int | None) -> None:
    if expected_version is not None and expected_version != shift.version:
        raise ConflictError(
            f"Shift #{shift.id} was modified concurrently (version {shift.version}, expected {expected_version})"
        )


def _check_bounds(start_at: datetime, end_at: datetime) -> None:
    if start_at >= end_at:
        raise InvalidRequestError("startAt must be before endAt")


async def _owning_planning(
    session: AsyncSession, shift: Shift, current: PlanningMonth, start_at: datetime
) -> PlanningMonth:
    """Return the month schedule a shift starting at *start_at* belongs to."""

    if (current.year, current.month) == (start_at.year, start_at.month):
        return current
    planning, _ = await planning_repo.get_or_create_planning_month(
        session, shift.villa_id, start_at.year, start_at.month
    )
    if planning.status is MonthStatus.PUBLISHED:
        raise ConflictError(f"Planning #{planning.id} is published; reopen it before moving shift #{shift.id} into it")
    return planning


async def _refresh(session: AsyncSession, shift: Shift) -> AssignmentOutcome:
    warnings, busy = await collect_warnings(session, shift)
    shift.status = _replacement_status(shift, busy)
    return AssignmentOutcome(shift=shift, warnings=warnings)


async def assign_user(session: AsyncSession, shift_id: int, user_id: int | None) -> AssignmentOutcome:
    """Assign *user_id* (or nobody) to a shift; conflicts never block the assignment."""

    shift = await get_shift_or_raise(session, shift_id)
    await _ensure_user(session, user_id)
    await ensure_editable(session, shift)

    shift.user_id = user_id
    outcome = await _refresh(session, shift)
    logger.info(
        "Shift #%s assigned to %s with %d warning(s)",
        shift.id,
        f"user #{user_id}" if user_id is not None else "nobody",
        len(outcome.warnings),
    )
    return outcome


async def resize_shift(
    session: AsyncSession,
    shift_id: int,
    start_at: datetime,
    end_at: datetime,
    *,
    expected_version: int | None = None,
) -> AssignmentOutcome:
    _check_bounds(start_at, end_at)
    shift = await get_shift_or_raise(session, shift_id)
    _check_version(shift, expected_version)
    planning = await _owning_planning(session, shift, await ensure_editable(session, shift), start_at)

    shift.planning_month_id = planning.id
    shift.start_at = start_at
    shift.end_at = end_at
    shift.working_days = compute_working_days(start_at, end_at, shift.type)
    return await _refresh(session, shift)


async def update_shift(
    session: AsyncSession,
    shift: Shift,
    changes: dict,
    *,
    expected_version: int | None = None,
) -> AssignmentOutcome:
    """Apply a partial edit (user, type, bounds, comment) to a shift.

    Validated and to-be-replaced shifts fall back to draft so that the edit is
    validated again before publication.
    """

    _check_version(shift, expected_version)
    current = await ensure_editable(session, shift)
    if "user_id" in changes:
        await _ensure_user(session, changes["user_id"])

    start_at = changes.get("start_at") or shift.start_at
    end_at = changes.get("end_at") or shift.end_at
    _check_bounds(start_at, end_at)
    planning = await _owning_planning(session, shift, current, start_at)

    shift.planning_month_id = planning.id
    if "user_id" in changes:
        shift.user_id = changes["user_id"]
    if changes.get("type") is not None:
        shift.type = ShiftType(changes["type"])
    if "comment" in changes:
        shift.comment = changes["comment"]
    shift.start_at = start_at
    shift.end_at = end_at
    shift.working_days = compute_working_days(start_at, end_at, shift.type)
    if shift.status is ShiftStatus.VALIDATED or shift.status.pending_replacement:
        shift.status = ShiftStatus.DRAFT
    return await _refresh(session, shift)


async def create_shift(
    session: AsyncSession,
    *,
    shift_type: ShiftType,
    start_at: datetime,
    end_at: datetime,
    villa_id: int | None = None,
    user_id: int | None = None,
    comment: str | None = None,
) -> AssignmentOutcome:
    _check_bounds(start_at, end_at)
    if villa_id is None and shift_type is not ShiftType.RENFORT:
        raise InvalidRequestError("villaId is required unless the shift is a reinforcement")
    if villa_id is not None and await villa_repo.get_villa(session, villa_id) is None:
        raise NotFoundError(f"Villa #{villa_id} not found")
    await _ensure_user(session, user_id)

    planning, _ = await planning_repo.get_or_create_planning_month(
        session, villa_id, start_at.year, start_at.month
    )
    if planning.status is MonthStatus.PUBLISHED:
        raise ConflictError(f"Planning #{planning.id} is published; reopen it before adding shifts")

    shift = await planning_repo.add_shift(
        session,
        Shift(
            planning_month_id=planning.id,
            villa_id=villa_id,
            user_id=user_id,
            start_at=start_at,
            end_at=end_at,
            type=shift_type,
            status=ShiftStatus.DRAFT,
            working_days=compute_working_days(start_at, end_at, shift_type),
            comment=comment,
            is_from_template=False,
        ),
    )
    return await _refresh(session, shift)


async def shift_warnings(session: AsyncSession, shift_id: int) -> list[PlanningWarning]:
    """Re-derive the warnings of a shift without changing it."""

    shift = await get_shift_or_raise(session, shift_id)
    warnings, _ = await collect_warnings(session, shift)
    return warnings


async def delete_shift(session: AsyncSession, shift: Shift) -> None:
    await ensure_editable(session, shift)
    await planning_repo.delete_shift(session, shift)
