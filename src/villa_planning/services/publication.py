"""Month schedule state machine: draft -> validated -> published.

Publishing deducts every assigned shift's working days from its assignee's
annual counter once; the deduction is recorded on the shift so a later publish
or reopen never counts it twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import ConflictError, PlanningError
from villa_planning.db.models.planning import MonthStatus, PlanningMonth, PlanningPublication, ShiftStatus
from villa_planning.repositories import planning as planning_repo
from villa_planning.services import counters
from villa_planning.services.issues import PlanningWarning
from villa_planning.services.validation import ValidationReport, validate_planning_month

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[MonthStatus, frozenset[MonthStatus]] = {
    MonthStatus.DRAFT: frozenset({MonthStatus.VALIDATED}),
    MonthStatus.VALIDATED: frozenset({MonthStatus.PUBLISHED, MonthStatus.DRAFT}),
    MonthStatus.PUBLISHED: frozenset({MonthStatus.DRAFT}),
}


def ensure_transition(planning: PlanningMonth, target: MonthStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[planning.status]:
        raise ConflictError(
            f"Planning #{planning.id} cannot move from {planning.status.value} to {target.value}"
        )


@dataclass
class MonthValidation:
    validated: int = 0
    warnings: list[PlanningWarning] = field(default_factory=list)


@dataclass
class PublicationResult:
    planning: PlanningMonth
    publication: PlanningPublication
    report: ValidationReport
    deducted_shifts: int = 0
    deducted_days: float = 0
    failures: list[PlanningWarning] = field(default_factory=list)


async def _validate_shifts(session: AsyncSession, planning: PlanningMonth, outcome: MonthValidation) -> None:
    for shift in await planning_repo.list_shifts_for_month(session, planning.id):
        if shift.status is ShiftStatus.DRAFT:
            shift.status = ShiftStatus.VALIDATED
            outcome.validated += 1
        elif shift.status.pending_replacement:
            outcome.warnings.append(
                PlanningWarning(
                    "pending_replacement",
                    f"Shift #{shift.id} on {shift.start_at:%d/%m/%Y} still awaits a replacement",
                    affectation_id=shift.id,
                    user_id=shift.user_id,
                )
            )
        if shift.user_id is None and shift.status is not ShiftStatus.CANCELLED:
            outcome.warnings.append(
                PlanningWarning(
                    "unassigned",
                    f"Shift #{shift.id} on {shift.start_at:%d/%m/%Y %H:%M} has no assigned user",
                    affectation_id=shift.id,
                )
            )


def _mark_validated(planning: PlanningMonth, validated_by: str | None) -> None:
    if planning.status is MonthStatus.DRAFT:
        ensure_transition(planning, MonthStatus.VALIDATED)
        planning.status = MonthStatus.VALIDATED
        planning.validated_at = datetime.now()
        planning.validated_by = validated_by


async def validate_month_schedule(
    session: AsyncSession, planning: PlanningMonth, *, validated_by: str | None = None
) -> MonthValidation:
    """Move the draft shifts of one month schedule to validated."""

    if planning.status is MonthStatus.PUBLISHED:
        raise ConflictError(f"Planning #{planning.id} is already published")
    outcome = MonthValidation()
    await _validate_shifts(session, planning, outcome)
    _mark_validated(planning, validated_by)
    return outcome


async def validate_month(
    session: AsyncSession, year: int, month: int, *, validated_by: str | None = None
) -> MonthValidation:
    """Validate every unpublished month schedule of ``year-month``.

    Unassigned shifts are reported but do not prevent validation.
    """

    outcome = MonthValidation()
    for planning in await planning_repo.list_planning_months(session, year, month):
        if planning.status is MonthStatus.PUBLISHED:
            continue
        await _validate_shifts(session, planning, outcome)
        _mark_validated(planning, validated_by)
    logger.info("Validated %d shift(s) for %04d-%02d", outcome.validated, year, month)
    return outcome


async def publish(
    session: AsyncSession, planning: PlanningMonth, *, published_by: str | None = None
) -> PublicationResult:
    if planning.status is MonthStatus.PUBLISHED:
        raise ConflictError(f"Planning #{planning.id} is already published")
    ensure_transition(planning, MonthStatus.PUBLISHED)

    report = await validate_planning_month(session, planning)
    failures: list[PlanningWarning] = []
    deducted_shifts = 0
    deducted_days = 0.0

    for shift in await planning_repo.list_shifts_for_month(session, planning.id):
        if shift.status is ShiftStatus.CANCELLED:
            continue
        if shift.status is ShiftStatus.DRAFT:
            shift.status = ShiftStatus.VALIDATED
        if shift.user_id is None or shift.deducted_days is not None or shift.working_days <= 0:
            continue

        year = shift.start_at.year
        try:
            await counters.decrement(
                session, counters.annual_key(shift.user_id, year), shift.working_days, reference=f"shift:{shift.id}"
            )
        except PlanningError as exc:
            logger.warning("Deduction failed for shift #%s: %s", shift.id, exc.message)
            failures.append(
                PlanningWarning(
                    "deduction_failed",
                    f"Shift #{shift.id}: {exc.message}",
                    "error",
                    affectation_id=shift.id,
                    user_id=shift.user_id,
                )
            )
            continue

        shift.deducted_days = shift.working_days
        shift.deducted_user_id = shift.user_id
        shift.deducted_year = year
        deducted_shifts += 1
        deducted_days += shift.working_days

    planning.status = MonthStatus.PUBLISHED
    planning.published_at = datetime.now()
    planning.published_by = published_by
    publication = await planning_repo.create_publication(
        session,
        planning,
        published_by=published_by,
        deducted_shifts=deducted_shifts,
        deducted_days=deducted_days,
        warnings=[warning.as_dict() for warning in report.warnings],
        failures=[failure.as_dict() for failure in failures],
    )
    logger.info(
        "Published planning #%s: %d shift(s) deducted (%.2f days), %d failure(s), %d warning(s)",
        planning.id,
        deducted_shifts,
        deducted_days,
        len(failures),
        len(report.warnings),
    )
    return PublicationResult(
        planning=planning,
        publication=publication,
        report=report,
        deducted_shifts=deducted_shifts,
        deducted_days=deducted_days,
        failures=failures,
    )


async def reopen(session: AsyncSession, planning: PlanningMonth) -> int:
    """Return a validated or published month to draft, restoring its deductions.

    Returns the number of shifts whose deduction was given back.
    """

    ensure_transition(planning, MonthStatus.DRAFT)
    restored = 0
    for shift in await planning_repo.list_shifts_for_month(session, planning.id):
        if shift.deducted_days is not None and shift.deducted_user_id is not None:
            await counters.increment(
                session,
                counters.annual_key(shift.deducted_user_id, shift.deducted_year or shift.start_at.year),
                shift.deducted_days,
                reference=f"shift:{shift.id}",
            )
            restored += 1
        shift.deducted_days = None
        shift.deducted_user_id = None
        shift.deducted_year = None
        if shift.status is ShiftStatus.VALIDATED:
            shift.status = ShiftStatus.DRAFT

    planning.status = MonthStatus.DRAFT
    planning.validated_at = None
    planning.validated_by = None
    planning.published_at = None
    planning.published_by = None
    logger.info("Reopened planning #%s, restored %d deduction(s)", planning.id, restored)
    return restored
