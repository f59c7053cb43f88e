"""Advisory month-level checks run before publication."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.planning import PlanningMonth, ShiftStatus
from villa_planning.repositories import planning as planning_repo
from villa_planning.services import counters
from villa_planning.services.assignment import conflict_warnings
from villa_planning.services.availability import resolve_availability
from villa_planning.services.issues import PlanningWarning


@dataclass
class ValidationReport:
    planning_id: int
    unassigned: list[PlanningWarning] = field(default_factory=list)
    conflicts: list[PlanningWarning] = field(default_factory=list)
    counter_deficits: list[PlanningWarning] = field(default_factory=list)

    @property
    def warnings(self) -> list[PlanningWarning]:
        return [*self.unassigned, *self.conflicts, *self.counter_deficits]

    @property
    def valid(self) -> bool:
        return not any(warning.severity == "error" for warning in self.warnings)


async def validate_planning_month(session: AsyncSession, planning: PlanningMonth) -> ValidationReport:
    """Scan every active shift of *planning*; nothing is modified."""

    report = ValidationReport(planning_id=planning.id)
    shifts = await planning_repo.list_shifts_for_month(session, planning.id)
    balances_to_check: set[tuple[int, int]] = set()

    for shift in shifts:
        if shift.status is ShiftStatus.CANCELLED:
            continue
        if shift.user_id is None:
            report.unassigned.append(
                PlanningWarning(
                    "unassigned",
                    f"Shift #{shift.id} on {shift.start_at:%d/%m/%Y %H:%M} has no assigned user",
                    affectation_id=shift.id,
                )
            )
            continue

        busy = await resolve_availability(
            session, shift.user_id, shift.start_at, shift.end_at, exclude_shift_id=shift.id
        )
        report.conflicts.extend(conflict_warnings(shift, busy, severity="error"))
        balances_to_check.add((shift.user_id, shift.start_at.year))

    for user_id, year in sorted(balances_to_check):
        projected = await counters.projected_annual_balance(session, user_id, year)
        if projected is None:
            report.counter_deficits.append(
                PlanningWarning(
                    "missing_counter",
                    f"User #{user_id} has no annual day counter for {year}; deduction will fail",
                    user_id=user_id,
                )
            )
        elif projected < 0:
            report.counter_deficits.append(
                PlanningWarning(
                    "counter_deficit",
                    f"User #{user_id} would end {year} with {projected:g} days once shifts are deducted",
                    user_id=user_id,
                )
            )
    return report
