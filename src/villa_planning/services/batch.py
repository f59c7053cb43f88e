"""Apply heterogeneous shift edits one by one, isolating failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import PlanningError
from villa_planning.db.models.planning import Shift
from villa_planning.repositories import planning as planning_repo
from villa_planning.schemas.planning import BatchAssignData, BatchChange, BatchUpdateData
from villa_planning.services import assignment
from villa_planning.services.issues import PlanningWarning

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    processed: int = 0
    warnings: list[PlanningWarning] = field(default_factory=list)


def _describe(exc: Exception) -> str:
    if isinstance(exc, PlanningError):
        return exc.message
    if isinstance(exc, ValidationError):
        return "; ".join(f"{'.'.join(map(str, error['loc']))}: {error['msg']}" for error in exc.errors())
    return str(exc) or exc.__class__.__name__


async def _apply(session: AsyncSession, change: BatchChange, shift: Shift) -> list[PlanningWarning]:
    if change.type == "assign":
        data = BatchAssignData.model_validate(change.data)
        outcome = await assignment.assign_user(session, shift.id, data.user_id)
        return outcome.warnings

    if change.type == "update":
        data = BatchUpdateData.model_validate(change.data)
        changes = data.model_dump(exclude_unset=True, exclude={"version"})
        outcome = await assignment.update_shift(session, shift, changes, expected_version=data.version)
        return outcome.warnings

    await assignment.delete_shift(session, shift)
    return []


async def apply_changes(session: AsyncSession, changes: list[BatchChange]) -> BatchResult:
    """Run *changes* in order; a failing item becomes a warning and the batch goes on.

    Items see the effects of earlier items, including deletions. Each item runs
    in its own savepoint so a failing item leaves the others untouched.
    """

    result = BatchResult()
    deleted: set[int] = set()

    for change in changes:
        shift = None
        if change.affectation_id not in deleted:
            shift = await planning_repo.get_shift(session, change.affectation_id)
        if shift is None:
            result.warnings.append(
                PlanningWarning(
                    "not_found",
                    f"Shift #{change.affectation_id} not found",
                    "error",
                    affectation_id=change.affectation_id,
                )
            )
            continue

        try:
            # Leaving the savepoint flushes the item, so database errors are caught here too.
            async with session.begin_nested():
                item_warnings = await _apply(session, change, shift)
            result.warnings.extend(item_warnings)
            if change.type == "delete":
                deleted.add(change.affectation_id)
            result.processed += 1
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Batch %s on shift #%s failed: %s",
                change.type,
                change.affectation_id,
                _describe(exc),
                exc_info=not isinstance(exc, (PlanningError, ValidationError)),
            )
            result.warnings.append(
                PlanningWarning(
                    "error",
                    f"Shift #{change.affectation_id}: {_describe(exc)}",
                    "error",
                    affectation_id=change.affectation_id,
                )
            )

    await session.flush()
    logger.info("Batch processed %d/%d change(s)", result.processed, len(changes))
    return result
