from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import ConflictError
from villa_planning.db.models.planning import MonthStatus, PlanningMonth, Shift, ShiftStatus, ShiftType
from villa_planning.db.models.villa import User, Villa
from villa_planning.repositories import planning as planning_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.services import assignment, counters, publication

from .factories import build_user_create


async def _shift(session: AsyncSession, villa: Villa, day: int, user_id: int | None = None) -> Shift:
    outcome = await assignment.create_shift(
        session,
        shift_type=ShiftType.GARDE_24H,
        start_at=datetime(2026, 1, day, 7),
        end_at=datetime(2026, 1, day + 1, 7),
        villa_id=villa.id,
        user_id=user_id,
    )
    return outcome.shift


async def _validated_month(session: AsyncSession, shift: Shift) -> PlanningMonth:
    planning = await planning_repo.get_planning_month(session, shift.planning_month_id)
    await publication.validate_month_schedule(session, planning, validated_by="direction")
    return planning


@pytest.mark.anyio("asyncio")
async def test_publishing_requires_validation(session: AsyncSession, villa: Villa) -> None:
    shift = await _shift(session, villa, 5)
    planning = await planning_repo.get_planning_month(session, shift.planning_month_id)

    with pytest.raises(ConflictError):
        await publication.publish(session, planning)
    assert planning.status is MonthStatus.DRAFT


@pytest.mark.anyio("asyncio")
async def test_validation_moves_drafts_and_reports_gaps(session: AsyncSession, villa: Villa, educator: User) -> None:
    assigned = await _shift(session, villa, 5, educator.id)
    empty = await _shift(session, villa, 7)
    planning = await planning_repo.get_planning_month(session, assigned.planning_month_id)

    outcome = await publication.validate_month_schedule(session, planning, validated_by="direction")

    assert outcome.validated == 2
    assert [warning.affectation_id for warning in outcome.warnings] == [empty.id]
    assert planning.status is MonthStatus.VALIDATED
    assert planning.validated_by == "direction"
    assert planning.validated_at is not None
    assert assigned.status is ShiftStatus.VALIDATED


@pytest.mark.anyio("asyncio")
async def test_publish_deducts_each_shift_exactly_once(session: AsyncSession, villa: Villa, educator: User) -> None:
    counter = await counters.get_or_create(session, counters.annual_key(educator.id, 2026))
    first = await _shift(session, villa, 5, educator.id)
    second = await _shift(session, villa, 7, educator.id)
    await _shift(session, villa, 12)
    planning = await _validated_month(session, first)

    result = await publication.publish(session, planning, published_by="direction")

    assert planning.status is MonthStatus.PUBLISHED
    assert planning.published_at is not None
    assert result.deducted_shifts == 2
    assert result.deducted_days == 4
    assert result.failures == []
    assert counter.consumed == 4
    assert (first.deducted_days, second.deducted_days) == (2, 2)
    assert first.deducted_user_id == educator.id
    assert [warning.type for warning in result.report.warnings] == ["unassigned"]

    with pytest.raises(ConflictError):
        await publication.publish(session, planning)
    assert counter.consumed == 4

    records = await planning_repo.list_publications(session, planning.id)
    assert len(records) == 1
    assert records[0].deducted_shifts == 2
    assert records[0].published_by == "direction"


@pytest.mark.anyio("asyncio")
async def test_missing_counter_does_not_block_publication(
    session: AsyncSession, villa: Villa, educator: User
) -> None:
    colleague = await villa_repo.create_user(
        session, build_user_create(first_name="Bruno", email="bruno.martin@example.org", villa_id=villa.id)
    )
    counter = await counters.get_or_create(session, counters.annual_key(educator.id, 2026))
    first = await _shift(session, villa, 5, educator.id)
    orphan = await _shift(session, villa, 7, colleague.id)
    planning = await _validated_month(session, first)

    result = await publication.publish(session, planning)

    assert planning.status is MonthStatus.PUBLISHED
    assert result.deducted_shifts == 1
    assert counter.consumed == 2
    assert [(failure.type, failure.affectation_id) for failure in result.failures] == [("deduction_failed", orphan.id)]
    assert orphan.deducted_days is None
    assert result.publication.failures[0]["affectationId"] == orphan.id


@pytest.mark.anyio("asyncio")
async def test_reopen_restores_deductions(session: AsyncSession, villa: Villa, educator: User) -> None:
    counter = await counters.get_or_create(session, counters.annual_key(educator.id, 2026))
    first = await _shift(session, villa, 5, educator.id)
    await _shift(session, villa, 7, educator.id)
    planning = await _validated_month(session, first)
    await publication.publish(session, planning)
    assert counter.consumed == 4

    restored = await publication.reopen(session, planning)

    assert restored == 2
    assert counter.consumed == 0
    assert planning.status is MonthStatus.DRAFT
    assert planning.published_at is None
    assert first.status is ShiftStatus.DRAFT
    assert first.deducted_days is None

    await publication.validate_month_schedule(session, planning)
    await publication.publish(session, planning)
    assert counter.consumed == 4


@pytest.mark.anyio("asyncio")
async def test_reopening_a_draft_fails(session: AsyncSession, villa: Villa) -> None:
    shift = await _shift(session, villa, 5)
    planning = await planning_repo.get_planning_month(session, shift.planning_month_id)

    with pytest.raises(ConflictError):
        await publication.reopen(session, planning)


@pytest.mark.anyio("asyncio")
async def test_published_balance_matches_projection_after_resize(
    session: AsyncSession, villa: Villa, educator: User
) -> None:
    counter = await counters.get_or_create(session, counters.annual_key(educator.id, 2026))
    shift = await _shift(session, villa, 5, educator.id)
    await assignment.resize_shift(session, shift.id, datetime(2026, 1, 9, 20), datetime(2026, 1, 14, 8))
    assert shift.working_days == 4
    projected = await counters.projected_annual_balance(session, educator.id, 2026)
    planning = await _validated_month(session, shift)

    await publication.publish(session, planning)

    assert counter.remaining == projected == 254
    assert await counters.projected_annual_balance(session, educator.id, 2026) == projected


@pytest.mark.anyio("asyncio")
async def test_validate_month_skips_published_schedules(session: AsyncSession, villa: Villa, educator: User) -> None:
    await counters.get_or_create(session, counters.annual_key(educator.id, 2026))
    villa_shift = await _shift(session, villa, 5, educator.id)
    planning = await _validated_month(session, villa_shift)
    await publication.publish(session, planning)
    pool_shift = await assignment.create_shift(
        session,
        shift_type=ShiftType.RENFORT,
        start_at=datetime(2026, 1, 20, 9),
        end_at=datetime(2026, 1, 20, 17),
    )

    outcome = await publication.validate_month(session, 2026, 1)

    assert outcome.validated == 1
    assert pool_shift.shift.status is ShiftStatus.VALIDATED
    assert [warning.type for warning in outcome.warnings] == ["unassigned"]
    assert planning.status is MonthStatus.PUBLISHED
