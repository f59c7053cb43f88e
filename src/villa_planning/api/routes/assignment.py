from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.session import get_db_session
from villa_planning.repositories import planning as planning_repo
from villa_planning.repositories import template as template_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.schemas.common import WarningRead
from villa_planning.schemas.planning import (
    AssignRequest,
    AssignResponse,
    AvailabilityPeriod,
    AvailabilityResponse,
    BatchUpdateRequest,
    BatchUpdateResponse,
    BulkDeleteRequest,
    BulkDeleteResponse,
    HoursUpdateRequest,
    HoursUpdateResponse,
    MonthPlanningResponse,
    PlanningRef,
    PlanningRequest,
    PublishRequest,
    PublishResponse,
    ReopenResponse,
    ShiftCreateRequest,
    ShiftCreateResponse,
    ShiftWarningsResponse,
    SkippedWeekRead,
    TemplateGenerateRequest,
    TemplateGenerateResponse,
    ValidateMonthRequest,
    ValidateMonthResponse,
    ValidationReportRead,
)
from villa_planning.services import assignment, batch, publication
from villa_planning.services.availability import resolve_availability
from villa_planning.services.dates import day_range
from villa_planning.services.issues import PlanningWarning
from villa_planning.services.template_applicator import apply_template
from villa_planning.services.validation import validate_planning_month

from .planning import report_read, serialize_shifts

router = APIRouter()


def _warnings(items: list[PlanningWarning]) -> list[WarningRead]:
    return [WarningRead.model_validate(item) for item in items]


@router.post("/generate", response_model=TemplateGenerateResponse)
async def generate_from_template(
    payload: TemplateGenerateRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> TemplateGenerateResponse:
    template = await template_repo.get_template(session, payload.template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    result = await apply_template(
        session, template, payload.start_date, payload.end_date, payload.scope, payload.villa_id
    )
    await session.commit()
    return TemplateGenerateResponse(
        created=result.created,
        plannings=[PlanningRef.model_validate(planning) for planning in result.plannings],
        skipped_weeks=[
            SkippedWeekRead(villa_id=week.villa_id, week_start=week.week_start, reason=week.reason)
            for week in result.skipped_weeks
        ],
    )


@router.post("/create", response_model=ShiftCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_shift(
    payload: ShiftCreateRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> ShiftCreateResponse:
    outcome = await assignment.create_shift(
        session,
        shift_type=payload.type,
        start_at=payload.start_at,
        end_at=payload.end_at,
        villa_id=payload.villa_id,
        user_id=payload.user_id,
        comment=payload.comment,
    )
    await session.commit()
    return ShiftCreateResponse(
        affectation_id=outcome.shift.id,
        working_days=outcome.shift.working_days,
        warnings=_warnings(outcome.warnings),
    )


@router.post("/assign", response_model=AssignResponse)
async def assign_shift(
    payload: AssignRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> AssignResponse:
    outcome = await assignment.assign_user(session, payload.affectation_id, payload.user_id)
    await session.commit()
    return AssignResponse(status=outcome.shift.status, warnings=_warnings(outcome.warnings))


@router.put("/hours/{affectation_id}", response_model=HoursUpdateResponse)
async def update_shift_hours(
    affectation_id: int,
    payload: HoursUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> HoursUpdateResponse:
    outcome = await assignment.resize_shift(
        session, affectation_id, payload.start_at, payload.end_at, expected_version=payload.version
    )
    await session.commit()
    return HoursUpdateResponse(working_days=outcome.shift.working_days, warnings=_warnings(outcome.warnings))


@router.get("/warnings/{affectation_id}", response_model=ShiftWarningsResponse)
async def get_shift_warnings(
    affectation_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> ShiftWarningsResponse:
    warnings = await assignment.shift_warnings(session, affectation_id)
    return ShiftWarningsResponse(affectation_id=affectation_id, warnings=_warnings(warnings))


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    user_id: Annotated[int, Query(alias="userId")],
    start_date: Annotated[date, Query(alias="startDate")],
    end_date: Annotated[date, Query(alias="endDate")],
) -> AvailabilityResponse:
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="endDate must not be before startDate")
    if not await villa_repo.get_user(session, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    start, end = day_range(start_date, end_date)
    intervals = await resolve_availability(session, user_id, start, end)
    return AvailabilityResponse(
        user_id=user_id,
        periods=[AvailabilityPeriod.model_validate(interval) for interval in intervals],
    )


@router.post("/validate", response_model=ValidationReportRead)
async def validate_planning(
    payload: PlanningRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> ValidationReportRead:
    planning = await planning_repo.get_planning_month(session, payload.planning_id)
    if not planning:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Planning not found")
    report = await validate_planning_month(session, planning)
    return report_read(report)


@router.post("/publish", response_model=PublishResponse)
async def publish_planning(
    payload: PublishRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> PublishResponse:
    planning = await planning_repo.lock_planning_month(session, payload.planning_id)
    if not planning:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Planning not found")
    result = await publication.publish(session, planning, published_by=payload.published_by)
    await session.commit()
    return PublishResponse(
        planning_id=planning.id,
        status=planning.status,
        deducted_shifts=result.deducted_shifts,
        deducted_days=result.deducted_days,
        failures=_warnings(result.failures),
        warnings=_warnings(result.report.warnings),
    )


@router.post("/reopen", response_model=ReopenResponse)
async def reopen_planning(
    payload: PlanningRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> ReopenResponse:
    planning = await planning_repo.lock_planning_month(session, payload.planning_id)
    if not planning:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Planning not found")
    restored = await publication.reopen(session, planning)
    await session.commit()
    return ReopenResponse(planning_id=planning.id, status=planning.status, restored_shifts=restored)


@router.post("/batch-update", response_model=BatchUpdateResponse)
async def batch_update(
    payload: BatchUpdateRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> BatchUpdateResponse:
    result = await batch.apply_changes(session, payload.changes)
    await session.commit()
    return BatchUpdateResponse(processed=result.processed, warnings=_warnings(result.warnings))


@router.post("/validate-month", response_model=ValidateMonthResponse)
async def validate_month(
    payload: ValidateMonthRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> ValidateMonthResponse:
    outcome = await publication.validate_month(session, payload.year, payload.month)
    await session.commit()
    return ValidateMonthResponse(
        validated=outcome.validated,
        warnings=_warnings(outcome.warnings),
        message=f"{outcome.validated} shift(s) validated for {payload.month:02d}/{payload.year}",
    )


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete(
    payload: BulkDeleteRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> BulkDeleteResponse:
    deleted = await planning_repo.delete_draft_shifts(session, payload.year, payload.month, payload.villa_id)
    await session.commit()
    return BulkDeleteResponse(deleted=deleted)


@router.get("/month/{year}/{month}", response_model=MonthPlanningResponse)
async def get_month(
    year: int, month: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> MonthPlanningResponse:
    plannings = await planning_repo.list_planning_months(session, year, month)
    shifts = await planning_repo.list_shifts_for_months(session, [planning.id for planning in plannings])
    return MonthPlanningResponse(
        plannings=[PlanningRef.model_validate(planning) for planning in plannings],
        affectations=await serialize_shifts(session, shifts),
    )
