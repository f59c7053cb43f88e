import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import PlanningError
from villa_planning.db.models.planning import Shift
from villa_planning.db.session import get_db_session
from villa_planning.repositories import planning as planning_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.schemas.common import WarningRead
from villa_planning.schemas.planning import (
    MonthGenerateRequest,
    MonthGenerateResponse,
    PlanningSummary,
    PlanningValidateResponse,
    PublicationRead,
    ShiftRead,
    ValidationReportRead,
    VillaPlanningResponse,
    shift_read,
)
from villa_planning.services import publication
from villa_planning.services.template_applicator import generate_villa_month
from villa_planning.services.validation import ValidationReport, validate_planning_month

logger = logging.getLogger(__name__)

router = APIRouter()


async def serialize_shifts(session: AsyncSession, shifts: list[Shift]) -> list[ShiftRead]:
    users = await villa_repo.get_users_by_ids(session, {shift.user_id for shift in shifts if shift.user_id})
    return [shift_read(shift, users.get(shift.user_id) if shift.user_id else None) for shift in shifts]


def report_read(report: ValidationReport) -> ValidationReportRead:
    return ValidationReportRead(
        planning_id=report.planning_id,
        valid=report.valid,
        unassigned=[WarningRead.model_validate(item) for item in report.unassigned],
        conflicts=[WarningRead.model_validate(item) for item in report.conflicts],
        counter_deficits=[WarningRead.model_validate(item) for item in report.counter_deficits],
        warnings=[WarningRead.model_validate(item) for item in report.warnings],
    )


@router.get("/villas/{villa_id}", response_model=VillaPlanningResponse)
async def get_villa_planning(
    villa_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> VillaPlanningResponse:
    if not await villa_repo.get_villa(session, villa_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Villa not found")
    today = date.today()
    planning = await planning_repo.find_planning_month(session, villa_id, year or today.year, month or today.month)
    if planning is None:
        return VillaPlanningResponse(planning=None, affectations=[])

    shifts = await planning_repo.list_shifts_for_month(session, planning.id)
    return VillaPlanningResponse(
        planning=PlanningSummary.model_validate(planning),
        affectations=await serialize_shifts(session, shifts),
    )


@router.post("/villas/{villa_id}/generate", response_model=MonthGenerateResponse)
async def generate_villa_planning(
    villa_id: int,
    payload: MonthGenerateRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
):
    try:
        planning, created = await generate_villa_month(
            session, villa_id, payload.year, payload.month, template_id=payload.template_id
        )
        await session.commit()
    except PlanningError:
        raise
    except Exception as exc:
        logger.exception("Planning generation failed for villa #%s", villa_id)
        await session.rollback()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"Planning generation failed: {exc}"},
        )
    return MonthGenerateResponse(id=planning.id, created=created)


@router.post("/{planning_id}/validate", response_model=PlanningValidateResponse)
async def validate_planning(
    planning_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> PlanningValidateResponse:
    planning = await planning_repo.get_planning_month(session, planning_id)
    if not planning:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Planning not found")
    outcome = await publication.validate_month_schedule(session, planning)
    report = await validate_planning_month(session, planning)
    await session.commit()
    return PlanningValidateResponse(
        planning=PlanningSummary.model_validate(planning),
        validated=outcome.validated,
        report=report_read(report),
    )


@router.get("/{planning_id}/publications", response_model=list[PublicationRead])
async def list_planning_publications(
    planning_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> list[PublicationRead]:
    if not await planning_repo.get_planning_month(session, planning_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Planning not found")
    publications = await planning_repo.list_publications(session, planning_id)
    return [PublicationRead.model_validate(item) for item in publications]
