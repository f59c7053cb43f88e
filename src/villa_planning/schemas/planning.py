from datetime import date, datetime
from typing import Any, Literal

from pydantic import Field

from villa_planning.db.models.planning import MonthStatus, Shift, ShiftStatus, ShiftType
from villa_planning.db.models.villa import User
from villa_planning.schemas.common import ApiModel, LocalDatetime, WarningRead
from villa_planning.schemas.villa import UserSummary


class PlanningSummary(ApiModel):
    id: int
    status: MonthStatus
    validated_at: datetime | None = None


class PlanningRef(ApiModel):
    id: int
    villa_id: int | None = None
    year: int
    month: int
    status: MonthStatus


class ShiftRead(ApiModel):
    id: int
    start: datetime
    end: datetime
    type: ShiftType
    status: ShiftStatus
    is_from_template: bool = Field(alias="isFromSquelette")
    user: UserSummary | None = None
    villa_id: int | None = None
    working_days: int
    comment: str | None = None
    version: int


class VillaPlanningResponse(ApiModel):
    planning: PlanningSummary | None = None
    affectations: list[ShiftRead] = []


class MonthPlanningResponse(ApiModel):
    plannings: list[PlanningRef] = []
    affectations: list[ShiftRead] = []


class MonthGenerateRequest(ApiModel):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    template_id: int | None = None


class MonthGenerateResponse(ApiModel):
    id: int
    created: int


class TemplateGenerateRequest(ApiModel):
    template_id: int
    start_date: date
    end_date: date
    scope: Literal["villa", "all", "reinforcement"] = "villa"
    villa_id: int | None = None


class SkippedWeekRead(ApiModel):
    villa_id: int | None = None
    week_start: date
    reason: str


class TemplateGenerateResponse(ApiModel):
    success: bool = True
    created: int
    plannings: list[PlanningRef] = []
    skipped_weeks: list[SkippedWeekRead] = []


class ShiftCreateRequest(ApiModel):
    villa_id: int | None = None
    type: ShiftType
    start_at: LocalDatetime
    end_at: LocalDatetime
    user_id: int | None = None
    comment: str | None = None


class ShiftCreateResponse(ApiModel):
    success: bool = True
    affectation_id: int
    working_days: int
    warnings: list[WarningRead] = []


class AssignRequest(ApiModel):
    affectation_id: int
    user_id: int | None


class AssignResponse(ApiModel):
    success: bool = True
    status: ShiftStatus
    warnings: list[WarningRead] = []


class HoursUpdateRequest(ApiModel):
    start_at: LocalDatetime
    end_at: LocalDatetime
    version: int | None = None


class HoursUpdateResponse(ApiModel):
    success: bool = True
    working_days: int
    warnings: list[WarningRead] = []


class ShiftWarningsResponse(ApiModel):
    affectation_id: int
    warnings: list[WarningRead] = []


class AvailabilityPeriod(ApiModel):
    start: datetime
    end: datetime
    type: str
    source: Literal["absence", "appointment", "on_call", "shift"]
    color: str
    label: str
    reference_id: int


class AvailabilityResponse(ApiModel):
    user_id: int
    periods: list[AvailabilityPeriod] = []


class PlanningRequest(ApiModel):
    planning_id: int


class ValidationReportRead(ApiModel):
    planning_id: int
    valid: bool
    unassigned: list[WarningRead] = []
    conflicts: list[WarningRead] = []
    counter_deficits: list[WarningRead] = []
    warnings: list[WarningRead] = []


class PlanningValidateResponse(ApiModel):
    success: bool = True
    planning: PlanningSummary
    validated: int
    report: ValidationReportRead


class PublishRequest(PlanningRequest):
    published_by: str | None = None


class PublishResponse(ApiModel):
    success: bool = True
    planning_id: int
    status: MonthStatus
    deducted_shifts: int
    deducted_days: float
    failures: list[WarningRead] = []
    warnings: list[WarningRead] = []


class ReopenResponse(ApiModel):
    success: bool = True
    planning_id: int
    status: MonthStatus
    restored_shifts: int


class PublicationRead(ApiModel):
    id: int
    planning_month_id: int
    published_at: datetime
    published_by: str | None = None
    deducted_shifts: int
    deducted_days: float
    warnings: list[dict[str, Any]] = []
    failures: list[dict[str, Any]] = []


class BatchChange(ApiModel):
    affectation_id: int
    type: Literal["assign", "update", "delete"]
    data: dict[str, Any] = Field(default_factory=dict)


class BatchUpdateRequest(ApiModel):
    changes: list[BatchChange] = Field(min_length=1)


class BatchAssignData(ApiModel):
    user_id: int | None


class BatchUpdateData(ApiModel):
    user_id: int | None = None
    type: ShiftType | None = None
    start_at: LocalDatetime | None = None
    end_at: LocalDatetime | None = None
    comment: str | None = None
    version: int | None = None


class BatchUpdateResponse(ApiModel):
    success: bool = True
    processed: int
    warnings: list[WarningRead] = []


class ValidateMonthRequest(ApiModel):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)


class ValidateMonthResponse(ApiModel):
    success: bool = True
    validated: int
    warnings: list[WarningRead] = []
    message: str


class BulkDeleteRequest(ApiModel):
    year: int = Field(ge=2000, le=2100)
    month: int | None = Field(default=None, ge=1, le=12)
    villa_id: int | None = None


class BulkDeleteResponse(ApiModel):
    success: bool = True
    deleted: int


def shift_read(shift: Shift, user: User | None = None) -> ShiftRead:
    """Build the public representation of a shift and its (optional) assignee."""

    return ShiftRead(
        id=shift.id,
        start=shift.start_at,
        end=shift.end_at,
        type=shift.type,
        status=shift.status,
        is_from_template=shift.is_from_template,
        user=UserSummary(id=user.id, full_name=user.full_name, color=user.color) if user else None,
        villa_id=shift.villa_id,
        working_days=shift.working_days,
        comment=shift.comment,
        version=shift.version,
    )
