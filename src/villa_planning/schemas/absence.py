from datetime import date

from pydantic import Field, model_validator

from villa_planning.db.models.absence import AbsenceStatus
from villa_planning.schemas.common import ApiModel


class AbsenceTypeBase(ApiModel):
    code: str = Field(min_length=1, max_length=16)
    label: str = Field(min_length=1, max_length=120)
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    deducts_from_counter: bool = False
    seasonal: bool = False
    default_allocation: float = Field(default=0, ge=0)


class AbsenceTypeCreate(AbsenceTypeBase):
    pass


class AbsenceTypeRead(AbsenceTypeBase):
    id: int


class AbsenceCreate(ApiModel):
    user_id: int
    absence_type_id: int
    start_date: date
    end_date: date
    reason: str | None = None


class AbsenceRead(ApiModel):
    id: int
    user_id: int
    absence_type_id: int
    start_date: date
    end_date: date
    status: AbsenceStatus
    deducts_from_counter: bool
    working_days: float
    deducted: bool
    reason: str | None = None


class CounterTypeRead(ApiModel):
    code: str
    label: str


class LeaveCounterRead(ApiModel):
    id: int
    type: CounterTypeRead
    year: int
    period: str
    earned: float
    taken: float
    remaining: float
    is_negative: bool


class BalanceCheckRequest(ApiModel):
    user_id: int
    absence_type_id: int
    working_days: float | None = Field(default=None, ge=0)
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def require_days_or_range(self) -> "BalanceCheckRequest":
        if self.working_days is None and (self.start_date is None or self.end_date is None):
            raise ValueError("provide working_days or both start_date and end_date")
        return self


class BalanceCheckResponse(ApiModel):
    has_counter: bool
    earned: float = 0
    taken: float = 0
    remaining: float = 0
    working_days: float
    has_sufficient_balance: bool
    deficit: float = 0


class WorkingDaysRequest(ApiModel):
    start_date: date
    end_date: date


class WorkingDaysResponse(ApiModel):
    start_date: date
    end_date: date
    working_days: int
