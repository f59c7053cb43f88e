from datetime import datetime

from pydantic import Field

from villa_planning.db.models.counter import CounterKind
from villa_planning.schemas.common import ApiModel


class DayCounterRead(ApiModel):
    id: int
    user_id: int
    kind: CounterKind
    category: str
    period: str
    opening_balance: float
    allocated: float
    consumed: float
    adjustment: float
    adjustment_comment: str | None = None
    remaining: float
    is_negative: bool


class CounterAdjustRequest(ApiModel):
    year: int = Field(ge=2000, le=2100)
    adjustment: float
    comment: str | None = None


class LeaveRollRequest(ApiModel):
    absence_type_code: str
    period: str = Field(pattern=r"^\d{4}-\d{4}$")


class AnnualCounterOpenRequest(ApiModel):
    year: int = Field(ge=2000, le=2100)


class AnnualResetRequest(ApiModel):
    year: int = Field(ge=2000, le=2100)


class AnnualResetResponse(ApiModel):
    year: int
    created: list[int] = []
    skipped: list[int] = []


class LeaveCreditRequest(ApiModel):
    absence_type_code: str
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    user_id: int | None = None


class LeaveCreditRead(ApiModel):
    user_id: int
    days: float


class LeaveCreditResponse(ApiModel):
    credited: list[LeaveCreditRead] = []
    total_days: float


class CounterMovementRead(ApiModel):
    id: int
    counter_id: int
    operation: str
    days: float
    consumed_before: float
    consumed_after: float
    reference: str | None = None
    created_at: datetime
