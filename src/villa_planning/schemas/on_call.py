from datetime import datetime
from typing import Literal

from pydantic import Field

from villa_planning.schemas.common import ApiModel, LocalDatetime


class OnCallCreate(ApiModel):
    start_at: LocalDatetime
    end_at: LocalDatetime
    user_id: int | None = None
    comment: str | None = None


class OnCallRead(ApiModel):
    id: int
    start_at: datetime
    end_at: datetime
    user_id: int | None = None
    status: Literal["assigned", "unassigned"]
    period_label: str | None = None
    replacement_count: int
    comment: str | None = None


class OnCallAssign(ApiModel):
    user_id: int | None


class OnCallGenerateRequest(ApiModel):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)


class OnCallGenerateResponse(ApiModel):
    created: int
    items: list[OnCallRead] = []
