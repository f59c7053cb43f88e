from datetime import datetime

from pydantic import Field

from villa_planning.schemas.common import ApiModel, WarningRead
from villa_planning.services.templates import TemplateConfiguration


class TemplateBase(ApiModel):
    name: str = Field(max_length=120)
    description: str | None = None
    configuration: TemplateConfiguration = Field(default_factory=TemplateConfiguration)
    is_default: bool = False


class TemplateCreate(TemplateBase):
    pass


class TemplateUpdate(ApiModel):
    name: str | None = Field(default=None, max_length=120)
    description: str | None = None
    configuration: TemplateConfiguration | None = None
    is_default: bool | None = None


class TemplateRead(TemplateBase):
    id: int
    usage_count: int
    last_used_at: datetime | None = None
    created_at: datetime


class TemplateWriteResponse(ApiModel):
    success: bool = True
    template: TemplateRead
    warnings: list[WarningRead] = []
