from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _as_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# Facility wall-clock time; aware inputs are converted to local time.
LocalDatetime = Annotated[datetime, AfterValidator(_as_local_naive)]


class ApiModel(BaseModel):
    """Base for payloads exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class WarningRead(ApiModel):
    type: str
    message: str
    severity: Literal["info", "warning", "error"] = "warning"
    affectation_id: int | None = None
    user_id: int | None = None
