"""Weekly duty template configuration, validation and bundled default."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from villa_planning.db.models.planning import ShiftType
from villa_planning.services.issues import PlanningWarning

_EXPECTED_DURATIONS = {ShiftType.GARDE_24H: 24, ShiftType.GARDE_48H: 48}


class _SlotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GuardSlot(_SlotModel):
    start_day: int = Field(ge=1, le=7)  # ISO weekday, 1 = Monday
    start_hour: int = Field(ge=0, le=23)
    duration_hours: int = Field(ge=1, le=168)
    type: ShiftType = ShiftType.GARDE_24H
    label: str | None = None

    @field_validator("type")
    @classmethod
    def reject_reinforcement(cls, value: ShiftType) -> ShiftType:
        if value is ShiftType.RENFORT:
            raise ValueError("reinforcement slots belong in reinforcement_slots")
        return value


class ReinforcementSlot(_SlotModel):
    day: int = Field(ge=1, le=7)
    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=1, le=24)
    label: str = "Renfort"

    @model_validator(mode="after")
    def validate_hours(self) -> "ReinforcementSlot":
        if self.end_hour <= self.start_hour:
            raise ValueError("end_hour must be after start_hour")
        return self


class TemplateConfiguration(_SlotModel):
    guard_slots: list[GuardSlot] = Field(default_factory=list)
    reinforcement_slots: list[ReinforcementSlot] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.guard_slots and not self.reinforcement_slots


@dataclass
class TemplateCheck:
    """Outcome of validating a template before it is stored."""

    errors: list[PlanningWarning] = field(default_factory=list)
    warnings: list[PlanningWarning] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def check_template(name: str, configuration: TemplateConfiguration, *, name_taken: bool = False) -> TemplateCheck:
    check = TemplateCheck()
    if not name.strip():
        check.errors.append(PlanningWarning("empty_name", "Template name cannot be empty", "error"))
    if name_taken:
        check.errors.append(PlanningWarning("duplicate_name", f"A template named '{name}' already exists", "error"))

    if configuration.is_empty:
        check.warnings.append(PlanningWarning("no_slots", "Template defines no guard or reinforcement slot"))

    for index, slot in enumerate(configuration.guard_slots, start=1):
        expected = _EXPECTED_DURATIONS.get(slot.type)
        if expected is not None and slot.duration_hours != expected:
            check.warnings.append(
                PlanningWarning(
                    "duration_mismatch",
                    f"Guard slot {index} is typed {slot.type.value} but lasts {slot.duration_hours}h",
                )
            )
    return check


def _load_template_from_json() -> tuple[str, TemplateConfiguration]:
    with resources.files("villa_planning.services.data").joinpath("default_template.json").open(
        "r", encoding="utf-8"
    ) as handle:
        payload = json.load(handle)
    return payload["name"], TemplateConfiguration.model_validate(payload["configuration"])


@lru_cache(maxsize=1)
def load_default_template() -> tuple[str, TemplateConfiguration]:
    """Return the name and configuration of the weekly cycle bundled with the application."""

    return _load_template_from_json()
