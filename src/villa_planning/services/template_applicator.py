"""Expand weekly duty templates into draft shifts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.core.errors import InvalidRequestError, NotFoundError
from villa_planning.db.models.planning import MonthStatus, PlanningMonth, Shift, ShiftStatus, ShiftType
from villa_planning.db.models.template import ShiftTemplate
from villa_planning.repositories import planning as planning_repo
from villa_planning.repositories import template as template_repo
from villa_planning.repositories import villa as villa_repo
from villa_planning.schemas.template import TemplateCreate
from villa_planning.services.dates import compute_working_days, iter_week_starts, month_bounds
from villa_planning.services.templates import TemplateConfiguration, load_default_template

logger = logging.getLogger(__name__)

Scope = Literal["villa", "all", "reinforcement"]

MAX_RANGE_DAYS = 366


@dataclass(frozen=True)
class SlotInstance:
    start_at: datetime
    end_at: datetime
    type: ShiftType
    slot_key: str
    label: str | None = None


@dataclass(frozen=True)
class SkippedWeek:
    villa_id: int | None
    week_start: date
    reason: Literal["already_populated", "published"]


@dataclass
class TemplateApplication:
    created: int = 0
    plannings: list[PlanningMonth] = field(default_factory=list)
    skipped_weeks: list[SkippedWeek] = field(default_factory=list)


def expand_week(
    configuration: TemplateConfiguration, monday: date, *, include_guard: bool = True
) -> list[SlotInstance]:
    """Instantiate every slot of *configuration* for the week starting on *monday*."""

    instances: list[SlotInstance] = []
    if include_guard:
        for index, slot in enumerate(configuration.guard_slots):
            start_at = datetime.combine(monday + timedelta(days=slot.start_day - 1), time(slot.start_hour))
            instances.append(
                SlotInstance(
                    start_at,
                    start_at + timedelta(hours=slot.duration_hours),
                    slot.type,
                    f"{monday.isoformat()}/guard-{index}",
                    slot.label,
                )
            )
    for index, slot in enumerate(configuration.reinforcement_slots):
        day_start = datetime.combine(monday + timedelta(days=slot.day - 1), time.min)
        instances.append(
            SlotInstance(
                day_start + timedelta(hours=slot.start_hour),
                day_start + timedelta(hours=slot.end_hour),
                ShiftType.RENFORT,
                f"{monday.isoformat()}/reinforcement-{index}",
                slot.label,
            )
        )
    instances.sort(key=lambda instance: (instance.start_at, instance.type.value))
    return instances


class _PlanningCache:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._plannings: dict[tuple[int | None, int, int], PlanningMonth] = {}
        self.touched: dict[int, PlanningMonth] = {}

    async def get(self, villa_id: int | None, moment: datetime) -> PlanningMonth:
        key = (villa_id, moment.year, moment.month)
        if key not in self._plannings:
            self._plannings[key], _ = await planning_repo.get_or_create_planning_month(
                self._session, villa_id, moment.year, moment.month
            )
        return self._plannings[key]


async def _apply_to_villa(
    session: AsyncSession,
    template: ShiftTemplate,
    configuration: TemplateConfiguration,
    villa_id: int | None,
    start_date: date,
    end_date: date,
    *,
    include_guard: bool,
    cache: _PlanningCache,
    result: TemplateApplication,
) -> None:
    for monday in iter_week_starts(start_date, end_date):
        instances = [
            instance
            for instance in expand_week(configuration, monday, include_guard=include_guard)
            if start_date <= instance.start_at.date() <= end_date
        ]
        if not instances:
            continue

        existing = await planning_repo.find_template_slot_keys(
            session, template.id, villa_id, [instance.slot_key for instance in instances]
        )
        fresh = [instance for instance in instances if instance.slot_key not in existing]
        if not fresh:
            result.skipped_weeks.append(SkippedWeek(villa_id, monday, "already_populated"))
            continue

        blocked = False
        for instance in fresh:
            planning = await cache.get(villa_id, instance.start_at)
            if planning.status is MonthStatus.PUBLISHED:
                blocked = True
                continue
            session.add(
                Shift(
                    planning_month_id=planning.id,
                    villa_id=villa_id,
                    template_id=template.id,
                    template_slot=instance.slot_key,
                    start_at=instance.start_at,
                    end_at=instance.end_at,
                    type=instance.type,
                    status=ShiftStatus.DRAFT,
                    working_days=compute_working_days(instance.start_at, instance.end_at, instance.type),
                    comment=f"Generated from template {template.name}",
                    is_from_template=True,
                )
            )
            cache.touched[planning.id] = planning
            result.created += 1
        if blocked:
            result.skipped_weeks.append(SkippedWeek(villa_id, monday, "published"))


async def _resolve_targets(session: AsyncSession, scope: Scope, villa_id: int | None) -> list[int | None]:
    if scope == "reinforcement":
        return [None]
    if scope == "all":
        return [villa.id for villa in await villa_repo.list_villas(session)]
    if villa_id is None:
        raise InvalidRequestError("villaId is required when scope is 'villa'")
    if await villa_repo.get_villa(session, villa_id) is None:
        raise NotFoundError(f"Villa #{villa_id} not found")
    return [villa_id]


async def apply_template(
    session: AsyncSession,
    template: ShiftTemplate,
    start_date: date,
    end_date: date,
    scope: Scope,
    villa_id: int | None = None,
) -> TemplateApplication:
    """Create the draft shifts described by *template* between *start_date* and *end_date*.

    Slots already generated from the same template for a villa are left alone;
    weeks where nothing new was created are reported in ``skipped_weeks``.
    """

    if start_date > end_date:
        raise InvalidRequestError("startDate must not be after endDate")
    if (end_date - start_date).days >= MAX_RANGE_DAYS:
        raise InvalidRequestError(f"Date range cannot exceed {MAX_RANGE_DAYS} days")

    targets = await _resolve_targets(session, scope, villa_id)
    configuration = TemplateConfiguration.model_validate(template.configuration)
    result = TemplateApplication()
    cache = _PlanningCache(session)

    for target in targets:
        await _apply_to_villa(
            session,
            template,
            configuration,
            target,
            start_date,
            end_date,
            include_guard=scope != "reinforcement",
            cache=cache,
            result=result,
        )

    if result.created:
        template_repo.record_usage(template)
    await session.flush()
    result.plannings = sorted(cache.touched.values(), key=lambda planning: planning.id)
    logger.info(
        "Template '%s' applied from %s to %s (scope %s): %d shift(s) created, %d week(s) skipped",
        template.name,
        start_date,
        end_date,
        scope,
        result.created,
        len(result.skipped_weeks),
    )
    return result


async def ensure_default_template(session: AsyncSession) -> ShiftTemplate:
    """Return the default template, storing the bundled weekly cycle when none is flagged."""

    template = await template_repo.get_default_template(session)
    if template is not None:
        return template
    name, configuration = load_default_template()
    template = await template_repo.get_template_by_name(session, name)
    if template is not None:
        return template
    return await template_repo.create_template(
        session, TemplateCreate(name=name, configuration=configuration, is_default=True)
    )


async def generate_villa_month(
    session: AsyncSession, villa_id: int, year: int, month: int, *, template_id: int | None = None
) -> tuple[PlanningMonth, int]:
    """Apply a template to one villa for a whole month and return its month schedule."""

    if await villa_repo.get_villa(session, villa_id) is None:
        raise NotFoundError(f"Villa #{villa_id} not found")
    if template_id is not None:
        template = await template_repo.get_template(session, template_id)
        if template is None:
            raise NotFoundError(f"Template #{template_id} not found")
    else:
        template = await ensure_default_template(session)

    first_day, last_day = month_bounds(year, month)
    result = await apply_template(session, template, first_day, last_day, "villa", villa_id)
    planning, _ = await planning_repo.get_or_create_planning_month(session, villa_id, year, month)
    return planning, result.created
