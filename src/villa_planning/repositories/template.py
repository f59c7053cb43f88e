from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.models.template import ShiftTemplate
from villa_planning.schemas.template import TemplateCreate, TemplateUpdate


async def list_templates(session: AsyncSession) -> list[ShiftTemplate]:
    result = await session.execute(select(ShiftTemplate).order_by(ShiftTemplate.name))
    return list(result.scalars().all())


async def get_template(session: AsyncSession, template_id: int) -> ShiftTemplate | None:
    return await session.get(ShiftTemplate, template_id)


async def get_template_by_name(session: AsyncSession, name: str) -> ShiftTemplate | None:
    result = await session.execute(select(ShiftTemplate).where(ShiftTemplate.name == name))
    return result.scalars().first()


async def get_default_template(session: AsyncSession) -> ShiftTemplate | None:
    result = await session.execute(
        select(ShiftTemplate).where(ShiftTemplate.is_default.is_(True)).order_by(ShiftTemplate.id)
    )
    return result.scalars().first()


async def _clear_default_flag(session: AsyncSession) -> None:
    await session.execute(
        update(ShiftTemplate)
        .where(ShiftTemplate.is_default.is_(True))
        .values(is_default=False)
        .execution_options(synchronize_session="fetch")
    )


async def create_template(session: AsyncSession, payload: TemplateCreate) -> ShiftTemplate:
    if payload.is_default:
        await _clear_default_flag(session)
    template = ShiftTemplate(
        name=payload.name,
        description=payload.description,
        configuration=payload.configuration.model_dump(mode="json"),
        is_default=payload.is_default,
    )
    session.add(template)
    await session.flush()
    await session.refresh(template)
    return template


async def update_template(session: AsyncSession, template: ShiftTemplate, payload: TemplateUpdate) -> ShiftTemplate:
    data = payload.model_dump(exclude_unset=True, exclude={"configuration"})
    if data.get("is_default"):
        await _clear_default_flag(session)
    for field, value in data.items():
        setattr(template, field, value)
    if payload.configuration is not None:
        template.configuration = payload.configuration.model_dump(mode="json")
    await session.flush()
    await session.refresh(template)
    return template


def record_usage(template: ShiftTemplate) -> None:
    template.usage_count = (template.usage_count or 0) + 1
    template.last_used_at = datetime.now()


async def delete_template(session: AsyncSession, template: ShiftTemplate) -> None:
    await session.delete(template)
