from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_planning.db.session import get_db_session
from villa_planning.repositories import template as template_repo
from villa_planning.schemas.common import WarningRead
from villa_planning.schemas.template import TemplateCreate, TemplateRead, TemplateUpdate, TemplateWriteResponse
from villa_planning.services.template_applicator import ensure_default_template
from villa_planning.services.templates import TemplateCheck, check_template

router = APIRouter()


def _raise_on_errors(check: TemplateCheck) -> None:
    if not check.valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="; ".join(error.message for error in check.errors),
        )


@router.get("/", response_model=list[TemplateRead])
async def list_templates(session: Annotated[AsyncSession, Depends(get_db_session)]) -> list[TemplateRead]:
    templates = await template_repo.list_templates(session)
    return [TemplateRead.model_validate(template) for template in templates]


@router.get("/default", response_model=TemplateRead)
async def get_default_template(session: Annotated[AsyncSession, Depends(get_db_session)]) -> TemplateRead:
    template = await ensure_default_template(session)
    await session.commit()
    return TemplateRead.model_validate(template)


@router.get("/{template_id}", response_model=TemplateRead)
async def get_template(
    template_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> TemplateRead:
    template = await template_repo.get_template(session, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return TemplateRead.model_validate(template)


@router.post("/", response_model=TemplateWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: TemplateCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> TemplateWriteResponse:
    name_taken = await template_repo.get_template_by_name(session, payload.name) is not None
    check = check_template(payload.name, payload.configuration, name_taken=name_taken)
    _raise_on_errors(check)
    template = await template_repo.create_template(session, payload)
    await session.commit()
    return TemplateWriteResponse(
        template=TemplateRead.model_validate(template),
        warnings=[WarningRead.model_validate(warning) for warning in check.warnings],
    )


@router.put("/{template_id}", response_model=TemplateWriteResponse)
async def update_template(
    template_id: int,
    payload: TemplateUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> TemplateWriteResponse:
    template = await template_repo.get_template(session, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")

    name = payload.name if payload.name is not None else template.name
    name_taken = False
    if name != template.name:
        name_taken = await template_repo.get_template_by_name(session, name) is not None
    current = TemplateRead.model_validate(template).configuration
    check = check_template(name, payload.configuration or current, name_taken=name_taken)
    _raise_on_errors(check)

    template = await template_repo.update_template(session, template, payload)
    await session.commit()
    return TemplateWriteResponse(
        template=TemplateRead.model_validate(template),
        warnings=[WarningRead.model_validate(warning) for warning in check.warnings],
    )


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(template_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]) -> Response:
    template = await template_repo.get_template(session, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    await template_repo.delete_template(session, template)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
