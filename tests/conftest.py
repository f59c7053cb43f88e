import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from villa_planning.db import models  # noqa: F401  # ensure model metadata is loaded
from villa_planning.db import session as db_session
from villa_planning.db.base import Base
from villa_planning.db.models.absence import AbsenceType
from villa_planning.db.models.template import ShiftTemplate
from villa_planning.db.models.villa import User, Villa
from villa_planning.main import create_application
from villa_planning.repositories import absence as absence_repo
from villa_planning.repositories import template as template_repo
from villa_planning.repositories import villa as villa_repo

from .factories import build_absence_type_create, build_template_create, build_user_create, build_villa_create


@pytest.fixture()
def database_url() -> str:
    return os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture()
async def async_engine(database_url: str) -> AsyncIterator[AsyncEngine]:
    """Provide a per-test async engine, resetting schema before each run."""
    engine = create_async_engine(database_url, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture()
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def villa(session: AsyncSession) -> Villa:
    return await villa_repo.create_villa(session, build_villa_create())


@pytest.fixture()
async def educator(session: AsyncSession, villa: Villa) -> User:
    return await villa_repo.create_user(session, build_user_create(villa_id=villa.id))


@pytest.fixture()
async def sick_leave(session: AsyncSession) -> AbsenceType:
    return await absence_repo.create_absence_type(session, build_absence_type_create())


@pytest.fixture()
async def weekday_template(session: AsyncSession) -> ShiftTemplate:
    return await template_repo.create_template(session, build_template_create())


@pytest.fixture()
async def api_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    app = create_application()

    async def _get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[db_session.get_db_session] = _get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
async def api_villa(api_client: AsyncClient) -> dict:
    response = await api_client.post("/api/villas", json=build_villa_create().model_dump(by_alias=True))
    assert response.status_code == 201
    return response.json()


@pytest.fixture()
async def api_educator(api_client: AsyncClient, api_villa: dict) -> dict:
    payload = build_user_create(villa_id=api_villa["id"]).model_dump(mode="json", by_alias=True)
    response = await api_client.post("/api/users", json=payload)
    assert response.status_code == 201
    return response.json()
