"""Seed a handful of baseline records for local development.

Run this after applying Alembic migrations:

    python -m alembic upgrade head
    python scripts/seed_demo.py
"""

from __future__ import annotations

import asyncio
from datetime import date
from itertools import cycle

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from villa_planning.core.config import get_settings
from villa_planning.db.models.absence import AbsenceType
from villa_planning.db.models.villa import User, Villa
from villa_planning.services import counters
from villa_planning.services.template_applicator import ensure_default_template, generate_villa_month

VILLAS = [
    ("Les Tilleuls", "#93C5FD"),
    ("Les Cèdres", "#86EFAC"),
    ("Les Glycines", "#F9A8D4"),
]

EDUCATORS = [
    ("Alice", "Dupont"),
    ("Bastien", "Favre"),
    ("Camille", "Perret"),
    ("David", "Roux"),
    ("Estelle", "Girard"),
    ("Félix", "Monod"),
    ("Géraldine", "Weber"),
    ("Hugo", "Lambert"),
    ("Isabelle", "Morel"),
]

ABSENCE_TYPES = [
    AbsenceType(
        code="CP",
        label="Congés payés",
        color="#FCA5A5",
        deducts_from_counter=True,
        seasonal=True,
        default_allocation=25,
    ),
    AbsenceType(
        code="RTT",
        label="Réduction du temps de travail",
        color="#FCA5A5",
        deducts_from_counter=True,
        default_allocation=10,
    ),
    AbsenceType(code="MAL", label="Arrêt maladie", color="#FDBA74"),
    AbsenceType(code="FOR", label="Formation", color="#A5B4FC"),
]


async def seed() -> None:
    settings = get_settings()
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as session:
        existing_types = await session.scalar(select(func.count(AbsenceType.id)))
        if not existing_types:
            session.add_all(ABSENCE_TYPES)

        existing_villas = await session.scalar(select(func.count(Villa.id)))
        if not existing_villas:
            villas = [Villa(name=name, color=color) for name, color in VILLAS]
            session.add_all(villas)
            await session.flush()
            for (first_name, last_name), villa in zip(EDUCATORS, cycle(villas), strict=False):
                session.add(
                    User(
                        first_name=first_name,
                        last_name=last_name,
                        email=f"{first_name.lower()}.{last_name.lower()}@example.org",
                        roles=["ROLE_EDUCATOR"],
                        villa_id=villa.id,
                    )
                )

        await session.flush()
        await ensure_default_template(session)
        await _open_counters(session, date.today())
        await _generate_current_month(session, date.today())
        await session.commit()

    await engine.dispose()
    print("Seed data inserted (skipped existing rows).")


async def _open_counters(session: AsyncSession, today: date) -> None:
    users = (await session.execute(select(User))).scalars().all()
    absence_types = (
        await session.execute(select(AbsenceType).where(AbsenceType.deducts_from_counter.is_(True)))
    ).scalars().all()
    for user in users:
        await counters.get_or_create(session, counters.annual_key(user.id, today.year))
        for absence_type in absence_types:
            await counters.get_or_create(session, counters.leave_key(user.id, absence_type, today))


async def _generate_current_month(session: AsyncSession, today: date) -> None:
    villas = (await session.execute(select(Villa).order_by(Villa.id))).scalars().all()
    for villa in villas:
        planning, created = await generate_villa_month(session, villa.id, today.year, today.month)
        print(f"{villa.name}: planning #{planning.id}, {created} shift(s) created")


if __name__ == "__main__":
    asyncio.run(seed())
