from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from villa_planning.db.base import Base


class Villa(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#93C5FD")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


class User(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[str] = mapped_column(String(180), nullable=False, unique=True)
    roles: Mapped[list[str]] = mapped_column(JSON, default=list)
    villa_id: Mapped[Optional[int]] = mapped_column(ForeignKey("villa.id", ondelete="RESTRICT"), index=True)
    color: Mapped[Optional[str]] = mapped_column(String(7))
    hired_on: Mapped[Optional[date]] = mapped_column(Date)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
