from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column

from villa_planning.db.base import Base


class AbsenceStatus(str, Enum):  # type: ignore[call-arg]
    PENDING = "pending"
    APPROVED = "approved"
    REFUSED = "refused"
    CANCELLED = "cancelled"


class AbsenceType(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(120), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(7))
    deducts_from_counter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Seasonal counters run from June to May instead of the calendar year.
    seasonal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    default_allocation: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class Absence(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    absence_type_id: Mapped[int] = mapped_column(ForeignKey("absencetype.id", ondelete="RESTRICT"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[AbsenceStatus] = mapped_column(
        SqlEnum(
            AbsenceStatus,
            name="absencestatus",
            create_type=False,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=AbsenceStatus.PENDING,
    )
    deducts_from_counter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    working_days: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    deducted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
