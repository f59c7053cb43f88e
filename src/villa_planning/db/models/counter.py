from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column

from villa_planning.db.base import Base


class CounterKind(str, Enum):  # type: ignore[call-arg]
    ANNUAL_DAYS = "annual_days"
    LEAVE = "leave"


class DayCounter(Base):
    __table_args__ = (
        UniqueConstraint("user_id", "kind", "category", "period", name="uq_daycounter_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    kind: Mapped[CounterKind] = mapped_column(
        SqlEnum(
            CounterKind,
            name="counterkind",
            create_type=False,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    # Absence type code for leave counters, empty for annual counters.
    category: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    period: Mapped[str] = mapped_column(String(9), nullable=False, index=True)
    opening_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    allocated: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    consumed: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    adjustment: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    adjustment_comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def remaining(self) -> float:
        return self.opening_balance + self.allocated - self.consumed + self.adjustment

    @property
    def is_negative(self) -> bool:
        return self.remaining < 0


class CounterMovement(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    counter_id: Mapped[int] = mapped_column(ForeignKey("daycounter.id", ondelete="CASCADE"), nullable=False, index=True)
    operation: Mapped[str] = mapped_column(String(16), nullable=False)
    days: Mapped[float] = mapped_column(Float, nullable=False)
    consumed_before: Mapped[float] = mapped_column(Float, nullable=False)
    consumed_after: Mapped[float] = mapped_column(Float, nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
