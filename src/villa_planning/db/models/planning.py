from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column

from villa_planning.db.base import Base


class MonthStatus(str, Enum):  # type: ignore[call-arg]
    DRAFT = "draft"
    VALIDATED = "validated"
    PUBLISHED = "published"


class ShiftType(str, Enum):  # type: ignore[call-arg]
    GARDE_24H = "garde_24h"
    GARDE_48H = "garde_48h"
    GARDE_WEEKEND = "garde_weekend"
    RENFORT = "renfort"
    AUTRE = "autre"

    @property
    def counts_weekends(self) -> bool:
        return self is ShiftType.GARDE_WEEKEND


class ShiftStatus(str, Enum):  # type: ignore[call-arg]
    DRAFT = "draft"
    VALIDATED = "validated"
    TO_REPLACE_ABSENCE = "to_replace_absence"
    TO_REPLACE_RDV = "to_replace_rdv"
    TO_REPLACE_SCHEDULE_CONFLICT = "to_replace_schedule_conflict"
    CANCELLED = "cancelled"

    @property
    def pending_replacement(self) -> bool:
        return self in _PENDING_REPLACEMENT


_PENDING_REPLACEMENT = frozenset(
    {
        ShiftStatus.TO_REPLACE_ABSENCE,
        ShiftStatus.TO_REPLACE_RDV,
        ShiftStatus.TO_REPLACE_SCHEDULE_CONFLICT,
    }
)


def _enum_column(enum_cls: type[Enum], name: str) -> SqlEnum:
    return SqlEnum(
        enum_cls,
        name=name,
        create_type=False,
        values_callable=lambda enum: [member.value for member in enum],
    )


class PlanningMonth(Base):
    __table_args__ = (
        UniqueConstraint("villa_id", "year", "month", name="uq_planningmonth_villa_period"),
        # NULL villas escape the unique constraint above.
        Index(
            "ux_planningmonth_pool_period",
            "year",
            "month",
            unique=True,
            postgresql_where=text("villa_id IS NULL"),
            sqlite_where=text("villa_id IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # A null villa is the shared reinforcement pool.
    villa_id: Mapped[Optional[int]] = mapped_column(ForeignKey("villa.id", ondelete="CASCADE"), index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[MonthStatus] = mapped_column(
        _enum_column(MonthStatus, "monthstatus"), nullable=False, default=MonthStatus.DRAFT
    )
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    validated_by: Mapped[Optional[str]] = mapped_column(String(120))
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    published_by: Mapped[Optional[str]] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class Shift(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    planning_month_id: Mapped[int] = mapped_column(
        ForeignKey("planningmonth.id", ondelete="CASCADE"), nullable=False, index=True
    )
    villa_id: Mapped[Optional[int]] = mapped_column(ForeignKey("villa.id", ondelete="RESTRICT"), index=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("user.id", ondelete="SET NULL"), index=True)
    template_id: Mapped[Optional[int]] = mapped_column(ForeignKey("shifttemplate.id", ondelete="SET NULL"))
    # "<week monday>/<slot>" of the template slot this shift was generated from.
    template_slot: Mapped[Optional[str]] = mapped_column(String(40), index=True)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    type: Mapped[ShiftType] = mapped_column(_enum_column(ShiftType, "shifttype"), nullable=False)
    status: Mapped[ShiftStatus] = mapped_column(
        _enum_column(ShiftStatus, "shiftstatus"), nullable=False, default=ShiftStatus.DRAFT
    )
    working_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment: Mapped[Optional[str]] = mapped_column(Text)
    is_from_template: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Set once the working days have been deducted from a counter at publication.
    deducted_days: Mapped[Optional[int]] = mapped_column(Integer)
    deducted_user_id: Mapped[Optional[int]] = mapped_column(Integer)
    deducted_year: Mapped[Optional[int]] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def duration_hours(self) -> float:
        return (self.end_at - self.start_at).total_seconds() / 3600


class PlanningPublication(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    planning_month_id: Mapped[int] = mapped_column(
        ForeignKey("planningmonth.id", ondelete="CASCADE"), nullable=False, index=True
    )
    published_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    published_by: Mapped[Optional[str]] = mapped_column(String(120))
    deducted_shifts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deducted_days: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    warnings: Mapped[list[dict]] = mapped_column(JSON, default=list)
    failures: Mapped[list[dict]] = mapped_column(JSON, default=list)
