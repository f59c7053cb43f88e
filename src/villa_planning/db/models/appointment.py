from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villa_planning.db.base import Base


class AppointmentType(str, Enum):  # type: ignore[call-arg]
    REQUEST = "request"
    SUMMONS = "summons"


class AppointmentStatus(str, Enum):  # type: ignore[call-arg]
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REFUSED = "refused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantPresence(str, Enum):  # type: ignore[call-arg]
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ABSENT = "absent"


def _enum_column(enum_cls: type[Enum], name: str) -> SqlEnum:
    return SqlEnum(
        enum_cls,
        name=name,
        create_type=False,
        values_callable=lambda enum: [member.value for member in enum],
    )


class Appointment(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    organizer_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    type: Mapped[AppointmentType] = mapped_column(_enum_column(AppointmentType, "appointmenttype"), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        _enum_column(AppointmentStatus, "appointmentstatus"), nullable=False, default=AppointmentStatus.PENDING
    )
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    impacts_duty: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    participants: Mapped[list["AppointmentParticipant"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="AppointmentParticipant.id"
    )


class AppointmentParticipant(Base):
    __table_args__ = (UniqueConstraint("appointment_id", "user_id", name="uq_participant_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    presence: Mapped[ParticipantPresence] = mapped_column(
        _enum_column(ParticipantPresence, "participantpresence"),
        nullable=False,
        default=ParticipantPresence.PENDING,
    )
