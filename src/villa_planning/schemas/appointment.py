from datetime import datetime

from pydantic import Field

from villa_planning.db.models.appointment import AppointmentStatus, AppointmentType, ParticipantPresence
from villa_planning.schemas.common import ApiModel, LocalDatetime


class ParticipantRead(ApiModel):
    user_id: int
    presence: ParticipantPresence


class AppointmentCreate(ApiModel):
    organizer_id: int
    type: AppointmentType
    subject: str = Field(min_length=1, max_length=200)
    location: str | None = None
    description: str | None = None
    start_at: LocalDatetime
    end_at: LocalDatetime
    impacts_duty: bool = False
    participant_ids: list[int] = Field(default_factory=list)


class AppointmentRead(ApiModel):
    id: int
    organizer_id: int
    type: AppointmentType
    status: AppointmentStatus
    subject: str
    location: str | None = None
    description: str | None = None
    start_at: datetime
    end_at: datetime
    impacts_duty: bool
    participants: list[ParticipantRead] = []


class AppointmentStatusUpdate(ApiModel):
    status: AppointmentStatus


class PresenceUpdate(ApiModel):
    presence: ParticipantPresence
