from .absence import Absence, AbsenceStatus, AbsenceType
from .appointment import (
    Appointment,
    AppointmentParticipant,
    AppointmentStatus,
    AppointmentType,
    ParticipantPresence,
)
from .counter import CounterKind, CounterMovement, DayCounter
from .on_call import OnCallDuty
from .planning import (
    MonthStatus,
    PlanningMonth,
    PlanningPublication,
    Shift,
    ShiftStatus,
    ShiftType,
)
from .template import ShiftTemplate
from .villa import User, Villa

__all__ = [
    "Absence",
    "AbsenceStatus",
    "AbsenceType",
    "Appointment",
    "AppointmentParticipant",
    "AppointmentStatus",
    "AppointmentType",
    "ParticipantPresence",
    "CounterKind",
    "CounterMovement",
    "DayCounter",
    "OnCallDuty",
    "MonthStatus",
    "PlanningMonth",
    "PlanningPublication",
    "Shift",
    "ShiftStatus",
    "ShiftType",
    "ShiftTemplate",
    "User",
    "Villa",
]
