"""
Domain models for the overtime callout engine and the roster records it reads.
"""

from datetime import date, datetime, time
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class Role(StrEnum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    EMPLOYEE = "employee"


class CalloutStatus(StrEnum):
    OPEN = "open"
    FILLED = "filled"
    CANCELLED = "cancelled"


class CalloutResponse(StrEnum):
    ACCEPTED = "accepted"
    DECLINED = "declined"
    NO_ANSWER = "no_answer"


class LeaveStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"


# Roster records (written by collaborators, read by the engine)


class Organization(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    slug: str
    timezone: str = "America/Los_Angeles"


class Classification(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    org_id: UUID
    name: str
    abbreviation: str
    is_active: bool = True


class OtReason(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    org_id: UUID
    code: str
    name: str
    is_active: bool = True


class Team(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    org_id: UUID
    name: str


class ShiftTemplate(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    org_id: UUID
    name: str
    start_time: time
    end_time: time
    crosses_midnight: bool = False
    duration_minutes: int = Field(gt=0)


class ScheduledShift(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    org_id: UUID
    shift_template_id: UUID
    date: date
    team_id: UUID | None = None
    required_headcount: int = 1
    notes: str | None = None


class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    org_id: UUID
    employee_id: str | None = None
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    role: Role = Role.EMPLOYEE
    classification_id: UUID | None = None
    hire_date: date | None = None
    seniority_date: date | None = None
    is_active: bool = True


class LeaveRequest(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    start_date: date
    end_date: date
    hours: float | None = None
    reason: str | None = None
    status: LeaveStatus = LeaveStatus.PENDING
    reviewed_by: UUID | None = None
    reviewer_notes: str | None = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class Assignment(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    scheduled_shift_id: UUID
    user_id: UUID
    is_overtime: bool = False
    is_trade: bool = False
    notes: str | None = None
    created_by: UUID
    created_at: datetime | None = None


# Callout engine records


class CalloutEvent(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    scheduled_shift_id: UUID
    initiated_by: UUID
    ot_reason_id: UUID | None = None
    reason_text: str | None = None
    classification_id: UUID | None = None
    status: CalloutStatus = CalloutStatus.OPEN
    created_at: datetime
    updated_at: datetime


class CalloutAttempt(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    event_id: UUID
    user_id: UUID
    list_position: int
    contacted_at: datetime
    response: CalloutResponse
    ot_hours_at_contact: float = 0.0
    notes: str | None = None


class OtHours(BaseModel):
    user_id: UUID
    fiscal_year: int
    classification_id: UUID | None = None  # None is the general OT ledger
    hours_worked: float = Field(default=0.0, ge=0)
    hours_declined: float = Field(default=0.0, ge=0)
    updated_at: datetime | None = None


Record = (
    Organization
    | Classification
    | OtReason
    | Team
    | ShiftTemplate
    | ScheduledShift
    | User
    | LeaveRequest
    | Assignment
    | CalloutEvent
    | CalloutAttempt
    | OtHours
)


def organization_key(org_id: UUID) -> str:
    return f"organization:{org_id}"


def classification_key(classification_id: UUID) -> str:
    return f"classification:{classification_id}"


def ot_reason_key(reason_id: UUID) -> str:
    return f"ot_reason:{reason_id}"


def team_key(team_id: UUID) -> str:
    return f"team:{team_id}"


def template_key(template_id: UUID) -> str:
    return f"shift_template:{template_id}"


def shift_key(shift_id: UUID) -> str:
    return f"shift:{shift_id}"


def user_key(user_id: UUID) -> str:
    return f"user:{user_id}"


def leave_key(leave_id: UUID) -> str:
    return f"leave:{leave_id}"


def assignment_key(shift_id: UUID, user_id: UUID) -> str:
    # one assignment per (shift, user)
    return f"assignment:{shift_id}:{user_id}"


def event_key(event_id: UUID) -> str:
    return f"callout_event:{event_id}"


def attempt_key(event_id: UUID, list_position: int) -> str:
    # unique per (event, position)
    return f"callout_attempt:{event_id}:{list_position}"


def ot_hours_key(
    user_id: UUID, fiscal_year: int, classification_id: UUID | None = None
) -> str:
    return f"ot_hours:{user_id}:{fiscal_year}:{classification_id or 'general'}"


def record_key(record: Record) -> str:
    """Canonical storage key for any record."""
    match record:
        case Organization():
            return organization_key(record.id)
        case Classification():
            return classification_key(record.id)
        case OtReason():
            return ot_reason_key(record.id)
        case Team():
            return team_key(record.id)
        case ShiftTemplate():
            return template_key(record.id)
        case ScheduledShift():
            return shift_key(record.id)
        case User():
            return user_key(record.id)
        case LeaveRequest():
            return leave_key(record.id)
        case Assignment():
            return assignment_key(record.scheduled_shift_id, record.user_id)
        case CalloutEvent():
            return event_key(record.id)
        case CalloutAttempt():
            return attempt_key(record.event_id, record.list_position)
        case OtHours():
            return ot_hours_key(
                record.user_id, record.fiscal_year, record.classification_id
            )
    raise TypeError(f"not a storable record: {type(record).__name__}")
