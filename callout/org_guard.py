"""
Org-boundary lookups for the records the callout engine reads.

Every resolver returns NotFound for records that are missing *or* belong to
another organization, so callers never learn that a record exists in
another tenant.
"""

from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from callout.errors import NotFound
from callout.models import (
    Assignment,
    CalloutEvent,
    Classification,
    LeaveRequest,
    LeaveStatus,
    OtReason,
    ScheduledShift,
    ShiftTemplate,
    Team,
    User,
    classification_key,
    event_key,
    ot_reason_key,
    shift_key,
    team_key,
    template_key,
    user_key,
)


class Reader(Protocol):
    def get(self, key: str) -> object | None: ...

    def all(self) -> list: ...


@dataclass(frozen=True, slots=True)
class ShiftContext:
    shift: ScheduledShift
    template: ShiftTemplate
    team_name: str | None = None

    @property
    def org_id(self) -> UUID:
        return self.shift.org_id

    @property
    def date(self) -> date:
        return self.shift.date

    @property
    def duration_hours(self) -> float:
        return self.template.duration_minutes / 60


def resolve_shift(reader: Reader, shift_id: UUID, org_id: UUID) -> ShiftContext:
    shift = reader.get(shift_key(shift_id))
    if not isinstance(shift, ScheduledShift) or shift.org_id != org_id:
        raise NotFound("Scheduled shift not found")

    template = reader.get(template_key(shift.shift_template_id))
    if not isinstance(template, ShiftTemplate):
        raise NotFound("Scheduled shift not found")

    team_name = None
    if shift.team_id is not None:
        team = reader.get(team_key(shift.team_id))
        if isinstance(team, Team):
            team_name = team.name

    return ShiftContext(shift=shift, template=template, team_name=team_name)


def verify_ot_reason(reader: Reader, reason_id: UUID, org_id: UUID) -> OtReason:
    reason = reader.get(ot_reason_key(reason_id))
    if not isinstance(reason, OtReason) or reason.org_id != org_id:
        raise NotFound("OT reason not found")
    return reason


def verify_classification(
    reader: Reader, classification_id: UUID, org_id: UUID
) -> Classification:
    classification = reader.get(classification_key(classification_id))
    if not isinstance(classification, Classification) or classification.org_id != org_id:
        raise NotFound("Classification not found")
    return classification


def resolve_user(reader: Reader, user_id: UUID, org_id: UUID) -> User:
    """Any user in the org, active or not."""
    user = reader.get(user_key(user_id))
    if not isinstance(user, User) or user.org_id != org_id:
        raise NotFound("User not found")
    return user


def resolve_active_user(reader: Reader, user_id: UUID, org_id: UUID) -> User:
    user = resolve_user(reader, user_id, org_id)
    if not user.is_active:
        raise NotFound("User not found")
    return user


def resolve_event(
    reader: Reader, event_id: UUID, org_id: UUID
) -> tuple[CalloutEvent, ShiftContext]:
    event = reader.get(event_key(event_id))
    if not isinstance(event, CalloutEvent):
        raise NotFound("Callout event not found")
    try:
        context = resolve_shift(reader, event.scheduled_shift_id, org_id)
    except NotFound:
        raise NotFound("Callout event not found") from None
    return event, context


def active_users(
    reader: Reader, org_id: UUID, classification_id: UUID | None = None
) -> list[User]:
    return [
        u
        for u in reader.all()
        if isinstance(u, User)
        and u.org_id == org_id
        and u.is_active
        and (classification_id is None or u.classification_id == classification_id)
    ]


def assigned_user_ids(reader: Reader, shift_id: UUID) -> set[UUID]:
    return {
        a.user_id
        for a in reader.all()
        if isinstance(a, Assignment) and a.scheduled_shift_id == shift_id
    }


def users_on_approved_leave(
    reader: Reader, day: date, user_ids: set[UUID]
) -> set[UUID]:
    return {
        lr.user_id
        for lr in reader.all()
        if isinstance(lr, LeaveRequest)
        and lr.user_id in user_ids
        and lr.status == LeaveStatus.APPROVED
        and lr.covers(day)
    }
