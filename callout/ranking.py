"""
Callout list ranking.

Candidates are ordered by:
  1. availability (available first)
  2. OT hours worked this fiscal year, ascending
  3. seniority date, ascending, with no date sorting last
  4. user id, so the order is total and reproducible
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from uuid import UUID

from pydantic import BaseModel

from callout.auth import Caller, require_schedule_manager
from callout.ledger import fiscal_year_for, hours_worked_by_user
from callout.models import Classification, User
from callout.org_guard import (
    Reader,
    active_users,
    assigned_user_ids,
    resolve_event,
    users_on_approved_leave,
)

logger = logging.getLogger(__name__)

ALREADY_SCHEDULED = "Already scheduled"
ON_APPROVED_LEAVE = "On approved leave"


class CalloutListEntry(BaseModel):
    position: int
    user_id: UUID
    employee_id: str | None = None
    first_name: str
    last_name: str
    classification_abbreviation: str | None = None
    seniority_date: date | None = None
    ot_hours: float
    is_available: bool
    unavailable_reason: str | None = None


def unavailable_reason(
    user_id: UUID, assigned: set[UUID], on_leave: set[UUID]
) -> str | None:
    if user_id in assigned:
        return ALREADY_SCHEDULED
    if user_id in on_leave:
        return ON_APPROVED_LEAVE
    return None


def _sort_key(user: User, reason: str | None, hours: float) -> tuple:
    return (
        reason is not None,
        hours,
        user.seniority_date is None,
        user.seniority_date or date.max,
        str(user.id),
    )


def rank_candidates(
    users: Iterable[User],
    ot_hours: Mapping[UUID, float],
    assigned: set[UUID],
    on_leave: set[UUID],
    abbreviations: Mapping[UUID, str] | None = None,
) -> list[CalloutListEntry]:
    """Pure ranking over pre-fetched inputs; see module docstring for order."""
    abbreviations = abbreviations or {}
    rows = []
    for user in users:
        reason = unavailable_reason(user.id, assigned, on_leave)
        hours = ot_hours.get(user.id, 0.0)
        rows.append((_sort_key(user, reason, hours), user, reason, hours))

    rows.sort(key=lambda row: row[0])

    return [
        CalloutListEntry(
            position=i,
            user_id=user.id,
            employee_id=user.employee_id,
            first_name=user.first_name,
            last_name=user.last_name,
            classification_abbreviation=abbreviations.get(user.classification_id)
            if user.classification_id
            else None,
            seniority_date=user.seniority_date,
            ot_hours=hours,
            is_available=reason is None,
            unavailable_reason=reason,
        )
        for i, (_, user, reason, hours) in enumerate(rows, start=1)
    ]


def compute_ranking(
    reader: Reader, caller: Caller, event_id: UUID
) -> list[CalloutListEntry]:
    """
    Ordered callout list for an event. Read-only and unlocked; the result is
    advisory and may be slightly stale under concurrent attempts.
    """
    require_schedule_manager(caller)
    event, context = resolve_event(reader, event_id, caller.org_id)

    users = active_users(reader, caller.org_id, event.classification_id)
    user_ids = {u.id for u in users}
    # TODO: read the classification ledger once product confirms whether
    # classified callouts should rank on classification-specific OT hours.
    hours = hours_worked_by_user(
        reader, [u.id for u in users], fiscal_year_for(context.date)
    )
    abbreviations = {
        c.id: c.abbreviation
        for c in reader.all()
        if isinstance(c, Classification) and c.org_id == caller.org_id
    }

    entries = rank_candidates(
        users,
        hours,
        assigned=assigned_user_ids(reader, context.shift.id),
        on_leave=users_on_approved_leave(reader, context.date, user_ids),
        abbreviations=abbreviations,
    )
    logger.debug(f"Ranked {len(entries)} candidates for callout event {event_id}")
    return entries
