"""
Recording contact attempts against a callout event.

Each attempt runs as one transaction under the event's lease: validate,
snapshot the contacted user's OT hours, append the attempt, then apply the
outcome (fill + overtime assignment + hours worked on accept, hours
declined on decline, nothing more on no answer). A failure anywhere before
commit leaves no trace.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from callout.auth import Caller, require_schedule_manager
from callout.database import InMemoryKeyValueDatabase, Transaction
from callout.errors import BadRequest, Conflict
from callout.events import fill
from callout.ledger import accumulate, current_hours, fiscal_year_for
from callout.models import (
    Assignment,
    CalloutAttempt,
    CalloutResponse,
    CalloutStatus,
    assignment_key,
    attempt_key,
    event_key,
)
from callout.org_guard import Reader, resolve_active_user, resolve_event

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]


def parse_response(value: str | CalloutResponse) -> CalloutResponse:
    try:
        return CalloutResponse(value)
    except ValueError:
        allowed = ", ".join(r.value for r in CalloutResponse)
        raise BadRequest(f"response must be one of: {allowed}") from None


def event_attempts(reader: Reader, event_id: UUID) -> list[CalloutAttempt]:
    attempts = [
        a
        for a in reader.all()
        if isinstance(a, CalloutAttempt) and a.event_id == event_id
    ]
    attempts.sort(key=lambda a: a.list_position)
    return attempts


def list_attempts(
    reader: Reader, caller: Caller, event_id: UUID
) -> list[CalloutAttempt]:
    require_schedule_manager(caller)
    resolve_event(reader, event_id, caller.org_id)
    return event_attempts(reader, event_id)


def _assign_overtime(
    tx: Transaction,
    shift_id: UUID,
    user_id: UUID,
    caller: Caller,
    now: datetime,
) -> bool:
    assignment = Assignment(
        scheduled_shift_id=shift_id,
        user_id=user_id,
        is_overtime=True,
        created_by=caller.id,
        created_at=now,
    )
    return tx.insert_if_absent(assignment_key(shift_id, user_id), assignment)


def record_attempt(
    db: InMemoryKeyValueDatabase,
    caller: Caller,
    event_id: UUID,
    *,
    user_id: UUID,
    response: str | CalloutResponse,
    notes: str | None = None,
    now_fn: NowFn,
) -> CalloutAttempt:
    require_schedule_manager(caller)
    outcome = parse_response(response)

    with db.lease(event_key(event_id)), db.transaction() as tx:
        event, context = resolve_event(tx, event_id, caller.org_id)
        if event.status != CalloutStatus.OPEN:
            raise Conflict(f"Callout event is {event.status.value}, not open")

        user = resolve_active_user(tx, user_id, caller.org_id)

        fiscal_year = fiscal_year_for(context.date)
        snapshot = current_hours(tx, user.id, fiscal_year).hours_worked
        position = len(event_attempts(tx, event.id)) + 1
        now = now_fn()

        attempt = CalloutAttempt(
            event_id=event.id,
            user_id=user.id,
            list_position=position,
            contacted_at=now,
            response=outcome,
            ot_hours_at_contact=snapshot,
            notes=notes,
        )
        tx.insert(attempt_key(event.id, position), attempt)

        hours = context.duration_hours
        match outcome:
            case CalloutResponse.ACCEPTED:
                fill(tx, event, now)
                created = _assign_overtime(tx, context.shift.id, user.id, caller, now)
                if not created:
                    logger.info(
                        f"User {user.id} already assigned to shift "
                        f"{context.shift.id}; keeping existing assignment"
                    )
                accumulate(tx, user.id, fiscal_year, worked=hours, now=now)
            case CalloutResponse.DECLINED:
                accumulate(tx, user.id, fiscal_year, declined=hours, now=now)
            case CalloutResponse.NO_ANSWER:
                pass

    logger.info(
        f"Recorded {outcome.value} attempt #{position} for user {user.id} "
        f"on callout event {event_id}"
    )
    if outcome is CalloutResponse.ACCEPTED:
        logger.info(f"Callout event {event_id} filled by user {user.id}")
    return attempt
