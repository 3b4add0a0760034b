"""
Callout event lifecycle.

    open --fill--> filled
    open --cancel--> cancelled

filled and cancelled are terminal. Any read that gates a transition runs
under the event's lease so two requests can never both leave `open`.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel

from callout.auth import Caller, require_schedule_manager
from callout.database import InMemoryKeyValueDatabase, Transaction
from callout.errors import Conflict, NotFound
from callout.models import CalloutEvent, CalloutStatus, event_key
from callout.org_guard import (
    Reader,
    ShiftContext,
    resolve_event,
    resolve_shift,
    verify_classification,
    verify_ot_reason,
)

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]

TRANSITIONS: dict[CalloutStatus, frozenset[CalloutStatus]] = {
    CalloutStatus.OPEN: frozenset({CalloutStatus.FILLED, CalloutStatus.CANCELLED}),
    CalloutStatus.FILLED: frozenset(),
    CalloutStatus.CANCELLED: frozenset(),
}


class CalloutEventView(BaseModel):
    id: UUID
    scheduled_shift_id: UUID
    initiated_by: UUID
    ot_reason_id: UUID | None = None
    reason_text: str | None = None
    classification_id: UUID | None = None
    status: CalloutStatus
    shift_template_name: str | None = None
    shift_date: date | None = None
    team_name: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, event: CalloutEvent, context: ShiftContext) -> "CalloutEventView":
        return cls(
            **event.model_dump(),
            shift_template_name=context.template.name,
            shift_date=context.date,
            team_name=context.team_name,
        )


def can_transition(current: CalloutStatus, target: CalloutStatus) -> bool:
    return target in TRANSITIONS[current]


def transition(
    event: CalloutEvent, target: CalloutStatus, now: datetime
) -> CalloutEvent:
    if not can_transition(event.status, target):
        raise Conflict(f"Callout event is {event.status.value}, not open")
    return event.model_copy(update={"status": target, "updated_at": now})


def fill(tx: Transaction, event: CalloutEvent, now: datetime) -> CalloutEvent:
    """Mark an event filled. Caller must hold the event's lease."""
    filled = transition(event, CalloutStatus.FILLED, now)
    tx.put(event_key(event.id), filled)
    return filled


def open_event(
    db: InMemoryKeyValueDatabase,
    caller: Caller,
    *,
    scheduled_shift_id: UUID,
    ot_reason_id: UUID | None = None,
    reason_text: str | None = None,
    classification_id: UUID | None = None,
    now_fn: NowFn,
) -> CalloutEventView:
    require_schedule_manager(caller)

    with db.transaction() as tx:
        context = resolve_shift(tx, scheduled_shift_id, caller.org_id)
        if ot_reason_id is not None:
            verify_ot_reason(tx, ot_reason_id, caller.org_id)
        if classification_id is not None:
            verify_classification(tx, classification_id, caller.org_id)

        now = now_fn()
        event = CalloutEvent(
            scheduled_shift_id=scheduled_shift_id,
            initiated_by=caller.id,
            ot_reason_id=ot_reason_id,
            reason_text=reason_text,
            classification_id=classification_id,
            status=CalloutStatus.OPEN,
            created_at=now,
            updated_at=now,
        )
        tx.insert(event_key(event.id), event)

    logger.info(
        f"Opened callout event {event.id} for shift {scheduled_shift_id} "
        f"by user {caller.id}"
    )
    return CalloutEventView.build(event, context)


def get_event(reader: Reader, caller: Caller, event_id: UUID) -> CalloutEventView:
    require_schedule_manager(caller)
    event, context = resolve_event(reader, event_id, caller.org_id)
    return CalloutEventView.build(event, context)


def list_events(
    reader: Reader, caller: Caller, *, limit: int = 100, offset: int = 0
) -> list[CalloutEventView]:
    """Events in the caller's org, newest first."""
    require_schedule_manager(caller)
    limit = min(max(limit, 1), 500)
    offset = max(offset, 0)

    views = []
    for event in reader.all():
        if not isinstance(event, CalloutEvent):
            continue
        try:
            context = resolve_shift(reader, event.scheduled_shift_id, caller.org_id)
        except NotFound:
            continue
        views.append(CalloutEventView.build(event, context))

    views.sort(key=lambda v: (v.created_at, str(v.id)), reverse=True)
    return views[offset : offset + limit]


def cancel_event(
    db: InMemoryKeyValueDatabase, caller: Caller, event_id: UUID, *, now_fn: NowFn
) -> CalloutEventView:
    require_schedule_manager(caller)

    with db.lease(event_key(event_id)), db.transaction() as tx:
        event, context = resolve_event(tx, event_id, caller.org_id)
        cancelled = transition(event, CalloutStatus.CANCELLED, now_fn())
        tx.put(event_key(event.id), cancelled)

    logger.info(f"Cancelled callout event {event_id} by user {caller.id}")
    return CalloutEventView.build(cancelled, context)
