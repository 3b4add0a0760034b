from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from callout.attempts import list_attempts, record_attempt
from callout.auth import Caller, get_current_caller
from callout.config import Settings, load_settings
from callout.database import InMemoryKeyValueDatabase
from callout.errors import register_error_handlers
from callout.events import (
    CalloutEventView,
    cancel_event,
    get_event,
    list_events,
    open_event,
)
from callout.ledger import get_ot_hours
from callout.models import CalloutAttempt, LeaveRequest, OtHours, Record, User
from callout.ranking import CalloutListEntry, compute_ranking
from callout.roster import review_leave, update_user
from callout.seed import load_seed

router = APIRouter()

NowFn = Callable[[], datetime]


class CreateCalloutEventRequest(BaseModel):
    scheduled_shift_id: UUID
    ot_reason_id: UUID | None = None
    reason_text: str | None = None
    classification_id: UUID | None = None


class RecordAttemptRequest(BaseModel):
    user_id: UUID
    # parse_response rejects unknown values with a 400
    response: str
    notes: str | None = None


class ReviewLeaveRequest(BaseModel):
    status: str
    reviewer_notes: str | None = None


def get_database(request: Request) -> InMemoryKeyValueDatabase[str, Record]:
    return request.app.state.database


def get_now_fn(request: Request) -> NowFn:
    return request.app.state.now_fn


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/callout/events", response_model=list[CalloutEventView])
async def list_callout_events(
    limit: int = Query(100),
    offset: int = Query(0),
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
) -> list[CalloutEventView]:
    return list_events(db, caller, limit=limit, offset=offset)


@router.post("/api/callout/events", response_model=CalloutEventView)
async def create_callout_event(
    body: CreateCalloutEventRequest,
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
    now_fn: NowFn = Depends(get_now_fn),
) -> CalloutEventView:
    return open_event(
        db,
        caller,
        scheduled_shift_id=body.scheduled_shift_id,
        ot_reason_id=body.ot_reason_id,
        reason_text=body.reason_text,
        classification_id=body.classification_id,
        now_fn=now_fn,
    )


@router.get("/api/callout/events/{event_id}", response_model=CalloutEventView)
async def get_callout_event(
    event_id: UUID,
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
) -> CalloutEventView:
    return get_event(db, caller, event_id)


@router.get(
    "/api/callout/events/{event_id}/list", response_model=list[CalloutListEntry]
)
async def callout_list(
    event_id: UUID,
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
) -> list[CalloutListEntry]:
    return compute_ranking(db, caller, event_id)


@router.get(
    "/api/callout/events/{event_id}/attempts", response_model=list[CalloutAttempt]
)
async def callout_attempts(
    event_id: UUID,
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
) -> list[CalloutAttempt]:
    return list_attempts(db, caller, event_id)


@router.post(
    "/api/callout/events/{event_id}/attempt", response_model=CalloutAttempt
)
async def record_callout_attempt(
    event_id: UUID,
    body: RecordAttemptRequest,
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
    now_fn: NowFn = Depends(get_now_fn),
) -> CalloutAttempt:
    return record_attempt(
        db,
        caller,
        event_id,
        user_id=body.user_id,
        response=body.response,
        notes=body.notes,
        now_fn=now_fn,
    )


@router.patch("/api/callout/events/{event_id}/cancel")
async def cancel_callout_event(
    event_id: UUID,
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
    now_fn: NowFn = Depends(get_now_fn),
) -> dict[str, bool]:
    cancel_event(db, caller, event_id, now_fn=now_fn)
    return {"ok": True}


@router.get("/api/users/{user_id}/ot-hours", response_model=OtHours)
async def user_ot_hours(
    user_id: UUID,
    fiscal_year: int | None = Query(None),
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
    now_fn: NowFn = Depends(get_now_fn),
) -> OtHours:
    year = fiscal_year if fiscal_year is not None else now_fn().year
    return get_ot_hours(db, caller, user_id, year)


@router.patch("/api/users/{user_id}", response_model=User)
async def patch_user(
    user_id: UUID,
    body: dict[str, Any] = Body(...),
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
) -> User:
    return update_user(db, caller, user_id, body)


@router.patch("/api/leave/{leave_id}/review", response_model=LeaveRequest)
async def review_leave_request(
    leave_id: UUID,
    body: ReviewLeaveRequest,
    caller: Caller = Depends(get_current_caller),
    db: InMemoryKeyValueDatabase = Depends(get_database),
) -> LeaveRequest:
    return review_leave(
        db,
        caller,
        leave_id,
        status=body.status,
        reviewer_notes=body.reviewer_notes,
    )


def create_app(
    settings: Settings | None = None,
    database: InMemoryKeyValueDatabase[str, Record] | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Overtime Callout API", version="0.1.0")

    db = database
    if db is None:
        db = InMemoryKeyValueDatabase(lease_timeout=settings.lease_timeout_seconds)
    if settings.seed_path is not None:
        load_seed(db, settings.seed_path)

    app.state.settings = settings
    app.state.database = db
    app.state.now_fn = lambda: datetime.now(UTC)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)
    return app
