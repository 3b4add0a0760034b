"""
Roster writes that feed callout ranking: employee record patches and leave
review. Everything else about users and leave is owned by other services.
"""

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from callout.auth import Caller, can_approve_leave, is_admin
from callout.database import InMemoryKeyValueDatabase
from callout.errors import (
    BadRequest,
    Conflict,
    Forbidden,
    NotFound,
    invalid_fields_message,
)
from callout.fields import SetTo, changed_values, parse_updates
from callout.models import LeaveRequest, LeaveStatus, Role, User, leave_key, user_key
from callout.org_guard import resolve_user, verify_classification

logger = logging.getLogger(__name__)

NULLABLE_USER_FIELDS = (
    "employee_id",
    "phone",
    "classification_id",
    "hire_date",
    "seniority_date",
)
REQUIRED_USER_FIELDS = ("first_name", "last_name", "email", "role", "is_active")


def _active_admin_count(reader, org_id: UUID) -> int:
    return sum(
        1
        for u in reader.all()
        if isinstance(u, User)
        and u.org_id == org_id
        and u.role == Role.ADMIN
        and u.is_active
    )


def admins_lease_key(org_id: UUID) -> str:
    # serializes every change that can reduce an org's active admins
    return f"org_admins:{org_id}"


def _guard_admin_changes(reader, caller: Caller, before: User, after: User) -> None:
    deactivating = before.is_active and not after.is_active
    demoting = before.role == Role.ADMIN and after.role != Role.ADMIN

    if caller.id == before.id:
        if after.role != before.role:
            raise BadRequest("Cannot change your own role. Another admin must do this.")
        if deactivating:
            raise BadRequest(
                "Cannot deactivate your own account. Another admin must do this."
            )

    if before.role != Role.ADMIN or not before.is_active:
        return
    if (demoting or deactivating) and _active_admin_count(reader, caller.org_id) <= 1:
        if deactivating:
            raise BadRequest(
                "Cannot deactivate the last admin. Promote another user to admin first."
            )
        raise BadRequest(
            "Cannot remove the last admin. Promote another user to admin first."
        )


def update_user(
    db: InMemoryKeyValueDatabase,
    caller: Caller,
    user_id: UUID,
    body: Mapping[str, Any],
) -> User:
    if not is_admin(caller.role):
        raise Forbidden()

    updates = parse_updates(
        body, nullable=NULLABLE_USER_FIELDS, required=REQUIRED_USER_FIELDS
    )

    with (
        db.lease(admins_lease_key(caller.org_id)),
        db.lease(user_key(user_id)),
        db.transaction() as tx,
    ):
        user = resolve_user(tx, user_id, caller.org_id)

        match updates["classification_id"]:
            case SetTo(value=value):
                try:
                    classification_id = UUID(str(value))
                except ValueError:
                    raise BadRequest("classification_id must be a UUID") from None
                verify_classification(tx, classification_id, caller.org_id)

        try:
            updated = User.model_validate(
                {**user.model_dump(), **changed_values(updates)}
            )
        except ValidationError as exc:
            raise BadRequest(invalid_fields_message(exc.errors())) from None

        _guard_admin_changes(tx, caller, user, updated)
        tx.put(user_key(user.id), updated)

    logger.info(f"User {user_id} updated by admin {caller.id}")
    return updated


def review_leave(
    db: InMemoryKeyValueDatabase,
    caller: Caller,
    leave_id: UUID,
    *,
    status: str,
    reviewer_notes: str | None = None,
) -> LeaveRequest:
    if not can_approve_leave(caller.role):
        raise Forbidden()

    if status not in (LeaveStatus.APPROVED.value, LeaveStatus.DENIED.value):
        raise BadRequest("status must be 'approved' or 'denied'")

    with db.lease(leave_key(leave_id)), db.transaction() as tx:
        leave = tx.get(leave_key(leave_id))
        if not isinstance(leave, LeaveRequest):
            raise NotFound("Leave request not found")
        try:
            resolve_user(tx, leave.user_id, caller.org_id)
        except NotFound:
            raise NotFound("Leave request not found") from None

        if leave.status != LeaveStatus.PENDING:
            raise Conflict(f"Leave request is already {leave.status.value}")

        reviewed = leave.model_copy(
            update={
                "status": LeaveStatus(status),
                "reviewed_by": caller.id,
                "reviewer_notes": reviewer_notes,
            }
        )
        tx.put(leave_key(leave.id), reviewed)

    logger.info(f"Leave request {leave_id} {status} by user {caller.id}")
    return reviewed
