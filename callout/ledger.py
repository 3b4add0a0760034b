"""
Overtime hours ledger.

One row per (user, fiscal year, classification); a missing row reads as
zero. Rows are only ever accumulated, never overwritten, and the addition
runs against the committed row at commit time so concurrent accumulations
on the same row cannot lose each other.
"""

from datetime import date, datetime
from uuid import UUID

from callout.auth import Caller, can_manage_schedule
from callout.database import Transaction
from callout.errors import Forbidden
from callout.models import OtHours, ot_hours_key
from callout.org_guard import Reader, resolve_user


def fiscal_year_for(day: date) -> int:
    """OT accounting uses the calendar year of the shift date."""
    return day.year


def current_hours(
    reader: Reader,
    user_id: UUID,
    fiscal_year: int,
    classification_id: UUID | None = None,
) -> OtHours:
    row = reader.get(ot_hours_key(user_id, fiscal_year, classification_id))
    if isinstance(row, OtHours):
        return row
    return OtHours(
        user_id=user_id,
        fiscal_year=fiscal_year,
        classification_id=classification_id,
    )


def hours_worked_by_user(
    reader: Reader, user_ids: list[UUID], fiscal_year: int
) -> dict[UUID, float]:
    """General-ledger hours worked for each user, zero where no row exists."""
    return {
        user_id: current_hours(reader, user_id, fiscal_year).hours_worked
        for user_id in user_ids
    }


def accumulate(
    tx: Transaction,
    user_id: UUID,
    fiscal_year: int,
    *,
    worked: float = 0.0,
    declined: float = 0.0,
    classification_id: UUID | None = None,
    now: datetime | None = None,
) -> None:
    """Queue `hours += delta` on the ledger row, creating it if absent."""
    if worked < 0 or declined < 0:
        raise ValueError("ledger deltas must be non-negative")

    def merge(row: OtHours | None) -> OtHours:
        if row is None:
            row = OtHours(
                user_id=user_id,
                fiscal_year=fiscal_year,
                classification_id=classification_id,
            )
        return row.model_copy(
            update={
                "hours_worked": row.hours_worked + worked,
                "hours_declined": row.hours_declined + declined,
                "updated_at": now or row.updated_at,
            }
        )

    tx.upsert(ot_hours_key(user_id, fiscal_year, classification_id), merge)


def get_ot_hours(
    reader: Reader, caller: Caller, user_id: UUID, fiscal_year: int
) -> OtHours:
    """General-ledger row for a user; schedule managers or the user themself."""
    if caller.id != user_id and not can_manage_schedule(caller.role):
        raise Forbidden()
    resolve_user(reader, user_id, caller.org_id)
    return current_hours(reader, user_id, fiscal_year)
