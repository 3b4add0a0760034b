"""Load roster and ledger records from a JSON seed file."""

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from callout.database import InMemoryKeyValueDatabase
from callout.models import (
    Assignment,
    Classification,
    LeaveRequest,
    Organization,
    OtHours,
    OtReason,
    Record,
    ScheduledShift,
    ShiftTemplate,
    Team,
    User,
    record_key,
)

logger = logging.getLogger(__name__)


class SeedData(BaseModel):
    organizations: list[Organization] = Field(default_factory=list)
    classifications: list[Classification] = Field(default_factory=list)
    ot_reasons: list[OtReason] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    shift_templates: list[ShiftTemplate] = Field(default_factory=list)
    scheduled_shifts: list[ScheduledShift] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)
    leave_requests: list[LeaveRequest] = Field(default_factory=list)
    assignments: list[Assignment] = Field(default_factory=list)
    ot_hours: list[OtHours] = Field(default_factory=list)

    def records(self) -> list[Record]:
        return [
            *self.organizations,
            *self.classifications,
            *self.ot_reasons,
            *self.teams,
            *self.shift_templates,
            *self.scheduled_shifts,
            *self.users,
            *self.leave_requests,
            *self.assignments,
            *self.ot_hours,
        ]


def apply_seed(db: InMemoryKeyValueDatabase, data: SeedData) -> int:
    records = data.records()
    for record in records:
        db.put(record_key(record), record)
    return len(records)


def load_seed(db: InMemoryKeyValueDatabase, path: Path) -> int:
    data = SeedData.model_validate_json(path.read_text())
    count = apply_seed(db, data)
    logger.info(f"Loaded {count} seed records from {path}")
    return count
