from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from callout.api import create_app
from callout.auth import Caller, create_access_token
from callout.config import Settings
from callout.database import InMemoryKeyValueDatabase
from callout.models import (
    Assignment,
    Classification,
    LeaveRequest,
    LeaveStatus,
    Organization,
    OtHours,
    OtReason,
    Record,
    Role,
    ScheduledShift,
    ShiftTemplate,
    Team,
    User,
    record_key,
)

NOW = datetime(2025, 7, 1, 12, 0, 0, tzinfo=UTC)
SHIFT_DATE = date(2025, 7, 2)
SECRET = "test-secret-that-is-long-enough-for-hs256"


def uid(n: int) -> UUID:
    return UUID(int=n)


@dataclass
class World:
    org: Organization
    other_org: Organization
    officer: Classification
    other_classification: Classification
    reason: OtReason
    other_reason: OtReason
    team: Team
    template: ShiftTemplate
    shift: ScheduledShift
    other_shift: ScheduledShift
    admin: User
    supervisor: User
    alice: User
    bob: User
    carol: User
    dave: User
    outsider: User
    outsider_supervisor: User

    def caller(self, user: User) -> Caller:
        return Caller(id=user.id, org_id=user.org_id, role=user.role)


def build_world(db: InMemoryKeyValueDatabase[str, Record]) -> World:
    """
    Org A has an 8h day shift on SHIFT_DATE and four officers:
      alice  0h worked, available
      bob    5h worked, available
      carol  0h worked, already assigned to the shift
      dave   0h worked, on approved leave over the shift date
    Org B is a second tenant used for isolation checks.
    """
    org = Organization(id=uid(1), name="County Dispatch", slug="county")
    other_org = Organization(id=uid(2), name="City Dispatch", slug="city")

    officer = Classification(
        id=uid(10), org_id=org.id, name="Officer", abbreviation="OFC"
    )
    other_classification = Classification(
        id=uid(11), org_id=other_org.id, name="Officer", abbreviation="OFC"
    )
    reason = OtReason(id=uid(20), org_id=org.id, code="SICK", name="Sick call")
    other_reason = OtReason(
        id=uid(21), org_id=other_org.id, code="SICK", name="Sick call"
    )
    team = Team(id=uid(30), org_id=org.id, name="A Team")

    template = ShiftTemplate(
        id=uid(40),
        org_id=org.id,
        name="Day",
        start_time=time(7, 0),
        end_time=time(15, 0),
        duration_minutes=480,
    )
    other_template = ShiftTemplate(
        id=uid(41),
        org_id=other_org.id,
        name="Day",
        start_time=time(7, 0),
        end_time=time(15, 0),
        duration_minutes=480,
    )
    shift = ScheduledShift(
        id=uid(50),
        org_id=org.id,
        shift_template_id=template.id,
        date=SHIFT_DATE,
        team_id=team.id,
    )
    other_shift = ScheduledShift(
        id=uid(51),
        org_id=other_org.id,
        shift_template_id=other_template.id,
        date=SHIFT_DATE,
    )

    admin = User(
        id=uid(100),
        org_id=org.id,
        first_name="Ada",
        last_name="Admin",
        email="ada@county.test",
        role=Role.ADMIN,
    )
    supervisor = User(
        id=uid(101),
        org_id=org.id,
        first_name="Sam",
        last_name="Super",
        email="sam@county.test",
        role=Role.SUPERVISOR,
    )
    alice = User(
        id=uid(110),
        org_id=org.id,
        employee_id="E-110",
        first_name="Alice",
        last_name="Ongwele",
        email="alice@county.test",
        classification_id=officer.id,
        seniority_date=date(2015, 3, 1),
    )
    bob = User(
        id=uid(111),
        org_id=org.id,
        employee_id="E-111",
        first_name="Bob",
        last_name="Barker",
        email="bob@county.test",
        classification_id=officer.id,
        seniority_date=date(2012, 6, 1),
    )
    carol = User(
        id=uid(112),
        org_id=org.id,
        employee_id="E-112",
        first_name="Carol",
        last_name="Chen",
        email="carol@county.test",
        classification_id=officer.id,
        seniority_date=date(2018, 1, 15),
    )
    dave = User(
        id=uid(113),
        org_id=org.id,
        employee_id="E-113",
        first_name="Dave",
        last_name="Diaz",
        email="dave@county.test",
        classification_id=officer.id,
        seniority_date=date(2010, 1, 1),
    )
    outsider = User(
        id=uid(200),
        org_id=other_org.id,
        first_name="Olga",
        last_name="Outside",
        email="olga@city.test",
        classification_id=other_classification.id,
    )
    outsider_supervisor = User(
        id=uid(201),
        org_id=other_org.id,
        first_name="Oscar",
        last_name="Outside",
        email="oscar@city.test",
        role=Role.SUPERVISOR,
    )

    records: list[Record] = [
        org,
        other_org,
        officer,
        other_classification,
        reason,
        other_reason,
        team,
        template,
        other_template,
        shift,
        other_shift,
        admin,
        supervisor,
        alice,
        bob,
        carol,
        dave,
        outsider,
        outsider_supervisor,
        OtHours(user_id=bob.id, fiscal_year=SHIFT_DATE.year, hours_worked=5.0),
        Assignment(
            scheduled_shift_id=shift.id,
            user_id=carol.id,
            created_by=admin.id,
            created_at=NOW,
        ),
        LeaveRequest(
            id=uid(300),
            user_id=dave.id,
            start_date=date(2025, 7, 1),
            end_date=date(2025, 7, 3),
            status=LeaveStatus.APPROVED,
        ),
    ]
    for record in records:
        db.put(record_key(record), record)

    return World(
        org=org,
        other_org=other_org,
        officer=officer,
        other_classification=other_classification,
        reason=reason,
        other_reason=other_reason,
        team=team,
        template=template,
        shift=shift,
        other_shift=other_shift,
        admin=admin,
        supervisor=supervisor,
        alice=alice,
        bob=bob,
        carol=carol,
        dave=dave,
        outsider=outsider,
        outsider_supervisor=outsider_supervisor,
    )


def now_fn() -> datetime:
    return NOW


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret=SECRET, lease_timeout_seconds=5.0)


@pytest.fixture
def db() -> InMemoryKeyValueDatabase[str, Record]:
    return InMemoryKeyValueDatabase(lease_timeout=5.0)


@pytest.fixture
def world(db: InMemoryKeyValueDatabase[str, Record]) -> World:
    return build_world(db)


@pytest.fixture
def app(settings: Settings, db: InMemoryKeyValueDatabase[str, Record], world: World):
    app = create_app(settings, database=db)
    app.state.now_fn = now_fn
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as async_client:
        yield async_client


def auth_headers(user: User, *, secret: str = SECRET) -> dict[str, str]:
    token = create_access_token(user.id, user.org_id, user.role, secret)
    return {"Authorization": f"Bearer {token}"}
