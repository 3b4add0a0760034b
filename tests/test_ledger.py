from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from conftest import NOW, World, uid

from callout.errors import Forbidden, NotFound
from callout.ledger import accumulate, current_hours, fiscal_year_for, get_ot_hours
from callout.models import OtHours, ot_hours_key

USER = uid(500)


def test_fiscal_year_is_calendar_year_of_shift() -> None:
    assert fiscal_year_for(date(2025, 1, 1)) == 2025
    assert fiscal_year_for(date(2025, 12, 31)) == 2025


def test_missing_row_reads_as_zero(db) -> None:
    row = current_hours(db, USER, 2025)

    assert row.hours_worked == 0.0
    assert row.hours_declined == 0.0
    assert db.get(ot_hours_key(USER, 2025)) is None


def test_accumulate_creates_row_lazily(db) -> None:
    with db.transaction() as tx:
        accumulate(tx, USER, 2025, worked=8.0, now=NOW)

    row = db.get(ot_hours_key(USER, 2025))
    assert isinstance(row, OtHours)
    assert row.hours_worked == 8.0
    assert row.hours_declined == 0.0
    assert row.updated_at == NOW


def test_declines_accumulate(db) -> None:
    for hours in (8.0, 4.5):
        with db.transaction() as tx:
            accumulate(tx, USER, 2025, declined=hours)

    assert current_hours(db, USER, 2025).hours_declined == 12.5


def test_rows_are_scoped_by_year_and_classification(db) -> None:
    classification = uid(10)
    with db.transaction() as tx:
        accumulate(tx, USER, 2025, worked=8.0)
        accumulate(tx, USER, 2024, worked=2.0)
        accumulate(tx, USER, 2025, worked=3.0, classification_id=classification)

    assert current_hours(db, USER, 2025).hours_worked == 8.0
    assert current_hours(db, USER, 2024).hours_worked == 2.0
    assert current_hours(db, USER, 2025, classification).hours_worked == 3.0


def test_negative_delta_rejected(db) -> None:
    with pytest.raises(ValueError):
        with db.transaction() as tx:
            accumulate(tx, USER, 2025, worked=-1.0)

    assert db.get(ot_hours_key(USER, 2025)) is None


def test_rolled_back_accumulation_has_no_effect(db) -> None:
    with pytest.raises(RuntimeError):
        with db.transaction() as tx:
            accumulate(tx, USER, 2025, worked=8.0)
            raise RuntimeError("abort")

    assert current_hours(db, USER, 2025).hours_worked == 0.0


def test_concurrent_accumulation_is_lossless(db) -> None:
    other = uid(501)

    def record(user_id, declined: float) -> None:
        with db.transaction() as tx:
            accumulate(tx, user_id, 2025, declined=declined)

    with ThreadPoolExecutor(max_workers=8) as pool:
        for i in range(100):
            pool.submit(record, USER, 0.5)
            pool.submit(record, other, float(i % 3))

    assert current_hours(db, USER, 2025).hours_declined == 50.0
    assert current_hours(db, other, 2025).hours_declined == float(
        sum(i % 3 for i in range(100))
    )


def test_get_ot_hours_permissions(db, world: World) -> None:
    # the user themself
    row = get_ot_hours(db, world.caller(world.bob), world.bob.id, 2025)
    assert row.hours_worked == 5.0

    # a supervisor
    row = get_ot_hours(db, world.caller(world.supervisor), world.alice.id, 2025)
    assert row.hours_worked == 0.0

    # another employee
    with pytest.raises(Forbidden):
        get_ot_hours(db, world.caller(world.alice), world.bob.id, 2025)

    # another org
    with pytest.raises(NotFound):
        get_ot_hours(db, world.caller(world.supervisor), world.outsider.id, 2025)
