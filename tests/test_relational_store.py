from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from coworking.errors import BulkAvailabilityError, PersistenceError
from coworking.schemas.booking import BulkAvailabilityCommand
from coworking.schemas.status import DeskStatus
from coworking.store.base import Capability
from coworking.store.changes import ChangeEvent
from coworking.store.relational import RelationalDataStore

from tests.conf_tests import TEST_DESKS, database_url, relational_store, run

FAILING_PAIR = ("D2", date(2024, 4, 2))


def _bulk_available():
    return BulkAvailabilityCommand(
        start_date=date(2024, 4, 1),
        end_date=date(2024, 4, 3),
        desk_ids=["D1", "D2"],
        status=DeskStatus.AVAILABLE,
    )


# pylint: disable-next=redefined-outer-name
def test_partial_bulk_failure_lists_failed_pairs(relational_store, monkeypatch):
    write_booking = RelationalDataStore._write_booking

    def flaky_write(self, session, booking):
        if (booking.desk_id, booking.date) == FAILING_PAIR:
            raise OperationalError("INSERT INTO desk_bookings", {}, Exception("database is locked"))
        write_booking(self, session, booking)

    monkeypatch.setattr(RelationalDataStore, "_write_booking", flaky_write)

    with pytest.raises(BulkAvailabilityError) as exc_info:
        run(relational_store.apply_bulk_availability(_bulk_available()))

    error = exc_info.value
    assert [(f.desk_id, f.date) for f in error.failures] == [FAILING_PAIR]
    assert error.applied == 5
    assert "D2@2024-04-02" in str(error)

    written = run(relational_store.get_bookings_for_range(date(2024, 4, 1), date(2024, 4, 3)))
    assert len(written) == 5
    assert FAILING_PAIR not in {(b.desk_id, b.date) for b in written}


# pylint: disable-next=redefined-outer-name
def test_database_errors_become_persistence_errors(relational_store, monkeypatch):
    def broken_select(start, end):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(relational_store, "_select_bookings", broken_select)
    with pytest.raises(PersistenceError):
        run(relational_store.get_bookings_for_range(date(2024, 4, 1), date(2024, 4, 3)))


# pylint: disable-next=redefined-outer-name
def test_relational_store_publishes_changes(relational_store):
    assert relational_store.supports(Capability.SUBSCRIBE)


# pylint: disable-next=redefined-outer-name
def test_other_store_on_same_database_sees_commits(relational_store, database_url):
    events = []
    unsubscribe = relational_store.subscribe("desk_bookings", events.append)

    other = RelationalDataStore.from_url(database_url, desks=TEST_DESKS)
    try:
        run(other.save_booking({"desk_id": "D1", "date": date(2024, 4, 1), "status": "available"}))
        run(other.save_booking({
            "desk_id": "D1", "date": date(2024, 4, 1), "status": "booked", "person_name": "Ana",
        }))
        run(other.delete_booking("D1-2024-04-01"))
    finally:
        run(other.close())

    assert events == [
        ChangeEvent(kind="insert", schema="public", table="desk_bookings"),
        ChangeEvent(kind="update", schema="public", table="desk_bookings"),
        ChangeEvent(kind="delete", schema="public", table="desk_bookings"),
    ]

    unsubscribe()
    run(relational_store.save_booking({"desk_id": "D2", "date": date(2024, 4, 1), "status": "available"}))
    assert len(events) == 3


# pylint: disable-next=redefined-outer-name
def test_rolled_back_writes_are_not_announced(relational_store, monkeypatch):
    events = []
    relational_store.subscribe("desk_bookings", events.append)
    write_booking = RelationalDataStore._write_booking

    def write_then_fail(self, session, booking):
        write_booking(self, session, booking)
        session.flush()
        raise OperationalError("INSERT INTO desk_bookings", {}, Exception("disk I/O error"))

    monkeypatch.setattr(RelationalDataStore, "_write_booking", write_then_fail)
    with pytest.raises(PersistenceError):
        run(relational_store.save_booking({"desk_id": "D1", "date": date(2024, 4, 1), "status": "available"}))
    assert events == []


# pylint: disable-next=redefined-outer-name
def test_other_tables_do_not_reach_booking_subscribers(relational_store):
    events = []
    relational_store.subscribe("desk_bookings", events.append)
    run(relational_store.save_expense({
        "date": date(2024, 4, 1), "amount": 10, "currency": "EUR", "category": "supplies",
    }))
    assert events == []


def test_in_memory_database_is_shared_across_threads():
    store = RelationalDataStore.from_url("sqlite://", desks=TEST_DESKS)
    try:
        run(store.save_booking({"desk_id": "D1", "date": date(2024, 4, 1), "status": "booked", "person_name": "Ana"}))
        bookings = run(store.get_bookings_for_range(date(2024, 4, 1), date(2024, 4, 30)))
    finally:
        run(store.close())
    assert [b.person_name for b in bookings] == ["Ana"]


# pylint: disable-next=redefined-outer-name
def test_bulk_delete_is_one_transaction(relational_store, monkeypatch):
    run(relational_store.save_booking({"desk_id": "D1", "date": date(2024, 4, 1), "status": "available"}))
    events = []
    relational_store.subscribe("desk_bookings", events.append)

    def broken_delete(booking_ids):
        raise OperationalError("DELETE FROM desk_bookings", {}, Exception("database is locked"))

    monkeypatch.setattr(relational_store, "_delete_bookings", broken_delete)
    with pytest.raises(PersistenceError):
        run(relational_store.bulk_delete_bookings([("D1", date(2024, 4, 1))]))
    assert run(relational_store.get_booking("D1", date(2024, 4, 1))) is not None
    assert events == []

    monkeypatch.undo()
    removed = run(relational_store.bulk_delete_bookings([("D1", date(2024, 4, 1)), ("D2", date(2024, 4, 1))]))
    assert [b.id for b in removed] == ["D1-2024-04-01"]
    assert events == [ChangeEvent(kind="delete", schema="public", table="desk_bookings")]
