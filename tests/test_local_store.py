import os
from datetime import date

import pytest

from coworking.errors import PersistenceError
from coworking.schemas.booking import BulkAvailabilityCommand
from coworking.schemas.status import DeskStatus
from coworking.storage import DocumentStorage
from coworking.store.base import Capability
from coworking.store.local import BOOKINGS_KEY, EXPENSES_KEY, LocalDataStore

from tests.conf_tests import TEST_DESKS, local_store, run

LEGACY_DOCUMENT = {
    "D1-2023-01-02": {
        "id": "D1-2023-01-02",
        "desk_id": "D1",
        "date": "2023-01-02",
        "status": "unavailable",
        "created_at": "2023-01-01T08:00:00+00:00",
    }
}


# pylint: disable-next=redefined-outer-name
def test_legacy_records_are_read_as_version_one(local_store):
    local_store.storage.set_document(BOOKINGS_KEY, LEGACY_DOCUMENT)
    (booking,) = run(local_store.get_bookings_for_range(date(2023, 1, 1), date(2023, 1, 31)))
    assert booking.schema_version == 1
    assert booking.status == DeskStatus.UNAVAILABLE
    assert booking.start_date == booking.end_date == date(2023, 1, 2)


# pylint: disable-next=redefined-outer-name
def test_legacy_records_survive_other_writes(local_store):
    local_store.storage.set_document(BOOKINGS_KEY, LEGACY_DOCUMENT)
    run(local_store.save_booking({"desk_id": "D2", "date": date(2023, 1, 2), "status": "available"}))
    bookings = run(local_store.get_bookings_for_range(date(2023, 1, 2), date(2023, 1, 2)))
    assert {b.desk_id: b.schema_version for b in bookings} == {"D1": 1, "D2": 2}


# pylint: disable-next=redefined-outer-name
def test_unreadable_records_are_skipped(local_store):
    broken = {"desk_id": "D1", "date": "2024-03-14", "status": "booked"}
    local_store.storage.set_document(BOOKINGS_KEY, {**LEGACY_DOCUMENT, "D1-2024-03-14": broken})
    bookings = run(local_store.get_bookings_for_range(date(2023, 1, 1), date(2024, 3, 31)))
    assert [b.id for b in bookings] == ["D1-2023-01-02"]

    run(local_store.save_booking({"desk_id": "D2", "date": date(2024, 3, 15), "status": "booked", "person_name": "Ana"}))
    run(local_store.delete_booking("D1-2023-01-02"))

    document = local_store.storage.get_document(BOOKINGS_KEY)
    assert sorted(document) == ["D1-2024-03-14", "D2-2024-03-15"]
    assert document["D1-2024-03-14"] == broken


# pylint: disable-next=redefined-outer-name
def test_unreadable_expenses_survive_other_writes(local_store):
    broken = {"id": "expense-broken", "date": "someday", "amount": 10}
    local_store.storage.set_document(EXPENSES_KEY, {"expense-broken": broken})
    run(local_store.save_expense({
        "date": date(2024, 3, 5),
        "amount": 12.5,
        "currency": "EUR",
        "category": "supplies",
        "description": "Paper",
    }))
    document = local_store.storage.get_document(EXPENSES_KEY)
    assert document["expense-broken"] == broken
    assert len(document) == 2


# pylint: disable-next=redefined-outer-name
def test_clear_all_bookings_removes_unreadable_records_too(local_store):
    local_store.storage.set_document(BOOKINGS_KEY, {
        **LEGACY_DOCUMENT,
        "broken": {"desk_id": "D1", "date": "not a date", "status": "booked"},
    })
    assert run(local_store.clear_all_bookings()) == 2
    assert local_store.storage.get_document(BOOKINGS_KEY) == {}


def test_corrupt_document_raises_persistence_error(tmp_path):
    storage = DocumentStorage(str(tmp_path))
    with open(os.path.join(str(tmp_path), f"{BOOKINGS_KEY}.json"), "w", encoding="utf-8") as fh:
        fh.write("{not json")
    store = LocalDataStore(storage, desks=TEST_DESKS)
    with pytest.raises(PersistenceError):
        run(store.get_bookings_for_range(date(2024, 1, 1), date(2024, 1, 31)))


def test_bulk_over_quota_writes_nothing(tmp_path):
    store = LocalDataStore(DocumentStorage(str(tmp_path), quota_bytes=1024), desks=TEST_DESKS)
    command = BulkAvailabilityCommand(
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
        desk_ids=["D1", "D2"],
        status=DeskStatus.BOOKED,
        person_name="Ana",
    )
    with pytest.raises(PersistenceError):
        run(store.apply_bulk_availability(command))
    assert run(store.get_bookings_for_range(date(2024, 1, 1), date(2024, 1, 31))) == []


# pylint: disable-next=redefined-outer-name
def test_local_store_does_not_publish_changes(local_store):
    assert not local_store.supports(Capability.SUBSCRIBE)
