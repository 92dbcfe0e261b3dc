from datetime import date

import pytest

from coworking.booking_state import build_bulk_bookings, transition_booking
from coworking.errors import ValidationError
from coworking.schemas.booking import Booking, BulkAvailabilityCommand, StatusChange
from coworking.schemas.status import DeskStatus

DAY = date(2024, 3, 15)


@pytest.fixture
def booked():
    return Booking(
        desk_id="D1",
        date=DAY,
        status=DeskStatus.BOOKED,
        person_name="Ana",
        title="Designer",
        price=250.0,
    )


def test_available_to_booked_requires_person():
    with pytest.raises(ValidationError):
        transition_booking(None, "D1", DAY, StatusChange(status=DeskStatus.BOOKED))


def test_available_to_booked():
    booking = transition_booking(
        None, "D1", DAY, StatusChange(status=DeskStatus.BOOKED, person_name="Ana", price=100)
    )
    assert booking.id == "D1-2024-03-15"
    assert booking.person_name == "Ana"
    assert booking.price == 100
    assert booking.start_date == booking.end_date == DAY


def test_available_to_assigned_without_price():
    booking = transition_booking(
        None, "D1", DAY, StatusChange(status=DeskStatus.ASSIGNED, person_name="Ana")
    )
    assert booking.status == DeskStatus.ASSIGNED
    assert booking.price is None


# pylint: disable-next=redefined-outer-name
def test_booked_to_assigned_keeps_person_and_price(booked):
    booking = transition_booking(booked, "D1", DAY, StatusChange(status=DeskStatus.ASSIGNED))
    assert booking.status == DeskStatus.ASSIGNED
    assert booking.person_name == "Ana"
    assert booking.title == "Designer"
    assert booking.price == 250.0
    assert booking.created_at == booked.created_at


# pylint: disable-next=redefined-outer-name
def test_occupied_to_available_clears_person_fields(booked):
    booking = transition_booking(booked, "D1", DAY, StatusChange(status=DeskStatus.AVAILABLE))
    assert booking.status == DeskStatus.AVAILABLE
    assert booking.person_name is None
    assert booking.title is None
    assert booking.price is None


def test_blank_person_name_counts_as_missing():
    with pytest.raises(ValidationError):
        transition_booking(None, "D1", DAY, StatusChange(status=DeskStatus.BOOKED, person_name="   "))


def test_bulk_available_has_no_person_fields():
    command = BulkAvailabilityCommand(
        start_date=date(2024, 4, 1),
        end_date=date(2024, 4, 3),
        desk_ids=["D1", "D2"],
        status=DeskStatus.AVAILABLE,
    )
    bookings = build_bulk_bookings(command)
    assert len(bookings) == 6
    assert {(b.desk_id, b.date) for b in bookings} == {
        (desk, date(2024, 4, day)) for desk in ("D1", "D2") for day in (1, 2, 3)
    }
    assert all(b.person_name is None and b.price is None for b in bookings)


def test_bulk_booked_spans_the_whole_stay():
    command = BulkAvailabilityCommand(
        start_date=date(2024, 4, 1),
        end_date=date(2024, 4, 5),
        desk_ids=["D1"],
        status=DeskStatus.BOOKED,
        person_name="Ana",
        price=500,
    )
    bookings = build_bulk_bookings(command)
    assert len(bookings) == 5
    assert all(b.person_name == "Ana" for b in bookings)
    assert all(b.start_date == date(2024, 4, 1) and b.end_date == date(2024, 4, 5) for b in bookings)


# pylint: disable-next=redefined-outer-name
def test_bulk_keeps_created_at_of_existing_records(booked):
    command = BulkAvailabilityCommand(
        start_date=DAY, end_date=DAY, desk_ids=["D1"], status=DeskStatus.AVAILABLE
    )
    (booking,) = build_bulk_bookings(command, {("D1", DAY): booked})
    assert booking.created_at == booked.created_at


def test_bulk_booked_requires_person():
    with pytest.raises(ValueError):
        BulkAvailabilityCommand(
            start_date=DAY, end_date=DAY, desk_ids=["D1"], status=DeskStatus.BOOKED
        )


def test_bulk_rejects_inverted_range():
    with pytest.raises(ValueError):
        BulkAvailabilityCommand(
            start_date=date(2024, 4, 3),
            end_date=date(2024, 4, 1),
            desk_ids=["D1"],
            status=DeskStatus.AVAILABLE,
        )
