from datetime import date
from typing import Iterable, Optional

from coworking.errors import ValidationError
from coworking.schemas.status import (
    DeskStatus,
    OCCUPIED_STATUSES,
    STATUSES_BY_SCHEMA_VERSION,
)


def validate_booking_fields(
    status: DeskStatus,
    person_name: Optional[str],
    title: Optional[str],
    price: Optional[float],
    schema_version: int,
):
    """
    Enforce the booking invariant: booked/assigned carry a person,
    every other status carries neither person, title nor price.
    """
    allowed = STATUSES_BY_SCHEMA_VERSION.get(schema_version)
    if allowed is None:
        raise ValidationError(f"Unknown booking schema version: {schema_version}")
    if status not in allowed:
        raise ValidationError(
            f"Status '{status.value}' is not valid in booking schema version {schema_version}"
        )

    if status in OCCUPIED_STATUSES:
        if not person_name:
            raise ValidationError(f"A {status.value} desk requires person_name")
    elif person_name is not None or title is not None or price is not None:
        raise ValidationError(f"A {status.value} desk must not carry person_name, title or price")

    if price is not None and price < 0:
        raise ValidationError("Price must not be negative")


def validate_booking(booking, desk_ids: Iterable[str]):
    if booking.desk_id not in set(desk_ids):
        raise ValidationError(f"Unknown desk: {booking.desk_id}")
    validate_booking_fields(
        booking.status, booking.person_name, booking.title, booking.price, booking.schema_version
    )
    validate_date_range(booking.start_date, booking.end_date)
    if not booking.start_date <= booking.date <= booking.end_date:
        raise ValidationError("Booking date must fall within its start_date and end_date")


def validate_date_range(start: date, end: date):
    if start > end:
        raise ValidationError(f"Start date {start} is after end date {end}")
    return start, end


def validate_amount(value):
    if value is not None and value < 0:
        raise ValidationError("Amount must not be negative")
    return value
