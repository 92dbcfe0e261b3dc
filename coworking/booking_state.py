"""
Booking status state machine.

    available --(person_name, price?)--> booked
    available --(person_name)----------> assigned
    booked    --(person_name?)---------> assigned   (keeps the price: now paid)
    booked/assigned -------------------> available  (clears person, title, price)

Bulk commands overwrite any state without looking at it.
"""

from datetime import date
from typing import Dict, List, Optional, Tuple

from coworking.errors import ValidationError
from coworking.schemas.booking import Booking, BulkAvailabilityCommand, StatusChange, utcnow
from coworking.schemas.status import DeskStatus, OCCUPIED_STATUSES, SCHEMA_VERSION
from coworking.utils.dates import iter_dates


def transition_booking(
    current: Optional[Booking], desk_id: str, day: date, change: StatusChange
) -> Booking:
    """Build the record that results from moving a desk-day to change.status."""
    created_at = current.created_at if current else utcnow()
    start_date = current.start_date if current else day
    end_date = current.end_date if current else day

    if change.status not in OCCUPIED_STATUSES:
        return Booking.model_validate({
            "desk_id": desk_id,
            "date": day,
            "start_date": start_date,
            "end_date": end_date,
            "status": change.status,
            "currency": change.currency or (current.currency if current else None),
            "created_at": created_at,
        })

    keep = current if current is not None and current.is_occupied else None
    person_name = change.person_name or (keep.person_name if keep else None)
    if not person_name:
        raise ValidationError(f"Moving a desk to {change.status.value} requires person_name")

    return Booking.model_validate({
        "desk_id": desk_id,
        "date": day,
        "start_date": start_date,
        "end_date": end_date,
        "status": change.status,
        "person_name": person_name,
        "title": change.title if change.title is not None else (keep.title if keep else None),
        "price": change.price if change.price is not None else (keep.price if keep else None),
        "currency": change.currency or (keep.currency if keep else None),
        "created_at": created_at,
    })


def build_bulk_bookings(
    command: BulkAvailabilityCommand,
    existing: Optional[Dict[Tuple[str, date], Booking]] = None,
) -> List[Booking]:
    """One record per (desk, day) of the command; person fields only on occupied statuses."""
    existing = existing or {}
    occupied = command.status in OCCUPIED_STATUSES
    now = utcnow()
    bookings = []
    for desk_id in command.desk_ids:
        for day in iter_dates(command.start_date, command.end_date):
            previous = existing.get((desk_id, day))
            bookings.append(Booking(
                desk_id=desk_id,
                date=day,
                start_date=command.start_date if occupied else day,
                end_date=command.end_date if occupied else day,
                status=command.status,
                person_name=command.person_name if occupied else None,
                title=command.title if occupied else None,
                price=command.price if occupied else None,
                currency=command.currency,
                schema_version=SCHEMA_VERSION,
                created_at=previous.created_at if previous else now,
            ))
    return bookings
