import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from coworking.context import StoreContext, get_store
from coworking.schemas.booking import (
    Booking,
    BookingCreate,
    BulkAvailabilityCommand,
    BulkDeleteCommand,
    StatusChange,
)
from coworking.utils.http_errors import store_errors

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
)


@router.get(
    "/",
    response_model=List[Booking],
    summary="List bookings in a date range",
)
async def get_bookings(
    start_date: date,
    end_date: date,
    store: StoreContext = Depends(get_store),
):
    """
    Retrieve every booking between two dates, both included.

    - **start_date**: First day of the range (e.g., 2024-03-01).
    - **end_date**: Last day of the range.

    Days without a booking are available.
    """
    with store_errors():
        bookings = await store.get_bookings_for_range(start_date, end_date)
    logger.debug(f"Retrieved {len(bookings)} bookings from {start_date} to {end_date}")
    return bookings


@router.get(
    "/{desk_id}/{day}",
    response_model=Booking,
    summary="Get the booking of a desk on a day",
)
async def get_booking(desk_id: str, day: date, store: StoreContext = Depends(get_store)):
    with store_errors():
        booking = await store.get_booking(desk_id, day)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


@router.put(
    "/",
    response_model=Booking,
    summary="Create or replace a booking",
    description="Write the booking of one desk on one day, replacing any existing one.",
)
async def save_booking(booking: BookingCreate, store: StoreContext = Depends(get_store)):
    """
    Create or replace the booking of a desk on a day.

    - **desk_id**: Desk to book.
    - **date**: Day of the booking.
    - **start_date** / **end_date**: (Optional) Stay the day belongs to, defaults to the day itself.
    - **status**: available, booked or assigned.
    - **person_name**: Required for booked and assigned, forbidden otherwise.
    - **title** / **price** / **currency**: (Optional) Only for booked and assigned.
    """
    logger.debug(f"Saving booking for desk {booking.desk_id} on {booking.date}: {booking.status.value}")
    with store_errors():
        return await store.save_booking(booking)


@router.patch(
    "/{desk_id}/{day}/status",
    response_model=Booking,
    summary="Change the status of a desk on a day",
)
async def update_booking_status(
    desk_id: str,
    day: date,
    change: StatusChange,
    store: StoreContext = Depends(get_store),
):
    """
    Move a desk-day to another status.

    - **status**: Target status.
    - **person_name**: Required when moving an available desk to booked or assigned.
    - **price**: (Optional) Kept from the booking when assigning a booked desk.

    Moving to available clears person, title and price.
    """
    with store_errors():
        return await store.update_booking_status(desk_id, day, change)


@router.delete(
    "/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a booking",
)
async def delete_booking(booking_id: str, store: StoreContext = Depends(get_store)):
    """
    Delete a booking. Deleting a missing booking is not an error.

    - **booking_id**: "{desk_id}-{date}" key of the booking.
    """
    with store_errors():
        removed = await store.delete_booking(booking_id)
    if removed is None:
        logger.debug(f"Booking not found: {booking_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/bulk",
    response_model=List[Booking],
    summary="Set availability for many desks and days",
)
async def apply_bulk_availability(
    command: BulkAvailabilityCommand,
    store: StoreContext = Depends(get_store),
):
    """
    Set one status on every desk in desk_ids for every day in the range.

    - **start_date** / **end_date**: Range of days, both included.
    - **desk_ids**: Desks to update.
    - **status**: Status to write; booked and assigned require **person_name**.

    Returns the written bookings. When some pairs could not be written the
    response is 502 and lists them.
    """
    with store_errors():
        return await store.apply_bulk_availability(command)


@router.post(
    "/bulk-delete",
    response_model=List[Booking],
    summary="Delete the bookings of many desks and days",
)
async def bulk_delete_bookings(command: BulkDeleteCommand, store: StoreContext = Depends(get_store)):
    """
    Delete the booking of every (desk, day) pair in one write.

    - **pairs**: List of {"desk_id", "date"} pairs. Pairs without a booking are ignored.

    Returns the deleted bookings.
    """
    with store_errors():
        return await store.bulk_delete_bookings((pair.desk_id, pair.date) for pair in command.pairs)


@router.delete(
    "/",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete every booking",
)
async def clear_all_bookings(store: StoreContext = Depends(get_store)):
    with store_errors():
        count = await store.clear_all_bookings()
    logger.info(f"Cleared {count} bookings")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
