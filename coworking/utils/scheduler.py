from datetime import date, timedelta
from typing import Dict, Iterable, List, Sequence, Tuple

from coworking.schemas.booking import Booking
from coworking.schemas.desk import Desk
from coworking.schemas.stats import BookedDate, ExpiringAssignment, NextDates
from coworking.schemas.status import DeskStatus
from coworking.utils.dates import is_weekday

LOOKAHEAD_DAYS = 90
EXPIRING_WINDOW_DAYS = 10
MAX_AVAILABLE_DATES = 5
MAX_BOOKED_DATES = 3


def lookahead_period(today: date) -> Tuple[date, date]:
    return today + timedelta(days=1), today + timedelta(days=LOOKAHEAD_DAYS)


def find_next_dates(bookings: Iterable[Booking], desks: Sequence[Desk], today: date) -> NextDates:
    """
    Scan the weekdays after today for the first dates with a free desk,
    the first dates holding unpaid bookings, and paid stays about to end.
    """
    lookup: Dict[Tuple[str, date], Booking] = {(b.desk_id, b.date): b for b in bookings}

    available: List[date] = []
    booked: List[BookedDate] = []
    day = today + timedelta(days=1)
    for _ in range(LOOKAHEAD_DAYS):
        if len(available) >= MAX_AVAILABLE_DATES and len(booked) >= MAX_BOOKED_DATES:
            break
        if is_weekday(day):
            has_free_desk = False
            names: List[str] = []
            for desk in desks:
                booking = lookup.get((desk.id, day))
                if booking is None or not booking.is_occupied:
                    has_free_desk = True
                elif booking.status == DeskStatus.BOOKED and booking.person_name not in names:
                    names.append(booking.person_name)
            if has_free_desk and len(available) < MAX_AVAILABLE_DATES:
                available.append(day)
            if names and len(booked) < MAX_BOOKED_DATES:
                booked.append(BookedDate(date=day, names=names))
        day += timedelta(days=1)

    expiring: List[ExpiringAssignment] = []
    for offset in range(1, EXPIRING_WINDOW_DAYS + 1):
        day = today + timedelta(days=offset)
        if not is_weekday(day):
            continue
        for desk in desks:
            booking = lookup.get((desk.id, day))
            if booking and booking.status == DeskStatus.ASSIGNED and booking.end_date == day:
                expiring.append(
                    ExpiringAssignment(date=day, person_name=booking.person_name, desk_number=desk.number)
                )

    return NextDates(available=available, booked=booked, expiring=expiring)
