"""
Occupancy and revenue statistics.

Only weekdays count as desk days. Revenue of a stay (one desk, one
start_date) is counted once per period and pro-rated by the share of the
stay's business days that fall inside the period: assigned stays are
confirmed revenue, booked stays are expected revenue.
"""

from datetime import date
from typing import Iterable, List, Sequence

from coworking.schemas.booking import Booking
from coworking.schemas.stats import DeskStats, MonthlyStats
from coworking.schemas.status import Currency, DeskStatus
from coworking.utils.dates import business_days, count_business_days, month_bounds


def prorated_revenue(booking: Booking, period_start: date, period_end: date) -> float:
    total_days = count_business_days(booking.start_date, booking.end_date)
    if total_days == 0 or not booking.price:
        return 0.0
    effective_start = max(booking.start_date, period_start)
    effective_end = min(booking.end_date, period_end)
    days_in_period = count_business_days(effective_start, effective_end)
    return days_in_period / total_days * booking.price


def calculate_stats(
    bookings: Iterable[Booking],
    period_start: date,
    period_end: date,
    desk_count: int,
    currency: Currency,
) -> MonthlyStats:
    days = set(business_days(period_start, period_end))
    total_desk_days = desk_count * len(days)

    occupied_days = 0
    confirmed = 0.0
    expected = 0.0
    seen_stays = set()
    for booking in bookings:
        if booking.date not in days:
            continue
        if booking.is_occupied:
            occupied_days += 1

        stay = (booking.desk_id, booking.start_date)
        if stay in seen_stays:
            continue
        seen_stays.add(stay)

        revenue = prorated_revenue(booking, period_start, period_end)
        if booking.status == DeskStatus.ASSIGNED:
            confirmed += revenue
        elif booking.status == DeskStatus.BOOKED:
            expected += revenue

    total = confirmed + expected
    return MonthlyStats(
        total_revenue=total,
        confirmed_revenue=confirmed,
        expected_revenue=expected,
        occupied_days=occupied_days,
        total_desk_days=total_desk_days,
        occupancy_rate=occupied_days / total_desk_days * 100 if total_desk_days else 0.0,
        revenue_per_occupied_day=total / occupied_days if occupied_days else 0.0,
        currency=currency,
    )


def calculate_monthly_stats(
    bookings: Iterable[Booking], year: int, month: int, desk_count: int, currency: Currency
) -> MonthlyStats:
    start, end = month_bounds(year, month)
    return calculate_stats(bookings, start, end, desk_count, currency)


def calculate_desk_stats(
    bookings: Iterable[Booking], dates: Sequence[date], desk_ids: List[str]
) -> DeskStats:
    wanted_dates = set(dates)
    wanted_desks = set(desk_ids)
    assigned = booked = 0
    for booking in bookings:
        if booking.date not in wanted_dates or booking.desk_id not in wanted_desks:
            continue
        if booking.status == DeskStatus.ASSIGNED:
            assigned += 1
        elif booking.status == DeskStatus.BOOKED:
            booked += 1
    total_slots = len(wanted_desks) * len(wanted_dates)
    return DeskStats(available=total_slots - assigned - booked, assigned=assigned, booked=booked)
