from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from coworking.context import StoreContext, get_store
from coworking.schemas.stats import DeskStats, MonthlyStats, NextDates
from coworking.utils.http_errors import store_errors


router = APIRouter(
    prefix="/stats",
    tags=["stats"],
)


@router.get("/monthly/{year}/{month}", response_model=MonthlyStats)
async def get_monthly_stats(year: int, month: int, store: StoreContext = Depends(get_store)):
    """
    Occupancy and revenue of one month.

    - **year**: e.g. 2024.
    - **month**: 1 (January) to 12 (December).

    Only weekdays count as desk days.
    """
    with store_errors():
        return await store.get_monthly_stats(year, month)


@router.get("/range", response_model=MonthlyStats)
async def get_stats_for_date_range(
    start_date: date,
    end_date: date,
    store: StoreContext = Depends(get_store),
):
    """
    Occupancy and revenue between two dates, both included.
    """
    with store_errors():
        return await store.get_stats_for_date_range(start_date, end_date)


@router.get("/desks", response_model=DeskStats)
async def get_desk_stats(
    dates: List[date] = Query(...),
    store: StoreContext = Depends(get_store),
):
    """
    Count available, booked and assigned desk slots over the given days.
    """
    with store_errors():
        return await store.get_desk_stats(dates)


@router.get("/next-dates", response_model=NextDates)
async def get_next_dates(today: Optional[date] = None, store: StoreContext = Depends(get_store)):
    """
    Upcoming weekdays with a free desk, upcoming unpaid bookings and paid
    stays ending within ten days.

    - **today**: (Optional) Reference day, defaults to the current date.
    """
    with store_errors():
        return await store.get_next_dates(today)
