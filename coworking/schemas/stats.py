from datetime import date
from typing import List

from pydantic import BaseModel

from coworking.schemas.status import Currency


class MonthlyStats(BaseModel):
    total_revenue: float
    confirmed_revenue: float
    expected_revenue: float
    occupied_days: int
    total_desk_days: int
    occupancy_rate: float
    revenue_per_occupied_day: float
    currency: Currency


class DeskStats(BaseModel):
    available: int
    assigned: int
    booked: int


class BookedDate(BaseModel):
    date: date
    names: List[str]


class ExpiringAssignment(BaseModel):
    date: date
    person_name: str
    desk_number: int


class NextDates(BaseModel):
    available: List[date]
    booked: List[BookedDate]
    expiring: List[ExpiringAssignment]
