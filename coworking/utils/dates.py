import calendar
from datetime import date, timedelta
from typing import Iterator, List, Optional, Tuple


Period = Tuple[date, date]


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def date_range(start: date, end: date) -> List[date]:
    return list(iter_dates(start, end))


def is_weekday(day: date) -> bool:
    return day.weekday() < 5


def business_days(start: date, end: date) -> List[date]:
    return [day for day in iter_dates(start, end) if is_weekday(day)]


def count_business_days(start: date, end: date) -> int:
    return sum(1 for day in iter_dates(start, end) if is_weekday(day))


def month_bounds(year: int, month: int) -> Period:
    """First and last day of a 1-based month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def clamp_day(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def overlaps(a: Optional[Period], b: Optional[Period]) -> bool:
    # an unknown period may cover anything
    if a is None or b is None:
        return True
    return a[0] <= b[1] and b[0] <= a[1]
