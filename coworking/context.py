"""
Store context: the backend, its query cache, the waiting list and the
realtime subscription for one application lifetime.

Reads go through the cache. Every mutation invalidates the cache scopes it
may have affected before returning, so the next read sees the write.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from fastapi import Request

from coworking.cache import QueryCache, QueryKind
from coworking.config import Settings
from coworking.schemas.booking import Booking, BulkAvailabilityCommand, StatusChange
from coworking.schemas.desk import DEFAULT_DESKS, Desk
from coworking.schemas.expense import Expense, RecurringExpense
from coworking.schemas.stats import DeskStats, MonthlyStats, NextDates
from coworking.storage import DocumentStorage
from coworking.store.base import DataStore, EntityInput
from coworking.store.factory import create_data_store
from coworking.realtime import RealtimeReconciler
from coworking.utils.dates import Period, month_bounds
from coworking.waiting_list import WaitingListStore

logger = logging.getLogger(__name__)

BOOKING_SCOPES = (
    QueryKind.DESK_BOOKINGS,
    QueryKind.DESK_STATS,
    QueryKind.MONTHLY_STATS,
    QueryKind.DATE_RANGE_STATS,
)


class StoreContext:
    def __init__(
        self,
        store: DataStore,
        cache: Optional[QueryCache] = None,
        waiting_list: Optional[WaitingListStore] = None,
        realtime: bool = True,
    ):
        self.store = store
        self.cache = cache or QueryCache()
        self.waiting_list = waiting_list
        self.reconciler = RealtimeReconciler(store, self.cache) if realtime else None

    @classmethod
    def from_settings(cls, settings: Settings, desks: Sequence[Desk] = DEFAULT_DESKS) -> "StoreContext":
        store = create_data_store(settings, desks)
        stale_times = None
        if settings.cache_stale_seconds is not None:
            stale_times = {kind: settings.cache_stale_seconds for kind in QueryKind}
        # the waiting list is always kept locally
        storage = DocumentStorage(settings.data_dir, settings.storage_quota_bytes)
        return cls(
            store,
            cache=QueryCache(stale_times=stale_times),
            waiting_list=WaitingListStore(storage),
            realtime=settings.realtime,
        )

    async def start(self):
        if self.reconciler is not None:
            self.reconciler.start()

    async def close(self):
        if self.reconciler is not None:
            await self.reconciler.stop()
        await self.store.close()
        self.cache.clear()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    @property
    def desks(self):
        return self.store.desks

    # Reads

    async def get_bookings_for_range(self, start: date, end: date) -> List[Booking]:
        return await self.cache.fetch(
            (QueryKind.DESK_BOOKINGS, start, end),
            lambda: self.store.get_bookings_for_range(start, end),
            period=(start, end),
        )

    async def get_booking(self, desk_id: str, day: date) -> Optional[Booking]:
        return await self.store.get_booking(desk_id, day)

    async def get_bookings_for_desk(
        self, desk_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Booking]:
        return await self.store.get_bookings_for_desk(desk_id, start, end)

    async def get_desk_stats(self, dates: Iterable[date]) -> DeskStats:
        dates = sorted(set(dates))
        period = (dates[0], dates[-1]) if dates else None
        return await self.cache.fetch(
            (QueryKind.DESK_STATS, *dates),
            lambda: self.store.get_desk_stats(dates),
            period=period,
        )

    async def get_next_dates(self, today: Optional[date] = None) -> NextDates:
        today = today or date.today()
        return await self.cache.fetch(
            (QueryKind.NEXT_DATES, today),
            lambda: self.store.get_next_dates(today),
        )

    async def get_monthly_stats(self, year: int, month: int) -> MonthlyStats:
        period = month_bounds(year, month) if 1 <= month <= 12 else None
        return await self.cache.fetch(
            (QueryKind.MONTHLY_STATS, year, month),
            lambda: self.store.get_monthly_stats(year, month),
            period=period,
        )

    async def get_stats_for_date_range(self, start: date, end: date) -> MonthlyStats:
        return await self.cache.fetch(
            (QueryKind.DATE_RANGE_STATS, start, end),
            lambda: self.store.get_stats_for_date_range(start, end),
            period=(start, end),
        )

    async def get_expenses(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Expense]:
        period = (start, end) if start and end else None
        return await self.cache.fetch(
            (QueryKind.EXPENSES, start, end),
            lambda: self.store.get_expenses(start, end),
            period=period,
        )

    async def get_recurring_expenses(self) -> List[RecurringExpense]:
        return await self.cache.fetch(
            (QueryKind.RECURRING_EXPENSES,),
            self.store.get_recurring_expenses,
        )

    # Mutations

    def _invalidate_bookings(self, period: Optional[Period]):
        for kind in BOOKING_SCOPES:
            self.cache.invalidate(kind, period)
        self.cache.invalidate(QueryKind.NEXT_DATES)

    async def save_booking(self, booking: EntityInput) -> Booking:
        saved = await self.store.save_booking(booking)
        self._invalidate_bookings((saved.start_date, saved.end_date))
        return saved

    async def update_booking_status(self, desk_id: str, day: date, change: StatusChange) -> Booking:
        saved = await self.store.update_booking_status(desk_id, day, change)
        self._invalidate_bookings((saved.start_date, saved.end_date))
        return saved

    async def delete_booking(self, booking_id: str) -> Optional[Booking]:
        removed = await self.store.delete_booking(booking_id)
        if removed is not None:
            self._invalidate_bookings((removed.start_date, removed.end_date))
        return removed

    async def bulk_delete_bookings(self, pairs: Iterable[Tuple[str, date]]) -> List[Booking]:
        removed = await self.store.bulk_delete_bookings(pairs)
        if removed:
            self._invalidate_bookings((
                min(b.start_date for b in removed),
                max(b.end_date for b in removed),
            ))
        return removed

    async def clear_all_bookings(self) -> int:
        count = await self.store.clear_all_bookings()
        self._invalidate_bookings(None)
        return count

    async def apply_bulk_availability(self, command: BulkAvailabilityCommand) -> List[Booking]:
        try:
            return await self.store.apply_bulk_availability(command)
        finally:
            # pairs written before a failure are already visible
            self._invalidate_bookings((command.start_date, command.end_date))

    async def save_expense(self, expense: EntityInput) -> Expense:
        saved = await self.store.save_expense(expense)
        # an update may have moved the expense out of a cached period
        self.cache.invalidate(QueryKind.EXPENSES)
        return saved

    async def delete_expense(self, expense_id: str) -> Optional[Expense]:
        removed = await self.store.delete_expense(expense_id)
        if removed is not None:
            self.cache.invalidate(QueryKind.EXPENSES, (removed.date, removed.date))
        return removed

    async def save_recurring_expense(self, rule: EntityInput) -> RecurringExpense:
        saved = await self.store.save_recurring_expense(rule)
        self.cache.invalidate(QueryKind.RECURRING_EXPENSES)
        return saved

    async def delete_recurring_expense(self, rule_id: str) -> Optional[RecurringExpense]:
        removed = await self.store.delete_recurring_expense(rule_id)
        if removed is not None:
            self.cache.invalidate(QueryKind.RECURRING_EXPENSES)
        return removed

    async def generate_recurring_expenses(self, year: int, month: int) -> List[Expense]:
        generated = await self.store.generate_recurring_expenses(year, month)
        if generated:
            self.cache.invalidate(QueryKind.EXPENSES, month_bounds(year, month))
        return generated


def get_store(request: Request) -> StoreContext:
    return request.app.state.store
