import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError as SchemaError

from coworking.schemas.booking import Booking
from coworking.schemas.desk import DEFAULT_DESKS, Desk
from coworking.schemas.expense import Expense, RecurringExpense
from coworking.schemas.status import Currency
from coworking.storage import DocumentStorage
from coworking.store.base import DataStore

logger = logging.getLogger(__name__)

BOOKINGS_KEY = "coworking-bookings"
EXPENSES_KEY = "coworking-expenses"
RECURRING_EXPENSES_KEY = "coworking-recurring-expenses"

LEGACY_SCHEMA_VERSION = 1


class LocalDataStore(DataStore):
    """Store backed by JSON documents, one per collection, keyed by entity id."""

    def __init__(
        self,
        storage: DocumentStorage,
        desks: Sequence[Desk] = DEFAULT_DESKS,
        currency: Currency = Currency.EUR,
    ):
        super().__init__(desks=desks, currency=currency)
        self.storage = storage

    def _read(self, key: str, model) -> Dict[str, Any]:
        records = {}
        for record_id, record in self.storage.get_document(key).items():
            if model is Booking and isinstance(record, dict) and "schema_version" not in record:
                record = {**record, "schema_version": LEGACY_SCHEMA_VERSION}
            try:
                records[record_id] = model.model_validate(record)
            except SchemaError as e:
                logger.warning(f"Skipping unreadable record {record_id} in {key}: {e}")
        return records

    def _merge(self, key: str, records: Iterable[Any] = (), removed: Iterable[str] = ()):
        # only touched ids change; unreadable records are written back as stored
        document = self.storage.get_document(key)
        for record in records:
            document[record.id] = record.model_dump(mode="json")
        for record_id in removed:
            document.pop(record_id, None)
        self.storage.set_document(key, document)

    async def _load_bookings(self, start: date, end: date) -> List[Booking]:
        bookings = [b for b in self._read(BOOKINGS_KEY, Booking).values() if start <= b.date <= end]
        return sorted(bookings, key=lambda b: (b.date, b.desk_id))

    async def _load_desk_bookings(self, desk_id: str, start: Optional[date], end: Optional[date]) -> List[Booking]:
        bookings = [
            b for b in self._read(BOOKINGS_KEY, Booking).values()
            if b.desk_id == desk_id and (start is None or b.date >= start) and (end is None or b.date <= end)
        ]
        return sorted(bookings, key=lambda b: b.date)

    async def _load_booking(self, booking_id: str) -> Optional[Booking]:
        return self._read(BOOKINGS_KEY, Booking).get(booking_id)

    async def _put_booking(self, booking: Booking):
        await self._put_bookings([booking])

    async def _put_bookings(self, bookings: List[Booking]):
        self._merge(BOOKINGS_KEY, bookings)

    async def _remove_booking(self, booking_id: str) -> Optional[Booking]:
        removed = await self._remove_bookings([booking_id])
        return removed[0] if removed else None

    async def _remove_bookings(self, booking_ids: List[str]) -> List[Booking]:
        records = self._read(BOOKINGS_KEY, Booking)
        removed = sorted(
            (records[booking_id] for booking_id in booking_ids if booking_id in records),
            key=lambda b: (b.date, b.desk_id),
        )
        if removed:
            self._merge(BOOKINGS_KEY, removed=[b.id for b in removed])
        return removed

    async def _clear_bookings(self) -> int:
        count = len(self.storage.get_document(BOOKINGS_KEY))
        self.storage.remove_document(BOOKINGS_KEY)
        return count

    async def _load_expenses(self, start: Optional[date], end: Optional[date]) -> List[Expense]:
        expenses = [
            e for e in self._read(EXPENSES_KEY, Expense).values()
            if (start is None or e.date >= start) and (end is None or e.date <= end)
        ]
        return sorted(expenses, key=lambda e: (e.date, e.id))

    async def _put_expenses(self, expenses: List[Expense]):
        self._merge(EXPENSES_KEY, expenses)

    async def _remove_expense(self, expense_id: str) -> Optional[Expense]:
        removed = self._read(EXPENSES_KEY, Expense).get(expense_id)
        if removed is not None:
            self._merge(EXPENSES_KEY, removed=[expense_id])
        return removed

    async def _load_recurring_expenses(self) -> List[RecurringExpense]:
        rules = self._read(RECURRING_EXPENSES_KEY, RecurringExpense).values()
        return sorted(rules, key=lambda r: (r.created_at, r.id))

    async def _put_recurring_expense(self, rule: RecurringExpense):
        self._merge(RECURRING_EXPENSES_KEY, [rule])

    async def _remove_recurring_expense(self, rule_id: str) -> Optional[RecurringExpense]:
        removed = self._read(RECURRING_EXPENSES_KEY, RecurringExpense).get(rule_id)
        if removed is not None:
            self._merge(RECURRING_EXPENSES_KEY, removed=[rule_id])
        return removed
