import logging
from datetime import date
from typing import List, Optional, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coworking.db import create_database_engine, create_session_factory, init_database
from coworking.errors import BulkAvailabilityError, BulkFailure, PersistenceError
from coworking.models.booking import DeskBookingRow
from coworking.models.expense import ExpenseRow, RecurringExpenseRow
from coworking.schemas.booking import Booking
from coworking.schemas.desk import DEFAULT_DESKS, Desk
from coworking.schemas.expense import Expense, RecurringExpense
from coworking.schemas.status import Currency
from coworking.store.base import Capability, ChangeCallback, DataStore
from coworking.store.changes import ChangeFeed

logger = logging.getLogger(__name__)


def _booking_values(booking: Booking) -> dict:
    values = booking.model_dump()
    values["status"] = booking.status.value
    values["currency"] = booking.currency.value if booking.currency else None
    return values


def _expense_values(entity) -> dict:
    values = entity.model_dump()
    values["currency"] = entity.currency.value
    values["category"] = entity.category.value
    return values


def _upsert(session: Session, model, values: dict):
    row = session.get(model, values["id"])
    if row is None:
        session.add(model(**values))
        return
    for key, value in values.items():
        setattr(row, key, value)


class RelationalDataStore(DataStore):
    """
    Store backed by a SQL database through the SQLAlchemy ORM.
    Every call runs in the threadpool inside its own transaction.
    """

    capabilities = DataStore.capabilities | {Capability.SUBSCRIBE}

    def __init__(
        self,
        engine: Engine,
        desks: Sequence[Desk] = DEFAULT_DESKS,
        currency: Currency = Currency.EUR,
    ):
        super().__init__(desks=desks, currency=currency)
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.changes = ChangeFeed(engine)

    @classmethod
    def from_url(cls, url: str, credential: Optional[str] = None, **kwargs) -> "RelationalDataStore":
        engine = create_database_engine(url, credential)
        try:
            init_database(engine)
        except SQLAlchemyError as e:
            logger.error(f"Could not initialise database {engine.url!r}: {e}")
            raise PersistenceError("Failed to connect to the database") from e
        return cls(engine, **kwargs)

    async def _run(self, fn, *args):
        try:
            return await run_in_threadpool(fn, *args)
        except SQLAlchemyError as e:
            logger.error(f"Database error in {fn.__name__}: {e}")
            raise PersistenceError(f"Database operation failed: {type(e).__name__}") from e

    # Bookings

    def _select_bookings(self, start: date, end: date) -> List[Booking]:
        with self.session_factory() as session:
            rows = (
                session.query(DeskBookingRow)
                .filter(DeskBookingRow.date >= start, DeskBookingRow.date <= end)
                .order_by(DeskBookingRow.date, DeskBookingRow.desk_id)
                .all()
            )
            return [Booking.model_validate(row) for row in rows]

    def _select_booking(self, booking_id: str) -> Optional[Booking]:
        with self.session_factory() as session:
            row = session.get(DeskBookingRow, booking_id)
            return Booking.model_validate(row) if row else None

    def _write_booking(self, session: Session, booking: Booking):
        _upsert(session, DeskBookingRow, _booking_values(booking))

    def _commit_booking(self, booking: Booking):
        with self.session_factory.begin() as session:
            self._write_booking(session, booking)

    def _delete_booking(self, booking_id: str) -> Optional[Booking]:
        with self.session_factory.begin() as session:
            row = session.get(DeskBookingRow, booking_id)
            if row is None:
                return None
            removed = Booking.model_validate(row)
            session.delete(row)
            return removed

    def _select_desk_bookings(self, desk_id: str, start: Optional[date], end: Optional[date]) -> List[Booking]:
        with self.session_factory() as session:
            query = session.query(DeskBookingRow).filter(DeskBookingRow.desk_id == desk_id)
            if start is not None:
                query = query.filter(DeskBookingRow.date >= start)
            if end is not None:
                query = query.filter(DeskBookingRow.date <= end)
            return [Booking.model_validate(row) for row in query.order_by(DeskBookingRow.date).all()]

    def _delete_bookings(self, booking_ids: List[str]) -> List[Booking]:
        with self.session_factory.begin() as session:
            rows = (
                session.query(DeskBookingRow)
                .filter(DeskBookingRow.id.in_(booking_ids))
                .order_by(DeskBookingRow.date, DeskBookingRow.desk_id)
                .all()
            )
            removed = [Booking.model_validate(row) for row in rows]
            for row in rows:
                session.delete(row)
            return removed

    def _delete_all_bookings(self) -> int:
        with self.session_factory.begin() as session:
            rows = session.query(DeskBookingRow).all()
            for row in rows:
                session.delete(row)
            return len(rows)

    async def _load_bookings(self, start: date, end: date) -> List[Booking]:
        return await self._run(self._select_bookings, start, end)

    async def _load_desk_bookings(self, desk_id: str, start: Optional[date], end: Optional[date]) -> List[Booking]:
        return await self._run(self._select_desk_bookings, desk_id, start, end)

    async def _load_booking(self, booking_id: str) -> Optional[Booking]:
        return await self._run(self._select_booking, booking_id)

    async def _put_booking(self, booking: Booking):
        await self._run(self._commit_booking, booking)

    async def _put_bookings(self, bookings: List[Booking]):
        failures = []
        applied = 0
        for booking in bookings:
            try:
                await self._put_booking(booking)
                applied += 1
            except PersistenceError as e:
                reason = str(e.__cause__ or e)
                logger.error(f"Bulk write failed for {booking.desk_id} on {booking.date}: {reason}")
                failures.append(BulkFailure(desk_id=booking.desk_id, date=booking.date, reason=reason))
        if failures:
            raise BulkAvailabilityError(failures, applied)

    async def _remove_booking(self, booking_id: str) -> Optional[Booking]:
        return await self._run(self._delete_booking, booking_id)

    async def _remove_bookings(self, booking_ids: List[str]) -> List[Booking]:
        return await self._run(self._delete_bookings, booking_ids)

    async def _clear_bookings(self) -> int:
        return await self._run(self._delete_all_bookings)

    # Expenses

    def _select_expenses(self, start: Optional[date], end: Optional[date]) -> List[Expense]:
        with self.session_factory() as session:
            query = session.query(ExpenseRow)
            if start is not None:
                query = query.filter(ExpenseRow.date >= start)
            if end is not None:
                query = query.filter(ExpenseRow.date <= end)
            rows = query.order_by(ExpenseRow.date, ExpenseRow.id).all()
            return [Expense.model_validate(row) for row in rows]

    def _commit_expenses(self, expenses: List[Expense]):
        # generator runs land together or not at all
        with self.session_factory.begin() as session:
            for expense in expenses:
                _upsert(session, ExpenseRow, _expense_values(expense))

    def _delete_expense(self, expense_id: str) -> Optional[Expense]:
        with self.session_factory.begin() as session:
            row = session.get(ExpenseRow, expense_id)
            if row is None:
                return None
            removed = Expense.model_validate(row)
            session.delete(row)
            return removed

    def _select_recurring_expenses(self) -> List[RecurringExpense]:
        with self.session_factory() as session:
            rows = (
                session.query(RecurringExpenseRow)
                .order_by(RecurringExpenseRow.created_at, RecurringExpenseRow.id)
                .all()
            )
            return [RecurringExpense.model_validate(row) for row in rows]

    def _commit_recurring_expense(self, rule: RecurringExpense):
        with self.session_factory.begin() as session:
            _upsert(session, RecurringExpenseRow, _expense_values(rule))

    def _delete_recurring_expense(self, rule_id: str) -> Optional[RecurringExpense]:
        with self.session_factory.begin() as session:
            row = session.get(RecurringExpenseRow, rule_id)
            if row is None:
                return None
            removed = RecurringExpense.model_validate(row)
            session.delete(row)
            return removed

    async def _load_expenses(self, start: Optional[date], end: Optional[date]) -> List[Expense]:
        return await self._run(self._select_expenses, start, end)

    async def _put_expenses(self, expenses: List[Expense]):
        await self._run(self._commit_expenses, expenses)

    async def _remove_expense(self, expense_id: str) -> Optional[Expense]:
        return await self._run(self._delete_expense, expense_id)

    async def _load_recurring_expenses(self) -> List[RecurringExpense]:
        return await self._run(self._select_recurring_expenses)

    async def _put_recurring_expense(self, rule: RecurringExpense):
        await self._run(self._commit_recurring_expense, rule)

    async def _remove_recurring_expense(self, rule_id: str) -> Optional[RecurringExpense]:
        return await self._run(self._delete_recurring_expense, rule_id)

    # Change notifications

    def subscribe(self, table: str, callback: ChangeCallback):
        logger.info(f"Subscribing to changes on {table}")
        return self.changes.subscribe(table, callback)

    async def close(self):
        self.changes.close()
        self.engine.dispose()
