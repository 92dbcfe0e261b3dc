"""
Backend-independent data store.

Public coroutines validate their input and then delegate to the storage
primitives (the underscore methods) each backend implements, so both
backends accept and reject exactly the same entities.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from coworking.booking_state import build_bulk_bookings, transition_booking
from coworking.errors import SubscriptionError, ValidationError
from coworking.recurring import expand_recurring_expenses
from coworking.schemas.booking import Booking, BulkAvailabilityCommand, StatusChange, booking_key
from coworking.schemas.desk import DEFAULT_DESKS, Desk
from coworking.schemas.expense import Expense, RecurringExpense
from coworking.schemas.stats import DeskStats, MonthlyStats, NextDates
from coworking.schemas.status import SCHEMA_VERSION, STATUSES_BY_SCHEMA_VERSION, Currency
from coworking.stats import calculate_desk_stats, calculate_monthly_stats, calculate_stats
from coworking.utils.dates import month_bounds
from coworking.utils.scheduler import find_next_dates, lookahead_period
from coworking.utils.validation_helpers import validate_amount, validate_booking, validate_date_range

logger = logging.getLogger(__name__)

EntityInput = Union[BaseModel, Mapping[str, Any]]
ChangeCallback = Callable[[Any], None]


class Capability(str, Enum):
    READ = "read"
    WRITE = "write"
    BULK_WRITE = "bulk_write"
    SUBSCRIBE = "subscribe"


def _as_dict(entity: EntityInput) -> Dict[str, Any]:
    if isinstance(entity, BaseModel):
        return entity.model_dump()
    return dict(entity)


def _describe(error: SchemaError) -> str:
    return "; ".join(err["msg"] for err in error.errors())


def _parse(model, data: Dict[str, Any]):
    try:
        return model.model_validate(data)
    except SchemaError as e:
        raise ValidationError(_describe(e)) from e


def validate_month(year: int, month: int):
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    if year < 1:
        raise ValidationError(f"Invalid year: {year}")


class DataStore(ABC):
    capabilities = frozenset({Capability.READ, Capability.WRITE, Capability.BULK_WRITE})

    def __init__(self, desks: Sequence[Desk] = DEFAULT_DESKS, currency: Currency = Currency.EUR):
        self.desks: Tuple[Desk, ...] = tuple(desks)
        self.currency = currency

    @property
    def desk_ids(self) -> List[str]:
        return [desk.id for desk in self.desks]

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    # Storage primitives

    @abstractmethod
    async def _load_bookings(self, start: date, end: date) -> List[Booking]:
        ...

    @abstractmethod
    async def _load_desk_bookings(self, desk_id: str, start: Optional[date], end: Optional[date]) -> List[Booking]:
        ...

    @abstractmethod
    async def _load_booking(self, booking_id: str) -> Optional[Booking]:
        ...

    @abstractmethod
    async def _put_booking(self, booking: Booking):
        ...

    @abstractmethod
    async def _put_bookings(self, bookings: List[Booking]):
        ...

    @abstractmethod
    async def _remove_booking(self, booking_id: str) -> Optional[Booking]:
        ...

    @abstractmethod
    async def _remove_bookings(self, booking_ids: List[str]) -> List[Booking]:
        ...

    @abstractmethod
    async def _clear_bookings(self) -> int:
        ...

    @abstractmethod
    async def _load_expenses(self, start: Optional[date], end: Optional[date]) -> List[Expense]:
        ...

    @abstractmethod
    async def _put_expenses(self, expenses: List[Expense]):
        ...

    @abstractmethod
    async def _remove_expense(self, expense_id: str) -> Optional[Expense]:
        ...

    @abstractmethod
    async def _load_recurring_expenses(self) -> List[RecurringExpense]:
        ...

    @abstractmethod
    async def _put_recurring_expense(self, rule: RecurringExpense):
        ...

    @abstractmethod
    async def _remove_recurring_expense(self, rule_id: str) -> Optional[RecurringExpense]:
        ...

    # Bookings

    async def get_bookings_for_range(self, start: date, end: date) -> List[Booking]:
        validate_date_range(start, end)
        return await self._load_bookings(start, end)

    async def get_booking(self, desk_id: str, day: date) -> Optional[Booking]:
        return await self._load_booking(booking_key(desk_id, day))

    async def get_bookings_for_desk(
        self, desk_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Booking]:
        if start and end:
            validate_date_range(start, end)
        return await self._load_desk_bookings(desk_id, start, end)

    def prepare_booking(self, booking: EntityInput) -> Booking:
        """Validate a booking for writing, stamped with the current schema version."""
        data = _as_dict(booking)
        data.pop("id", None)
        data["schema_version"] = SCHEMA_VERSION
        prepared = _parse(Booking, data)
        validate_booking(prepared, self.desk_ids)
        return prepared

    async def save_booking(self, booking: EntityInput) -> Booking:
        prepared = self.prepare_booking(booking)
        await self._put_booking(prepared)
        logger.debug(f"Saved booking {prepared.id} ({prepared.status.value})")
        return prepared

    async def update_booking_status(self, desk_id: str, day: date, change: StatusChange) -> Booking:
        if desk_id not in self.desk_ids:
            raise ValidationError(f"Unknown desk: {desk_id}")
        current = await self.get_booking(desk_id, day)
        try:
            updated = transition_booking(current, desk_id, day, change)
        except SchemaError as e:
            raise ValidationError(_describe(e)) from e
        return await self.save_booking(updated)

    async def delete_booking(self, booking_id: str) -> Optional[Booking]:
        removed = await self._remove_booking(booking_id)
        if removed is None:
            logger.debug(f"Booking {booking_id} not found, nothing to delete")
        return removed

    async def bulk_delete_bookings(self, pairs: Iterable[Tuple[str, date]]) -> List[Booking]:
        """Delete the bookings of every (desk, day) pair at once; missing pairs are ignored."""
        booking_ids = list(dict.fromkeys(booking_key(desk_id, day) for desk_id, day in pairs))
        if not booking_ids:
            return []
        removed = await self._remove_bookings(booking_ids)
        logger.info(f"Deleted {len(removed)} of {len(booking_ids)} requested booking(s)")
        return removed

    async def clear_all_bookings(self) -> int:
        count = await self._clear_bookings()
        logger.warning(f"Cleared all bookings ({count} records)")
        return count

    async def apply_bulk_availability(self, command: EntityInput) -> List[Booking]:
        """
        Overwrite every (desk, day) pair of the command with its status.
        The local backend writes the whole command at once. The relational
        backend writes pair by pair and raises BulkAvailabilityError listing
        the pairs that failed.
        """
        cmd = command if isinstance(command, BulkAvailabilityCommand) else _parse(
            BulkAvailabilityCommand, _as_dict(command)
        )
        if cmd.status not in STATUSES_BY_SCHEMA_VERSION[SCHEMA_VERSION]:
            raise ValidationError(f"Status '{cmd.status.value}' can no longer be written")
        unknown = [desk_id for desk_id in cmd.desk_ids if desk_id not in self.desk_ids]
        if unknown:
            raise ValidationError(f"Unknown desks: {', '.join(unknown)}")

        existing = {
            (b.desk_id, b.date): b for b in await self._load_bookings(cmd.start_date, cmd.end_date)
        }
        bookings = build_bulk_bookings(cmd, existing)
        for booking in bookings:
            validate_booking(booking, self.desk_ids)
        logger.info(
            f"Applying {cmd.status.value} to {len(cmd.desk_ids)} desk(s) "
            f"from {cmd.start_date} to {cmd.end_date} ({len(bookings)} records)"
        )
        await self._put_bookings(bookings)
        return bookings

    # Expenses

    async def get_expenses(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Expense]:
        if start and end:
            validate_date_range(start, end)
        return await self._load_expenses(start, end)

    async def save_expense(self, expense: EntityInput) -> Expense:
        prepared = _parse(Expense, _as_dict(expense))
        validate_amount(prepared.amount)
        await self._put_expenses([prepared])
        logger.debug(f"Saved expense {prepared.id}")
        return prepared

    async def delete_expense(self, expense_id: str) -> Optional[Expense]:
        return await self._remove_expense(expense_id)

    async def get_recurring_expenses(self) -> List[RecurringExpense]:
        return await self._load_recurring_expenses()

    async def save_recurring_expense(self, rule: EntityInput) -> RecurringExpense:
        prepared = _parse(RecurringExpense, _as_dict(rule))
        validate_amount(prepared.amount)
        await self._put_recurring_expense(prepared)
        logger.debug(f"Saved recurring expense {prepared.id}")
        return prepared

    async def delete_recurring_expense(self, rule_id: str) -> Optional[RecurringExpense]:
        # expenses generated from the rule stay where they are
        return await self._remove_recurring_expense(rule_id)

    async def generate_recurring_expenses(self, year: int, month: int) -> List[Expense]:
        validate_month(year, month)
        rules = await self._load_recurring_expenses()
        start, end = month_bounds(year, month)
        existing = {e.id: e for e in await self._load_expenses(start, end)}
        expenses = expand_recurring_expenses(rules, year, month, existing)
        if expenses:
            await self._put_expenses(expenses)
        logger.info(f"Generated {len(expenses)} recurring expense(s) for {year}-{month:02d}")
        return expenses

    # Statistics

    async def get_monthly_stats(self, year: int, month: int) -> MonthlyStats:
        validate_month(year, month)
        start, end = month_bounds(year, month)
        bookings = await self._load_bookings(start, end)
        return calculate_monthly_stats(bookings, year, month, len(self.desks), self.currency)

    async def get_stats_for_date_range(self, start: date, end: date) -> MonthlyStats:
        validate_date_range(start, end)
        bookings = await self._load_bookings(start, end)
        return calculate_stats(bookings, start, end, len(self.desks), self.currency)

    async def get_desk_stats(self, dates: Iterable[date], desk_ids: Optional[List[str]] = None) -> DeskStats:
        dates = sorted(set(dates))
        desk_ids = desk_ids or self.desk_ids
        if not dates:
            return DeskStats(available=0, assigned=0, booked=0)
        bookings = await self._load_bookings(dates[0], dates[-1])
        return calculate_desk_stats(bookings, dates, desk_ids)

    async def get_next_dates(self, today: Optional[date] = None) -> NextDates:
        today = today or date.today()
        start, end = lookahead_period(today)
        bookings = await self._load_bookings(start, end)
        return find_next_dates(bookings, self.desks, today)

    # Change notifications

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        raise SubscriptionError(f"{type(self).__name__} does not publish change notifications")

    async def close(self):
        pass
