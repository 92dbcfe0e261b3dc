import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coworking.schemas.status import Currency, DeskStatus, SCHEMA_VERSION
from coworking.utils.validation_helpers import validate_booking_fields, validate_date_range


def booking_key(desk_id: str, date: dt.date) -> str:
    return f"{desk_id}-{date.isoformat()}"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class BookingCreate(BaseModel):
    """Incoming booking; the state-machine invariant is checked by the store."""

    desk_id: str
    date: dt.date
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    status: DeskStatus
    person_name: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[Currency] = None

    @field_validator("person_name", "title", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _blank_to_none(value)


class Booking(BaseModel):
    """Occupancy of one desk on one calendar day."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    desk_id: str
    date: dt.date
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    status: DeskStatus
    person_name: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[Currency] = None
    schema_version: int = SCHEMA_VERSION
    created_at: dt.datetime = Field(default_factory=utcnow)

    @field_validator("person_name", "title", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _blank_to_none(value)

    @model_validator(mode="after")
    def check_invariant(self):
        self.id = booking_key(self.desk_id, self.date)
        self.start_date = self.start_date or self.date
        self.end_date = self.end_date or self.date
        validate_date_range(self.start_date, self.end_date)
        validate_booking_fields(
            self.status, self.person_name, self.title, self.price, self.schema_version
        )
        return self

    @property
    def is_occupied(self) -> bool:
        return self.status in (DeskStatus.BOOKED, DeskStatus.ASSIGNED)


class BulkAvailabilityCommand(BaseModel):
    """Set one status for every desk in desk_ids on every day in the range."""

    start_date: dt.date
    end_date: dt.date
    desk_ids: List[str] = Field(min_length=1)
    status: DeskStatus
    person_name: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[Currency] = None

    @field_validator("person_name", "title", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _blank_to_none(value)

    @field_validator("desk_ids")
    @classmethod
    def unique_desks(cls, value):
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def check_range(self):
        validate_date_range(self.start_date, self.end_date)
        if self.status in (DeskStatus.BOOKED, DeskStatus.ASSIGNED) and not self.person_name:
            raise ValueError(f"Bulk {self.status.value} requires person_name")
        return self


class DeskDay(BaseModel):
    desk_id: str
    date: dt.date


class BulkDeleteCommand(BaseModel):
    pairs: List[DeskDay] = Field(min_length=1)


class StatusChange(BaseModel):
    status: DeskStatus
    person_name: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[Currency] = None

    @field_validator("person_name", "title", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _blank_to_none(value)
