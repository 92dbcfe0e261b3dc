from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class WaitingListEntryBase(BaseModel):
    name: str = Field(min_length=1)
    preferred_dates: str = Field(min_length=1)
    contact_info: Optional[str] = None
    notes: Optional[str] = None


class WaitingListEntryCreate(WaitingListEntryBase):
    pass


class WaitingListEntryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    preferred_dates: Optional[str] = Field(default=None, min_length=1)
    contact_info: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "preferred_dates")
    @classmethod
    def required_fields_stay_set(cls, value):
        if value is None:
            raise ValueError("name and preferred_dates cannot be cleared")
        return value


class WaitingListEntry(WaitingListEntryBase):
    id: str
    created_at: datetime
