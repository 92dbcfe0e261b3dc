from dataclasses import dataclass
from datetime import date
from typing import List


class StoreError(Exception):
    """Base class for every error raised by the data-access layer."""


class ValidationError(StoreError, ValueError):
    """An entity violates a schema or booking state-machine invariant."""


class PersistenceError(StoreError):
    """Serialization, quota or database failure while reading or writing."""


class ConfigurationError(StoreError):
    pass


class SubscriptionError(StoreError):
    """Realtime setup failed. Only ever logged, never raised to callers."""


@dataclass(frozen=True)
class BulkFailure:
    desk_id: str
    date: date
    reason: str


class BulkAvailabilityError(PersistenceError):
    """
    Some (desk, date) pairs of a bulk availability command were not written.
    The remaining pairs were committed.
    """

    def __init__(self, failures: List[BulkFailure], applied: int):
        self.failures = list(failures)
        self.applied = applied
        pairs = ", ".join(f"{f.desk_id}@{f.date.isoformat()}" for f in self.failures)
        super().__init__(f"Bulk availability failed for {len(self.failures)} pair(s): {pairs}")
