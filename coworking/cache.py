"""
Query cache keyed by (kind, *params).

Every entry remembers the date period it covers so mutations can drop just
the entries they may have affected. Each invalidation bumps the version of
the keys it matches; a read that started before the bump still answers its
caller but its result is not kept.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Hashable, Mapping, Optional, Tuple

from coworking.errors import PersistenceError
from coworking.utils.dates import Period, overlaps

logger = logging.getLogger(__name__)


class QueryKind(str, Enum):
    DESK_BOOKINGS = "desk-bookings"
    DESK_STATS = "desk-stats"
    NEXT_DATES = "next-dates"
    MONTHLY_STATS = "monthly-stats"
    DATE_RANGE_STATS = "date-range-stats"
    EXPENSES = "expenses"
    RECURRING_EXPENSES = "recurring-expenses"


# seconds
DEFAULT_STALE_TIMES: Dict[QueryKind, float] = {
    QueryKind.DESK_BOOKINGS: 120,
    QueryKind.DESK_STATS: 300,
    QueryKind.NEXT_DATES: 300,
    QueryKind.MONTHLY_STATS: 120,
    QueryKind.DATE_RANGE_STATS: 120,
    QueryKind.EXPENSES: 120,
    QueryKind.RECURRING_EXPENSES: 120,
}

QueryKey = Tuple[Hashable, ...]


@dataclass
class CacheEntry:
    value: Any
    period: Optional[Period]
    fetched_at: float


class QueryCache:
    def __init__(
        self,
        stale_times: Optional[Mapping[QueryKind, float]] = None,
        default_stale_time: float = 120.0,
        read_retries: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_times = {**DEFAULT_STALE_TIMES, **(stale_times or {})}
        self.default_stale_time = default_stale_time
        self.read_retries = read_retries
        self._clock = clock
        self._entries: Dict[QueryKey, CacheEntry] = {}
        # keys with an entry or a read in flight, with their period, so in-flight reads can be invalidated too
        self._periods: Dict[QueryKey, Optional[Period]] = {}
        self._versions: Dict[QueryKey, int] = {}
        self._loading: Dict[QueryKey, int] = {}

    def stale_time(self, kind: QueryKind) -> float:
        return self.stale_times.get(kind, self.default_stale_time)

    @property
    def tracked_keys(self) -> int:
        return len(self._periods)

    def _forget_if_idle(self, key: QueryKey):
        if key not in self._entries and key not in self._loading:
            self._periods.pop(key, None)
            self._versions.pop(key, None)

    def _fresh_entry(self, key: QueryKey) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.stale_time(key[0]):
            del self._entries[key]
            self._forget_if_idle(key)
            return None
        return entry

    def is_cached(self, key: QueryKey) -> bool:
        return self._fresh_entry(tuple(key)) is not None

    async def fetch(
        self,
        key: QueryKey,
        loader: Callable[[], Awaitable[Any]],
        period: Optional[Period] = None,
    ):
        key = tuple(key)
        entry = self._fresh_entry(key)
        if entry is not None:
            return entry.value

        self._periods[key] = period
        self._loading[key] = self._loading.get(key, 0) + 1
        version = self._versions.get(key, 0)
        try:
            value = await self._load(key, loader)
            if self._versions.get(key, 0) == version:
                self._entries[key] = CacheEntry(value=value, period=period, fetched_at=self._clock())
            else:
                logger.debug(f"Discarding result for {key}: invalidated while loading")
        finally:
            self._loading[key] -= 1
            if not self._loading[key]:
                del self._loading[key]
            self._forget_if_idle(key)
        return value

    async def _load(self, key: QueryKey, loader):
        attempt = 0
        while True:
            try:
                return await loader()
            except PersistenceError as e:
                if attempt >= self.read_retries:
                    raise
                attempt += 1
                logger.warning(f"Read {key} failed ({e}), retrying ({attempt}/{self.read_retries})")

    def invalidate(self, kind: QueryKind, period: Optional[Period] = None) -> int:
        """Drop every entry of kind whose period overlaps period (all of them if None)."""
        matched = 0
        for key, key_period in list(self._periods.items()):
            if key[0] != kind or not overlaps(period, key_period):
                continue
            self._versions[key] = self._versions.get(key, 0) + 1
            if self._entries.pop(key, None) is not None:
                matched += 1
            self._forget_if_idle(key)
        if matched:
            logger.debug(f"Invalidated {matched} {kind.value} entr{'y' if matched == 1 else 'ies'}")
        return matched

    def clear(self):
        self._entries.clear()
        # only reads still in flight stay tracked, and their results are dropped
        self._periods = {key: self._periods[key] for key in self._loading}
        self._versions = {key: self._versions.get(key, 0) + 1 for key in self._loading}
