import asyncio
from datetime import date

import pytest

from coworking.cache import QueryCache, QueryKind
from coworking.errors import PersistenceError

from tests.conf_tests import run

MARCH = (date(2024, 3, 1), date(2024, 3, 31))
APRIL = (date(2024, 4, 1), date(2024, 4, 30))
MARCH_KEY = (QueryKind.DESK_BOOKINGS, *MARCH)
APRIL_KEY = (QueryKind.DESK_BOOKINGS, *APRIL)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class CountingLoader:
    def __init__(self, failures=0, error=PersistenceError):
        self.calls = 0
        self.failures = failures
        self.error = error

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("temporarily unavailable")
        return self.calls


def test_results_are_served_until_stale():
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    loader = CountingLoader()

    assert run(cache.fetch(MARCH_KEY, loader, MARCH)) == 1
    clock.now = 119
    assert run(cache.fetch(MARCH_KEY, loader, MARCH)) == 1
    clock.now = 120
    assert run(cache.fetch(MARCH_KEY, loader, MARCH)) == 2


def test_staleness_depends_on_kind():
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    key = (QueryKind.DESK_STATS, date(2024, 3, 1))
    run(cache.fetch(key, CountingLoader()))
    clock.now = 200
    assert cache.is_cached(key)
    clock.now = 300
    assert not cache.is_cached(key)


def test_invalidation_only_drops_overlapping_periods():
    cache = QueryCache()
    run(cache.fetch(MARCH_KEY, CountingLoader(), MARCH))
    run(cache.fetch(APRIL_KEY, CountingLoader(), APRIL))

    cache.invalidate(QueryKind.DESK_BOOKINGS, (date(2024, 3, 15), date(2024, 3, 15)))
    assert not cache.is_cached(MARCH_KEY)
    assert cache.is_cached(APRIL_KEY)


def test_period_boundaries_are_inclusive():
    cache = QueryCache()
    run(cache.fetch(APRIL_KEY, CountingLoader(), APRIL))
    cache.invalidate(QueryKind.DESK_BOOKINGS, (date(2024, 3, 30), date(2024, 4, 1)))
    assert not cache.is_cached(APRIL_KEY)


def test_invalidation_is_per_kind():
    cache = QueryCache()
    expenses_key = (QueryKind.EXPENSES, *MARCH)
    run(cache.fetch(MARCH_KEY, CountingLoader(), MARCH))
    run(cache.fetch(expenses_key, CountingLoader(), MARCH))

    cache.invalidate(QueryKind.EXPENSES)
    assert cache.is_cached(MARCH_KEY)
    assert not cache.is_cached(expenses_key)


def test_invalidating_twice_is_harmless():
    cache = QueryCache()
    run(cache.fetch(MARCH_KEY, CountingLoader(), MARCH))
    assert cache.invalidate(QueryKind.DESK_BOOKINGS, MARCH) == 1
    assert cache.invalidate(QueryKind.DESK_BOOKINGS, MARCH) == 0


def test_read_started_before_invalidation_is_not_kept():
    cache = QueryCache()

    async def scenario():
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_loader():
            started.set()
            await release.wait()
            return "before the write"

        task = asyncio.create_task(cache.fetch(MARCH_KEY, slow_loader, MARCH))
        await started.wait()
        cache.invalidate(QueryKind.DESK_BOOKINGS, MARCH)
        release.set()
        return await task

    assert run(scenario()) == "before the write"
    assert not cache.is_cached(MARCH_KEY)


def test_failed_read_is_retried_once():
    cache = QueryCache()
    loader = CountingLoader(failures=1)
    assert run(cache.fetch(MARCH_KEY, loader, MARCH)) == 2

    failing = CountingLoader(failures=2)
    with pytest.raises(PersistenceError):
        run(cache.fetch(APRIL_KEY, failing, APRIL))
    assert failing.calls == 2


def test_other_errors_are_not_retried():
    cache = QueryCache()
    loader = CountingLoader(failures=1, error=ValueError)
    with pytest.raises(ValueError):
        run(cache.fetch(MARCH_KEY, loader, MARCH))
    assert loader.calls == 1


def test_clear_drops_everything():
    cache = QueryCache()
    run(cache.fetch(MARCH_KEY, CountingLoader(), MARCH))
    cache.clear()
    assert not cache.is_cached(MARCH_KEY)


def test_clear_forgets_every_key():
    cache = QueryCache()
    for day in range(1, 29):
        key = (QueryKind.NEXT_DATES, date(2024, 2, day))
        run(cache.fetch(key, CountingLoader()))
    assert cache.tracked_keys == 28

    cache.clear()
    assert cache.tracked_keys == 0
    assert cache.invalidate(QueryKind.NEXT_DATES) == 0


def test_invalidated_and_stale_keys_are_forgotten():
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    run(cache.fetch(MARCH_KEY, CountingLoader(), MARCH))
    run(cache.fetch(APRIL_KEY, CountingLoader(), APRIL))

    cache.invalidate(QueryKind.DESK_BOOKINGS, MARCH)
    assert cache.tracked_keys == 1

    clock.now += cache.stale_time(QueryKind.DESK_BOOKINGS)
    assert not cache.is_cached(APRIL_KEY)
    assert cache.tracked_keys == 0


def test_failed_read_is_not_tracked():
    cache = QueryCache(read_retries=0)
    with pytest.raises(PersistenceError):
        run(cache.fetch(MARCH_KEY, CountingLoader(failures=1), MARCH))
    assert cache.tracked_keys == 0


def test_clear_during_read_drops_its_result():
    cache = QueryCache()

    async def scenario():
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_loader():
            started.set()
            await release.wait()
            return "before the clear"

        task = asyncio.create_task(cache.fetch(MARCH_KEY, slow_loader, MARCH))
        await started.wait()
        cache.clear()
        assert cache.tracked_keys == 1
        release.set()
        return await task

    assert run(scenario()) == "before the clear"
    assert not cache.is_cached(MARCH_KEY)
    assert cache.tracked_keys == 0
