"""Tests for background prefetching of likely-next views."""

import asyncio

import pytest

from analytics_dashboard.models.state import ViewStatus
from analytics_dashboard.models.views import CacheKey, TimeRange, View
from analytics_dashboard.services.prefetch import PrefetchScheduler

RANGE = TimeRange.THIRTY_DAYS


def _key(view: View) -> CacheKey:
    return CacheKey(view, RANGE)


@pytest.mark.asyncio
async def test_schedules_candidates_in_order_up_to_limit(prefetcher, cache, source):
    scheduled = prefetcher.schedule(View.OVERVIEW, RANGE)

    assert scheduled == [_key(View.SALES), _key(View.USERS)]
    await prefetcher.join()

    assert [v for v, _ in source.calls] == ["sales", "users"]
    assert cache.is_fresh(_key(View.SALES))
    assert cache.is_fresh(_key(View.USERS))
    assert not cache.is_fresh(_key(View.REVENUE))


@pytest.mark.asyncio
async def test_fresh_candidates_are_skipped(prefetcher, cache, source):
    cache.set(_key(View.SALES), {"cached": True})

    scheduled = prefetcher.schedule(View.OVERVIEW, RANGE)
    await prefetcher.join()

    # The fresh key does not use up the limit
    assert scheduled == [_key(View.USERS), _key(View.REVENUE)]
    assert source.calls_for("sales") == 0


@pytest.mark.asyncio
async def test_in_flight_candidates_are_skipped(prefetcher, orchestrator, source):
    gate = source.gate("sales", "30d")
    active = asyncio.create_task(orchestrator.resolve(_key(View.SALES)))
    await asyncio.sleep(0)

    scheduled = prefetcher.schedule(View.OVERVIEW, RANGE)
    assert _key(View.SALES) not in scheduled

    gate.set()
    await active
    await prefetcher.join()
    assert source.calls_for("sales") == 1


@pytest.mark.asyncio
async def test_each_key_attempted_once(prefetcher, source):
    source.failures["sales"] = "down"
    prefetcher.schedule(View.OVERVIEW, RANGE)
    await prefetcher.join()

    # Sales failed and is not fresh, but it has been attempted already
    scheduled = prefetcher.schedule(View.REVENUE, RANGE)
    await prefetcher.join()

    assert _key(View.SALES) not in scheduled
    assert source.calls_for("sales") == 1


@pytest.mark.asyncio
async def test_reset_allows_new_attempts(prefetcher, orchestrator, source):
    prefetcher.schedule(View.OVERVIEW, RANGE)
    await prefetcher.join()

    orchestrator.invalidate_all()
    prefetcher.reset()
    prefetcher.schedule(View.OVERVIEW, RANGE)
    await prefetcher.join()

    assert source.calls_for("sales") == 2


@pytest.mark.asyncio
async def test_prefetch_failure_is_silent(prefetcher, orchestrator, source):
    source.failures["sales"] = "server responded 503"

    prefetcher.schedule(View.OVERVIEW, RANGE)
    await prefetcher.join()

    # Failure shows up as error state, nothing is raised
    state = orchestrator.view_state(View.SALES)
    assert state.status == ViewStatus.ERROR
    assert orchestrator.view_state(View.USERS).status == ViewStatus.LOADED


@pytest.mark.asyncio
async def test_waits_for_delay_before_fetching(orchestrator, source):
    scheduler = PrefetchScheduler(orchestrator, limit=2, delay=60)
    scheduler.schedule(View.OVERVIEW, RANGE)
    await asyncio.sleep(0)

    assert scheduler.pending == 2
    assert source.calls == []

    await scheduler.aclose()
    assert scheduler.pending == 0
    assert source.calls == []


@pytest.mark.asyncio
async def test_generation_change_during_delay_cancels_fetch(orchestrator, source):
    scheduler = PrefetchScheduler(orchestrator, limit=1, delay=0.01)
    scheduler.schedule(View.OVERVIEW, RANGE)

    orchestrator.invalidate_all()
    await scheduler.join()

    assert source.calls == []


@pytest.mark.asyncio
async def test_composites_and_self_are_never_prefetched(orchestrator, source):
    candidates = {View.SALES: (View.SALES, View.SUMMARY, View.REVENUE)}
    scheduler = PrefetchScheduler(orchestrator, candidates=candidates, limit=3, delay=0)

    scheduled = scheduler.schedule(View.SALES, RANGE)
    await scheduler.join()

    assert scheduled == [_key(View.REVENUE)]
    assert source.calls == [("revenue", "30d")]


@pytest.mark.asyncio
async def test_zero_limit_schedules_nothing(orchestrator, source):
    scheduler = PrefetchScheduler(orchestrator, limit=0, delay=0)
    assert scheduler.schedule(View.OVERVIEW, RANGE) == []
    assert scheduler.pending == 0
