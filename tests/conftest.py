"""Shared test fixtures — fake analytics source, fake clock, dashboard wiring + test client."""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from analytics_dashboard.api.deps import get_registry
from analytics_dashboard.core.cache import CacheStore
from analytics_dashboard.core.config import Settings
from analytics_dashboard.main import app
from analytics_dashboard.services.composite import CompositeAggregator
from analytics_dashboard.services.controller import DashboardController
from analytics_dashboard.services.data_source import ViewFetchError
from analytics_dashboard.services.orchestrator import FetchOrchestrator
from analytics_dashboard.services.prefetch import PrefetchScheduler
from analytics_dashboard.services.sessions import SessionRegistry


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """In-memory DataSource.

    ``failures`` maps a view to the reason its fetch fails. ``gates`` maps a
    ``(view, time_range)`` pair to an event the fetch waits on, so tests can
    hold a request in flight.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.failures: dict[str, str] = {}
        self.gates: dict[tuple[str, str], asyncio.Event] = {}

    def gate(self, view: str, time_range: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[(view, time_range)] = event
        return event

    def calls_for(self, view: str, time_range: str | None = None) -> int:
        return sum(
            1 for v, tr in self.calls
            if v == view and (time_range is None or tr == time_range)
        )

    async def fetch(self, view: str, params: dict[str, str]) -> Any:
        view = str(view)
        time_range = params.get("timeRange")
        if time_range is not None:
            time_range = str(time_range)
        self.calls.append((view, time_range))
        gate = self.gates.get((view, time_range))
        if gate is not None:
            await gate.wait()
        if view in self.failures:
            raise ViewFetchError(view, self.failures[view])
        return {"view": view, "period": time_range, "seq": len(self.calls)}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def cache(clock) -> CacheStore:
    return CacheStore(ttl=300, max_entries=50, clock=clock)


@pytest.fixture
def orchestrator(cache, source) -> FetchOrchestrator:
    return FetchOrchestrator(cache, source)


@pytest.fixture
def aggregator(orchestrator) -> CompositeAggregator:
    return CompositeAggregator(orchestrator)


@pytest.fixture
async def prefetcher(orchestrator) -> AsyncGenerator[PrefetchScheduler, None]:
    scheduler = PrefetchScheduler(orchestrator, limit=2, delay=0)
    yield scheduler
    await scheduler.aclose()


@pytest.fixture
def controller(orchestrator, aggregator, prefetcher) -> DashboardController:
    return DashboardController(orchestrator, aggregator, prefetcher)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with prefetching off so request counts stay deterministic."""
    return Settings(
        analytics_api_url="http://analytics.test",
        prefetch_count=0,
        prefetch_delay_seconds=0,
        max_sessions=3,
    )


@pytest.fixture
async def registry(source, test_settings) -> AsyncGenerator[SessionRegistry, None]:
    reg = SessionRegistry(source, test_settings)
    yield reg
    await reg.close_all()


@pytest.fixture
async def client(registry) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client bound to the fake-source registry."""
    app.dependency_overrides[get_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
