"""Dashboard sessions — one cache/orchestrator/controller set per open dashboard.

Sessions are created and closed explicitly; nothing here is module-global, so
tests can build a session around a fake data source and a fake clock.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from analytics_dashboard.core.cache import CacheStore
from analytics_dashboard.core.config import Settings
from analytics_dashboard.models.views import TimeRange, View
from analytics_dashboard.services.composite import CompositeAggregator
from analytics_dashboard.services.controller import DashboardController
from analytics_dashboard.services.data_source import DataSource
from analytics_dashboard.services.orchestrator import FetchOrchestrator
from analytics_dashboard.services.prefetch import PrefetchScheduler

logger = logging.getLogger(__name__)


class SessionLimitReached(Exception):
    pass


@dataclass
class DashboardSession:
    id: str
    cache: CacheStore
    orchestrator: FetchOrchestrator
    prefetcher: PrefetchScheduler
    controller: DashboardController
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Monotonic time of the last request, set by the registry
    last_used_at: float = 0.0

    async def close(self) -> None:
        await self.prefetcher.aclose()
        self.cache.clear()


def build_session(
    source: DataSource,
    settings: Settings,
    view: View | None = None,
    time_range: TimeRange | None = None,
    session_id: str | None = None,
) -> DashboardSession:
    """Wire up a fresh session from settings."""
    cache = CacheStore(ttl=settings.cache_ttl_seconds, max_entries=settings.cache_max_entries)
    orchestrator = FetchOrchestrator(cache, source)
    prefetcher = PrefetchScheduler(
        orchestrator,
        limit=settings.prefetch_count,
        delay=settings.prefetch_delay_seconds,
    )
    controller = DashboardController(
        orchestrator,
        CompositeAggregator(orchestrator),
        prefetcher,
        view=view or settings.default_view,
        time_range=time_range or settings.default_time_range,
    )
    return DashboardSession(
        id=session_id or secrets.token_urlsafe(16),
        cache=cache,
        orchestrator=orchestrator,
        prefetcher=prefetcher,
        controller=controller,
    )


class SessionRegistry:
    """Live dashboard sessions, owned by the application lifespan.

    Sessions idle for longer than ``session_idle_seconds`` are closed the next
    time a session is created, so abandoned dashboards never hold a slot.
    """

    def __init__(
        self,
        source: DataSource,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._settings = settings
        self._clock = clock
        self._sessions: dict[str, DashboardSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(
        self, view: View | None = None, time_range: TimeRange | None = None
    ) -> DashboardSession:
        await self.reap_idle()
        if len(self._sessions) >= self._settings.max_sessions:
            raise SessionLimitReached(
                f"Session limit of {self._settings.max_sessions} reached"
            )
        session = build_session(self._source, self._settings, view, time_range)
        session.last_used_at = self._clock()
        self._sessions[session.id] = session
        logger.info("Opened dashboard session %s", session.id)
        return session

    def get(self, session_id: str) -> DashboardSession | None:
        """Look up a session and mark it as used."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_used_at = self._clock()
        return session

    async def reap_idle(self) -> int:
        """Close every session idle for longer than ``session_idle_seconds``."""
        cutoff = self._clock() - self._settings.session_idle_seconds
        idle = [sid for sid, s in self._sessions.items() if s.last_used_at < cutoff]
        for session_id in idle:
            logger.info("Reaping idle dashboard session %s", session_id)
            await self.close(session_id)
        return len(idle)

    async def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info("Closed dashboard session %s", session_id)
        return True

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)
