"""Prefetch scheduler — warms likely-next views in the background."""

from __future__ import annotations

import asyncio
import logging

from analytics_dashboard.models.views import (
    PREFETCH_CANDIDATES,
    CacheKey,
    TimeRange,
    View,
    is_composite,
)
from analytics_dashboard.services.orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_PREFETCH_COUNT = 2
DEFAULT_PREFETCH_DELAY = 1.0


class PrefetchScheduler:
    """Schedules low-priority ``resolve`` calls after the active view settles.

    Each scheduled prefetch sleeps ``delay`` seconds first so it never competes
    with the active view's own fetch. Keys are attempted at most once per time
    range; :meth:`reset` forgets the attempts when the range changes.
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        candidates: dict[View, tuple[View, ...]] | None = None,
        limit: int = DEFAULT_PREFETCH_COUNT,
        delay: float = DEFAULT_PREFETCH_DELAY,
    ) -> None:
        self._orchestrator = orchestrator
        self._candidates = PREFETCH_CANDIDATES if candidates is None else candidates
        self.limit = limit
        self.delay = delay
        self._attempted: set[CacheKey] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, view: View, time_range: TimeRange) -> list[CacheKey]:
        """Queue prefetches for the views likely to follow ``view``.

        Walks the candidate list in order and schedules at most ``limit``
        keys, skipping any that are fresh in cache, already in flight, or
        already attempted under this time range.
        """
        cache = self._orchestrator.cache
        scheduled: list[CacheKey] = []
        for candidate in self._candidates.get(view, ()):
            if len(scheduled) >= self.limit:
                break
            if candidate == view or is_composite(candidate):
                continue
            key = CacheKey(candidate, time_range)
            if key in self._attempted:
                continue
            if cache.is_fresh(key) or self._orchestrator.is_in_flight(key):
                continue

            self._attempted.add(key)
            task = asyncio.create_task(
                self._prefetch(key, self._orchestrator.generation),
                name=f"prefetch:{key}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            scheduled.append(key)

        if scheduled:
            logger.debug("Prefetch after %s: %s", view, ", ".join(map(str, scheduled)))
        return scheduled

    async def _prefetch(self, key: CacheKey, generation: int) -> None:
        await asyncio.sleep(self.delay)
        if generation != self._orchestrator.generation:
            return
        try:
            result = await self._orchestrator.resolve(key)
        except Exception:
            logger.exception("Prefetch of %s crashed", key)
            return
        if result is None:
            logger.info("Prefetch of %s failed; will load on demand", key)

    def reset(self) -> None:
        """Forget attempted keys and drop prefetches that have not run yet."""
        self._attempted.clear()
        for task in list(self._tasks):
            task.cancel()

    async def join(self) -> None:
        """Wait until every scheduled prefetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
