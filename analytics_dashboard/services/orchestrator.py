"""Fetch orchestrator — the single gateway for loading a view's dataset.

Flow for ``resolve(key)``:
  1. Fresh cache hit → return it (no state change, no network)
  2. Same key already in flight → await that fetch's outcome
  3. Otherwise start a fetch: mark the view loading, call the data source,
     cache the result on success or record the error on failure
  4. Drop the key from the in-flight registry once the fetch settles

The check in (2) and the registration in (3) run without an ``await`` between
them, so two requesters for the same key can never both start a fetch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from analytics_dashboard.core.cache import MISSING, CacheStore
from analytics_dashboard.models.state import ViewState, ViewStatus
from analytics_dashboard.models.views import CacheKey, View
from analytics_dashboard.services.data_source import DataSource, ViewFetchError

logger = logging.getLogger(__name__)


def _retrieve_exception(task: asyncio.Task[Any]) -> None:
    # Failures are logged in _fetch; mark the exception retrieved even when
    # every requester was cancelled.
    if not task.cancelled():
        task.exception()


class FetchOrchestrator:
    """Owns writes to the cache store and the per-view state map."""

    def __init__(self, cache: CacheStore, source: DataSource) -> None:
        self.cache = cache
        self._source = source
        self._states: dict[View, ViewState] = {}
        self._in_flight: dict[CacheKey, asyncio.Task[Any]] = {}
        # Bumped on every full invalidation; fetches tagged with an older
        # generation never write back.
        self._generation = 0

    # ── Reads ────────────────────────────────────────────────

    def view_state(self, view: View) -> ViewState:
        return self._states.get(view) or ViewState()

    def view_states(self) -> dict[View, ViewState]:
        return dict(self._states)

    def is_in_flight(self, key: CacheKey) -> bool:
        return key in self._in_flight

    @property
    def generation(self) -> int:
        return self._generation

    # ── Resolution ───────────────────────────────────────────

    async def resolve(self, key: CacheKey, force_refresh: bool = False) -> Any | None:
        """Return the dataset for ``key``, or None if the fetch failed.

        Failures are recorded in ``view_state(key.view).error`` and never
        raised. Retrying is up to the caller (``force_refresh=True``).
        """
        try:
            return await self.load(key, force_refresh=force_refresh)
        except ViewFetchError:
            return None

    async def load(self, key: CacheKey, force_refresh: bool = False) -> Any:
        """Like :meth:`resolve` but re-raises :class:`ViewFetchError`."""
        if not force_refresh:
            cached = self.cache.get(key, MISSING)
            if cached is not MISSING:
                return cached

        task = self._in_flight.get(key)
        if task is None:
            self._states[key.view] = ViewState(status=ViewStatus.LOADING)
            task = asyncio.create_task(
                self._fetch(key, self._generation), name=f"fetch:{key}"
            )
            task.add_done_callback(_retrieve_exception)
            self._in_flight[key] = task
        # A cancelled requester must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch(self, key: CacheKey, generation: int) -> Any:
        view = key.view
        try:
            result = await self._source.fetch(view, {"timeRange": key.time_range})
        except Exception as exc:
            # Adapters are expected to raise ViewFetchError; anything else is
            # still scoped to this view.
            error = exc if isinstance(exc, ViewFetchError) else ViewFetchError(
                view, str(exc) or type(exc).__name__
            )
            if generation == self._generation:
                self._states[view] = ViewState(status=ViewStatus.ERROR, error=str(error))
            logger.warning("Fetch failed for %s: %s", key, error)
            if error is exc:
                raise
            raise error from exc
        finally:
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

        if generation != self._generation:
            logger.info("Discarding %s: time range changed while it was loading", key)
            return result

        self.cache.set(key, result)
        self._states[view] = ViewState(status=ViewStatus.LOADED)
        return result

    # ── Invalidation ─────────────────────────────────────────

    def invalidate_all(self) -> None:
        """Drop every cached dataset and reset all view states to idle.

        Fetches still running are left alone but forgotten: their results are
        discarded when they arrive.
        """
        self._generation += 1
        self.cache.clear()
        self._states.clear()
        self._in_flight.clear()
        logger.debug("Invalidated dashboard cache (generation %d)", self._generation)

    def invalidate(self, key: CacheKey) -> None:
        self.cache.delete(key)
