"""In-memory TTL cache for dashboard datasets.

One store per dashboard session. Entries are keyed by (view, time range) and
expire ``ttl`` seconds after insertion. When the store is full, the entry that
was inserted earliest is evicted (insertion order, not access recency: a
``get`` never reorders entries).

All mutation happens on the event loop thread and never awaits, so no locking
is needed.
"""

import logging
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Defaults, overridable per store via settings
DEFAULT_TTL = 300.0
DEFAULT_MAX_ENTRIES = 50

# Pass as ``default`` to tell a cached None apart from a miss
MISSING: Any = object()


@dataclass(frozen=True)
class CacheEntry:
    key: Hashable
    value: Any
    inserted_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    expired: int = 0
    evictions: int = 0


class CacheStore:
    """Bounded key/value store with per-entry expiry."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        # dict preserves insertion order; the first key is the oldest entry
        self._entries: dict[Hashable, CacheEntry] = {}
        self._stats = CacheStats()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value if present and not expired, else ``default``.

        Counted as a hit or a miss in :meth:`stats`.
        """
        entry = self._lookup(key)
        if entry is None:
            self._stats.misses += 1
            return default
        self._stats.hits += 1
        return entry.value

    def peek(self, key: Hashable, default: Any = None) -> Any:
        """Like :meth:`get` but not counted as a hit or a miss."""
        entry = self._lookup(key)
        return default if entry is None else entry.value

    def set(self, key: Hashable, value: Any) -> None:
        """Insert or replace an entry, stamping it with the current time."""
        if key in self._entries:
            # Replaced entries move to the newest position
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            self._evict_oldest()
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock())

    def delete(self, key: Hashable) -> None:
        """Remove a specific cache entry."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._entries.clear()

    def is_fresh(self, key: Hashable) -> bool:
        """True if ``key`` holds an unexpired entry. Does not touch hit/miss counters."""
        return self._lookup(key) is not None

    def keys(self) -> list[Hashable]:
        """Keys of unexpired entries, oldest insertion first."""
        return [k for k in list(self._entries) if self.is_fresh(k)]

    def stats(self) -> dict[str, int | float]:
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl,
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "expired": self._stats.expired,
            "evictions": self._stats.evictions,
        }

    def __contains__(self, key: Hashable) -> bool:
        return self.is_fresh(key)

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, key: Hashable) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is not None and self._is_expired(entry):
            del self._entries[key]
            self._stats.expired += 1
            return None
        return entry

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.inserted_at >= self.ttl

    def _evict_oldest(self) -> None:
        oldest = next(iter(self._entries))
        del self._entries[oldest]
        self._stats.evictions += 1
        logger.debug("Evicted oldest cache entry %s", oldest)
