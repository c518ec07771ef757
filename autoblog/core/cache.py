"""Explicitly scoped in-memory TTL cache.

Replaces module-level dicts for process-local state (API key lookups,
token caches). Each owner constructs its own instance with its own TTL and
is responsible for invalidating entries when the underlying data changes.
"""

from collections.abc import Callable, Hashable
from datetime import datetime, timedelta

from autoblog.core.datetime_utils import utc_now


class TTLCache[K: Hashable, V]:
    """Small TTL cache with explicit invalidation hooks."""

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 1024,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[K, tuple[V, datetime]] = {}

    def get(self, key: K) -> V | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: K, value: V) -> None:
        if len(self._entries) >= self._max_entries and key not in self._entries:
            self._evict_oldest()
        self._entries[key] = (value, self._clock())

    def invalidate(self, key: K) -> None:
        """Drop one entry (e.g. after the underlying row was revoked)."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_oldest(self) -> None:
        oldest = min(self._entries, key=lambda k: self._entries[k][1])
        del self._entries[oldest]
