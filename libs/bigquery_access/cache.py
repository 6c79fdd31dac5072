"""
Metadata result caching.

BigQuery catalog calls are slow and catalog browsing is highly repetitive
(IDEs reopen connections and re-expand the same tree nodes), so metadata
results are kept in a TTL cache that is shared by every connection to the
same project. Sharing is done through an explicit CacheRegistry object that
the process bootstrap creates and hands to each connection.
"""

import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

DEFAULT_TTL_SECONDS = 300

Clock = Callable[[], float]


class CacheEntry(BaseModel):
    """An immutable cached metadata result."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    columns: tuple[tuple[str, str], ...]
    rows: tuple[Any, ...]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired at time ``now``."""
        return now >= self.expires_at


class CacheStats(BaseModel):
    """Point-in-time cache statistics."""

    hits: int = 0
    misses: int = 0
    hit_rate_percent: float = 0.0
    entries: int = 0
    expired_entries: int = 0
    ttl_seconds: float = 0


class MetadataCache:
    """
    Thread-safe key -> result cache with per-entry expiry.

    Expiry is checked lazily on read; ``purge_expired`` is available for an
    optional background sweep but is never needed for correctness.
    """

    def __init__(
        self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Clock | None = None
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hit_count = 0
        self._miss_count = 0
        self.logger = structlog.get_logger(__name__).bind(ttl_seconds=ttl_seconds)

    def get(self, key: str) -> CacheEntry | None:
        """
        Get a cached entry if present and not expired.

        Args:
            key: The cache key

        Returns:
            CacheEntry if cached, None otherwise
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._miss_count += 1
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._miss_count += 1
                self.logger.debug("cache_entry_expired", key=key)
                return None

            self._hit_count += 1
            return entry

    def put(
        self,
        key: str,
        columns: Iterable[tuple[str, str]],
        rows: Iterable[Any],
    ) -> CacheEntry:
        """
        Store a result, replacing any previous entry for ``key``.

        Args:
            key: The cache key
            columns: Ordered (name, type) pairs describing the rows
            rows: The result rows

        Returns:
            CacheEntry: The stored entry
        """
        # Built outside the lock so readers only ever see complete entries
        entry = CacheEntry(
            key=key,
            columns=tuple(columns),
            rows=tuple(rows),
            expires_at=self._clock() + self.ttl_seconds,
        )
        with self._lock:
            self._entries[key] = entry

        self.logger.debug("cache_entry_stored", key=key, rows=len(entry.rows))
        return entry

    def invalidate(self, key_prefix: str) -> int:
        """
        Remove every entry whose key starts with ``key_prefix``.

        Returns:
            int: Number of entries removed
        """
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(key_prefix)]
            for key in doomed:
                del self._entries[key]

        self.logger.debug(
            "cache_invalidated", key_prefix=key_prefix, removed=len(doomed)
        )
        return len(doomed)

    def clear(self) -> int:
        """Remove all entries and return how many were dropped."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()

        self.logger.debug("cache_cleared", removed=removed)
        return removed

    def purge_expired(self) -> int:
        """Drop expired entries eagerly."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> CacheStats:
        """Get cache statistics (thread-safe)."""
        now = self._clock()
        with self._lock:
            total_requests = self._hit_count + self._miss_count
            hit_rate = (
                self._hit_count / total_requests * 100 if total_requests > 0 else 0.0
            )
            return CacheStats(
                hits=self._hit_count,
                misses=self._miss_count,
                hit_rate_percent=round(hit_rate, 1),
                entries=len(self._entries),
                expired_entries=sum(
                    1 for entry in self._entries.values() if entry.is_expired(now)
                ),
                ttl_seconds=self.ttl_seconds,
            )


class CacheRegistry:
    """
    Registry of metadata caches keyed by catalog identity and TTL.

    One registry is normally created at process start and injected into
    every connection; tests create a fresh registry per test.
    """

    def __init__(self, clock: Clock | None = None):
        self._caches: dict[str, MetadataCache] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.logger = structlog.get_logger(__name__)

    @staticmethod
    def _registry_key(catalog_identity: str, ttl_seconds: float) -> str:
        return f"{catalog_identity}:{ttl_seconds}"

    def get_or_create(self, catalog_identity: str, ttl_seconds: float) -> MetadataCache:
        """Return the shared cache for a catalog, creating it on first use."""
        registry_key = self._registry_key(catalog_identity, ttl_seconds)
        with self._lock:
            cache = self._caches.get(registry_key)
            if cache is None:
                cache = MetadataCache(ttl_seconds, clock=self._clock)
                self._caches[registry_key] = cache
                self.logger.info(
                    "shared_metadata_cache_created",
                    catalog=catalog_identity,
                    ttl_seconds=ttl_seconds,
                )
            return cache

    def remove(self, catalog_identity: str, ttl_seconds: float) -> bool:
        """Drop a shared cache entirely."""
        registry_key = self._registry_key(catalog_identity, ttl_seconds)
        with self._lock:
            return self._caches.pop(registry_key, None) is not None

    def clear_all(self) -> int:
        """Clear every shared cache and return how many caches were cleared."""
        with self._lock:
            caches = list(self._caches.values())
        for cache in caches:
            cache.clear()

        self.logger.info("shared_metadata_caches_cleared", caches=len(caches))
        return len(caches)

    def count(self) -> int:
        with self._lock:
            return len(self._caches)
