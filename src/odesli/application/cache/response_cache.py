"""TTL cache for upstream lookup responses."""

import logging
import time
from collections.abc import Callable
from typing import Any

from odesli.application.cache.base_cache import BaseCache, CacheEntry
from odesli.infrastructure.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 5 * 60


class ResponseCache(BaseCache[Any]):
    """In-memory TTL cache keyed by the fully-resolved request URL.

    Hey future me - the KEY is the full request URL (base + version + query + key).
    Two identical lookups hit the same entry no matter which client method built them.
    Per-call overrides like skip_cache or timeout never end up in the key.

    There is NO size bound. Every distinct URL stays until it expires or the cache is
    cleared. Fine for a client process, not for a high-cardinality proxy.

    Usage:
        cache = ResponseCache(metrics=metrics)
        cache.put(url, payload)
        cache.get(url)  # payload, counted as hit
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize response cache.

        Args:
            ttl_seconds: Entry lifetime
            metrics: Collector that receives hit/miss and size updates
            clock: Monotonic clock in seconds, injectable for tests
        """
        self.ttl_seconds = ttl_seconds
        self._metrics = metrics
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self.hits = 0
        self.misses = 0

    # Yo, get() sweeps ALL expired entries before looking up the key. That's O(n) per
    # call, but it keeps the dict from growing with dead entries between explicit
    # cleanups. get() also counts the hit/miss, so it is NOT a pure read.
    def get(self, key: str) -> Any | None:
        """Get a cached payload, counting the lookup as hit or miss."""
        self.cleanup_expired()
        entry = self._entries.get(key)
        hit = entry is not None
        if hit:
            self.hits += 1
        else:
            self.misses += 1
        if self._metrics is not None:
            self._metrics.record_cache_lookup(hit)
        return entry.payload if entry is not None else None

    def put(self, key: str, payload: Any) -> None:
        """Store a payload, overwriting any previous entry for the key."""
        self._entries[key] = CacheEntry(key=key, payload=payload, stored_at=self._clock())
        if self._metrics is not None:
            self._metrics.update_cache_metrics(len(self._entries))

    def delete(self, key: str) -> bool:
        """Drop one entry without checking expiry."""
        if key in self._entries:
            del self._entries[key]
            return True
        return False

    def clear(self) -> None:
        """Remove all entries and zero the hit/miss counters. Idempotent."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0
        if self._metrics is not None:
            self._metrics.reset_cache_metrics()

    def cleanup_expired(self) -> int:
        """Remove expired entries in bulk.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired_keys = [
            key
            for key, entry in self._entries.items()
            if entry.is_expired(now, self.ttl_seconds)
        ]
        for key in expired_keys:
            del self._entries[key]
        if expired_keys:
            logger.debug("ResponseCache: purged %d expired entries", len(expired_keys))
            if self._metrics is not None:
                self._metrics.update_cache_metrics(len(self._entries))
        return len(expired_keys)

    def stats(self) -> dict[str, Any]:
        """Get size and TTL (seconds) after purging expired entries."""
        self.cleanup_expired()
        return {"size": len(self._entries), "ttl": self.ttl_seconds}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str) or key not in self._entries:
            return False
        return not self._entries[key].is_expired(self._clock(), self.ttl_seconds)
