"""Base cache interface and cache entry."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """Cache entry with payload and the time it was stored."""

    key: str
    payload: V
    stored_at: float

    # Hey future me, the comparison is strict: an entry stored at t=0 with
    # ttl=300 is still visible at t=299.999 and gone at t=300. `now` comes from the
    # cache's injected clock (time.monotonic by default), so NTP jumps can't expire
    # entries early.
    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Check if cache entry is expired."""
        return now - self.stored_at >= ttl_seconds


class BaseCache(ABC, Generic[V]):
    """Base cache interface.

    Synchronous: every implementation here is in-process memory on a single event
    loop, nothing can interleave inside a get/put.
    """

    @abstractmethod
    def get(self, key: str) -> V | None:
        """Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value if found and not expired, None otherwise
        """

    @abstractmethod
    def put(self, key: str, payload: V) -> None:
        """Store value in cache, replacing any existing entry.

        Args:
            key: Cache key
            payload: Value to cache
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete value from cache.

        Returns:
            True if deleted, False if not found
        """

    @abstractmethod
    def clear(self) -> None:
        """Clear all entries from cache."""

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
