"""Caching layer - response cache for upstream lookups."""

from odesli.application.cache.base_cache import BaseCache, CacheEntry
from odesli.application.cache.response_cache import CACHE_TTL_SECONDS, ResponseCache

__all__ = [
    "CACHE_TTL_SECONDS",
    "BaseCache",
    "CacheEntry",
    "ResponseCache",
]
