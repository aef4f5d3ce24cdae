"""
Odesli client - resolve a music link into links on every other platform.

Hey future me - this is the ONLY class most callers ever touch! It wires together:

    validation -> RateLimiter (optional) -> RequestExecutor (cache, retries)
        -> normalize_response -> plugin transformers -> caller

Everything stateful (cache, metrics, limiter, plugins) is an INSTANCE collaborator.
Two clients never share a cache unless you hand them the same one.

Usage:
    async with Odesli(api_key="...") as odesli:
        song = await odesli.fetch("https://open.spotify.com/track/4Km5HrUvYTaSUfiSGPJeQR")
        print(song.title, song.artist, song.url_for("appleMusic"))

        results = await odesli.fetch_batch(urls, concurrency=5)
        failed = [r for r in results if not r.success]
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from odesli.application.cache.response_cache import ResponseCache
from odesli.application.services.batch_orchestrator import (
    DEFAULT_CONCURRENCY,
    BatchOrchestrator,
)
from odesli.application.services.normalizer import normalize_response
from odesli.config.settings import FetchOptions, OdesliSettings, get_settings
from odesli.domain.dtos import BatchItemResult, LinkResult
from odesli.domain.exceptions import RateLimitExceededError, ValidationError
from odesli.domain.value_objects import platforms
from odesli.domain.value_objects.platforms import EntityType
from odesli.infrastructure.integrations.request_executor import RequestExecutor
from odesli.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)
from odesli.infrastructure.observability.metrics import MetricsCollector
from odesli.infrastructure.plugins.plugin_system import HookName, PluginSystem
from odesli.infrastructure.rate_limiter import RateLimiter

_module_logger = logging.getLogger(__name__)

ENTITY_ID_FORMAT = "<PLATFORM>_<SONG|ALBUM>::<UNIQUEID>"

LookupResult = LinkResult | dict[str, Any]


class Odesli:
    """Async client for the Odesli (song.link) lookup service."""

    def __init__(
        self,
        settings: OdesliSettings | None = None,
        *,
        api_key: str | None = None,
        version: str | None = None,
        cache: bool | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        headers: dict[str, str] | None = None,
        base_url: str | None = None,
        validate_params: bool | None = None,
        logger: logging.Logger | None = None,
        metrics: MetricsCollector | None = None,
        rate_limiter: RateLimiter | None = None,
        plugins: PluginSystem | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize client.

        Keyword overrides are applied on top of `settings` (or the ODESLI_*
        environment when no settings are given). None means "not overridden".

        Args:
            settings: Base settings
            api_key: API key for a higher rate limit
            version: API version path segment
            cache: Cache successful responses for 5 minutes
            timeout: Per-attempt timeout in seconds
            max_retries: Attempts per request, including the first
            retry_delay: Base backoff delay in seconds
            headers: Extra request headers
            base_url: Lookup service host
            validate_params: Validate inputs before requesting
            logger: Logger for client-level messages
            metrics: Shared metrics collector (a private one is created otherwise)
            rate_limiter: Limiter awaited before every network lookup
            plugins: Plugin system for hooks, middleware and transformers
            http_client: Injected httpx client (caller keeps ownership)
            sleep: Async sleep used for retry backoff
        """
        overrides = {
            key: value
            for key, value in {
                "api_key": api_key,
                "version": version,
                "cache": cache,
                "timeout": timeout,
                "max_retries": max_retries,
                "retry_delay": retry_delay,
                "headers": headers,
                "base_url": base_url,
                "validate_params": validate_params,
            }.items()
            if value is not None
        }
        base = settings or get_settings()
        self.settings = (
            OdesliSettings(**{**base.model_dump(), **overrides}) if overrides else base
        )

        self._log = logger or _module_logger
        self._owns_metrics = metrics is None
        self.metrics = metrics or MetricsCollector()
        self.cache = ResponseCache(metrics=self.metrics) if self.settings.cache else None
        self.rate_limiter = rate_limiter
        self.plugins = plugins
        self._executor = RequestExecutor(
            self.settings,
            cache=self.cache,
            metrics=self.metrics,
            plugins=plugins,
            http_client=http_client,
            sleep=sleep,
            log=self._log,
        )
        self._batch = BatchOrchestrator(log=self._log)

    async def close(self) -> None:
        """Release the HTTP client and stop the private metrics timer."""
        await self._executor.close()
        if self._owns_metrics:
            self.metrics.close()

    async def __aenter__(self) -> "Odesli":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # ==========================================================================
    # LOOKUPS
    # ==========================================================================

    async def fetch(
        self,
        url: str,
        *,
        country: str = "US",
        skip_cache: bool = False,
        timeout: float | None = None,
    ) -> LookupResult:
        """Look up a song or album by its share URL on any supported platform.

        Args:
            url: Share link, e.g. https://open.spotify.com/track/...
            country: ISO 3166-1 alpha-2 country for region-specific results
            skip_cache: Bypass the response cache for this call
            timeout: Override the per-attempt timeout (seconds)

        Returns:
            LinkResult, or `{}` when the service found no match

        Raises:
            ValidationError: Missing or malformed url or country
            OdesliAPIError: Upstream failure (after retries where retryable)
        """
        if not url:
            raise ValidationError("No URL was provided to Odesli.fetch()")
        if self.settings.validate_params:
            _validate_url(url)
            _validate_country(country)

        path = f"links?url={quote(url, safe='')}&userCountry={country}"
        options = FetchOptions(country=country, skip_cache=skip_cache, timeout=timeout)
        return await self._lookup(path, options, platform=platforms.detect_platform(url))

    async def get_by_params(
        self,
        platform: str,
        type: str,
        id: str,
        *,
        country: str = "US",
        skip_cache: bool = False,
        timeout: float | None = None,
    ) -> LookupResult:
        """Look up by platform, entity type and platform-specific id.

        A composite id ("SPOTIFY_SONG::abc") is reduced to its unique part.

        Raises:
            ValidationError: Missing platform/type/id, or (when validating) an
                unsupported platform, type or country
        """
        if not platform:
            raise ValidationError("No `platform` was provided to Odesli.get_by_params()")
        if not type:
            raise ValidationError("No `type` was provided to Odesli.get_by_params()")
        if not id:
            raise ValidationError("No `id` was provided to Odesli.get_by_params()")
        if self.settings.validate_params:
            _validate_platform(platform)
            _validate_type(type)
            _validate_country(country)

        unique_id = platforms.strip_entity_prefix(id)
        path = (
            f"links?platform={platform}&type={type}"
            f"&id={quote(unique_id, safe='')}&userCountry={country}"
        )
        options = FetchOptions(country=country, skip_cache=skip_cache, timeout=timeout)
        return await self._lookup(path, options, platform=platform)

    async def get_by_id(
        self,
        entity_id: str,
        *,
        country: str = "US",
        skip_cache: bool = False,
        timeout: float | None = None,
    ) -> LookupResult:
        """Look up by composite entity id, e.g. "SPOTIFY_SONG::4Km5HrUvYTaSUfiSGPJeQR".

        Raises:
            ValidationError: Missing id or id not in `<PLATFORM>_<SONG|ALBUM>::<UNIQUEID>` form
        """
        if not entity_id:
            raise ValidationError("No `id` was provided to Odesli.get_by_id()")
        parts = platforms.parse_entity_id(entity_id)
        if parts is None:
            raise ValidationError(
                f"Provided Entity ID does not match format. `{ENTITY_ID_FORMAT}`"
            )

        platform, entity_type, unique_id = parts
        return await self.get_by_params(
            _canonical_platform(platform),
            entity_type,
            unique_id,
            country=country,
            skip_cache=skip_cache,
            timeout=timeout,
        )

    async def fetch_batch(
        self,
        urls: Sequence[str],
        *,
        country: str = "US",
        skip_cache: bool = False,
        timeout: float | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> list[BatchItemResult]:
        """Look up many URLs, `concurrency` at a time.

        Per-URL failures come back as BatchFailure entries, in input order.

        Raises:
            ValidationError: urls is not a list, or concurrency < 1
        """

        options = FetchOptions(
            country=country, skip_cache=skip_cache, timeout=timeout, concurrency=concurrency
        )

        async def lookup(url: str) -> LookupResult:
            return await self.fetch(
                url,
                country=options.country,
                skip_cache=options.skip_cache,
                timeout=options.timeout,
            )

        return await self._batch.fetch_all(urls, lookup, concurrency=options.concurrency)

    async def _lookup(
        self, path: str, options: FetchOptions, *, platform: str | None
    ) -> LookupResult:
        if not get_correlation_id():
            set_correlation_id()

        context: dict[str, Any] = {"platform": platform, "country": options.country}
        if self.rate_limiter is not None:
            await self.rate_limiter.wait_for_slot()

        try:
            document = await self._executor.execute(
                path,
                skip_cache=options.skip_cache,
                timeout=options.timeout,
                context=context,
            )
        except RateLimitExceededError as e:
            await self._fire(
                HookName.ON_RATE_LIMIT,
                {"url": context.get("url"), "error": e, "has_api_key": bool(self.settings.api_key)},
            )
            raise

        await self._fire(HookName.BEFORE_RESPONSE, {"url": context["url"], "data": document})
        result: LookupResult = normalize_response(document)
        if self.plugins is not None and isinstance(result, LinkResult):
            result = await self.plugins.transform_data(result, result.type, context)
        await self._fire(
            HookName.AFTER_RESPONSE,
            {"url": context["url"], "result": result, "cached": context["cached"]},
        )
        return result

    async def _fire(self, hook: HookName, hook_context: dict[str, Any]) -> None:
        if self.plugins is not None:
            await self.plugins.execute_hook(hook, hook_context)

    # ==========================================================================
    # UTILITIES
    # ==========================================================================

    def detect_platform(self, url: str) -> str | None:
        """Detect the streaming platform of a URL (no network)."""
        return platforms.detect_platform(url)

    def extract_id(self, url: str) -> str | None:
        """Extract the platform-specific id from a URL (no network)."""
        return platforms.extract_id(url)

    def get_supported_platforms(self) -> list[str]:
        return list(platforms.SUPPORTED_PLATFORMS)

    def get_user_agent(self) -> str:
        """User-Agent sent with every request (configurable via headers)."""
        return self._executor.headers["User-Agent"]

    @staticmethod
    def get_country_codes() -> list[str]:
        """All accepted ISO 3166-1 alpha-2 country codes, sorted."""
        return sorted(platforms.COUNTRY_CODES)

    @staticmethod
    def get_country_options() -> list[dict[str, str]]:
        """Country `{code, name}` pairs sorted by code, for pickers and menus."""
        return [
            {"code": code, "name": platforms.COUNTRY_NAMES[code]}
            for code in sorted(platforms.COUNTRY_NAMES)
        ]

    def clear_cache(self) -> None:
        """Drop all cached responses and zero the cache counters."""
        if self.cache is not None:
            self.cache.clear()
        else:
            self.metrics.reset_cache_metrics()

    def get_cache_stats(self) -> dict[str, Any]:
        """Cache size, TTL (seconds) and hit/miss counters.

        hit_rate is a percentage of cache lookups, rounded to two decimals.
        """
        if self.cache is None:
            return {
                "size": 0,
                "ttl": 0,
                "hit_count": 0,
                "miss_count": 0,
                "hit_rate": 0.0,
                "total_requests": 0,
            }

        stats = self.cache.stats()
        lookups = self.cache.hits + self.cache.misses
        return {
            **stats,
            "hit_count": self.cache.hits,
            "miss_count": self.cache.misses,
            "hit_rate": round(self.cache.hits / lookups * 100, 2) if lookups else 0.0,
            "total_requests": lookups,
        }

    def get_metrics(self) -> dict[str, Any]:
        """Metrics summary (counters, rates, trailing hour)."""
        return self.metrics.get_summary()


# =============================================================================
# VALIDATION
# =============================================================================


def _validate_url(url: str) -> None:
    if not isinstance(url, str):
        raise ValidationError("URL must be a string")
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Invalid URL (expected http(s)://...): {url}")


def _validate_country(country: str) -> None:
    if not platforms.is_valid_country(country):
        raise ValidationError(
            f"Invalid country code {country!r}, expected an ISO 3166-1 alpha-2 code like 'US'"
        )


def _validate_platform(platform: str) -> None:
    if platform not in platforms.SUPPORTED_PLATFORMS:
        supported = ", ".join(platforms.SUPPORTED_PLATFORMS)
        raise ValidationError(f"Unsupported platform {platform!r} (supported: {supported})")


def _validate_type(entity_type: str) -> None:
    if entity_type not in {t.value for t in EntityType}:
        raise ValidationError(f"Invalid type {entity_type!r}, expected 'song' or 'album'")


def _canonical_platform(platform: str) -> str:
    """Map a lowercased platform ("applemusic") onto its supported spelling."""
    for name in platforms.SUPPORTED_PLATFORMS:
        if name.lower() == platform.lower():
            return name
    return platform


__all__ = ["ENTITY_ID_FORMAT", "Odesli"]
