"""HTTP request execution against the lookup service."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx

from odesli.__about__ import __version__
from odesli.application.cache.response_cache import ResponseCache
from odesli.config.settings import OdesliSettings
from odesli.domain.exceptions import (
    ClientError,
    MalformedResponseError,
    NetworkError,
    OdesliAPIError,
    RateLimitExceededError,
    RequestTimeoutError,
    ServerError,
)
from odesli.infrastructure.observability.log_messages import LogMessages
from odesli.infrastructure.observability.metrics import MetricsCollector
from odesli.infrastructure.plugins.plugin_system import HookName, PluginSystem

logger = logging.getLogger(__name__)

USER_AGENT = f"odesli-python/{__version__}"

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(attempt: int, retry_delay: float) -> float:
    """Delay before the attempt after `attempt` (1-based): retry_delay * 2^(attempt-1)."""
    return retry_delay * 2 ** (attempt - 1)


class RequestExecutor:
    """Performs one logical lookup: cache, HTTP with timeout, retries, classification.

    Hey future me - the flow per execute() call:

        cache hit? -> return (no network)
        for attempt in 1..max_retries:
            GET with timeout -> parse -> classify
            terminal error -> raise right away
            retryable error -> sleep backoff, next attempt
        all attempts failed -> raise the LAST error

    What's retryable is decided by the exception class (OdesliAPIError.retryable),
    except ServerError which follows settings.retry_server_errors. A 429 is NEVER
    retried here - hammering a rate-limited API only extends the penalty. Throttling
    is the RateLimiter's job, in front of this class.
    """

    def __init__(
        self,
        settings: OdesliSettings,
        *,
        cache: ResponseCache | None = None,
        metrics: MetricsCollector | None = None,
        plugins: PluginSystem | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            settings: Client settings (timeout, retries, base URL, ...)
            cache: Response cache; created when settings.cache is on and none is given
            metrics: Collector for per-attempt request and error records
            plugins: Plugin system whose hooks and middleware wrap each attempt
            http_client: Injected client (e.g. over httpx.MockTransport); not closed by us
            sleep: Async sleep used for backoff, injectable for tests
            log: Logger replacing the module logger
        """
        self.settings = settings
        self.metrics = metrics
        self.cache = cache
        if self.cache is None and settings.cache:
            self.cache = ResponseCache(metrics=metrics)
        self.plugins = plugins
        self._client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep or asyncio.sleep
        self._log = log or logger

    @property
    def headers(self) -> dict[str, str]:
        """Request headers; configured headers win over the defaults."""
        return {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            **self.settings.headers,
        }

    def build_url(self, path: str) -> str:
        """Resolve a `links?...` path into the full request URL (also the cache key)."""
        url = f"{self.settings.base_url}/{self.settings.version}/{path}"
        if self.settings.api_key:
            url += f"&key={quote(self.settings.api_key, safe='')}"
        return url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # ==========================================================================
    # EXECUTION
    # ==========================================================================

    async def execute(
        self,
        path: str,
        *,
        skip_cache: bool = False,
        timeout: float | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Perform a lookup with caching and retries.

        Args:
            path: Endpoint path with query, e.g. "links?url=...&userCountry=US"
            skip_cache: Neither read nor populate the cache for this call
            timeout: Per-attempt timeout in seconds (default: settings.timeout)
            context: Mutable call context (platform, country); gets "url" and "cached"

        Returns:
            The upstream document, or None when the service found no match

        Raises:
            OdesliAPIError: Terminal failure, or the last failure once retries run out
        """
        url = self.build_url(path)
        context = context if context is not None else {}
        context["url"] = url
        context["cached"] = False

        use_cache = self.cache is not None and self.settings.cache and not skip_cache
        if use_cache:
            assert self.cache is not None
            cached = self.cache.get(url)
            if cached is not None:
                self._log.debug("Cache hit: %s", url)
                context["cached"] = True
                self._record_request(url, context, success=True, cache_hit=True, response_time_ms=0.0)
                await self._fire(HookName.ON_CACHE_HIT, {"url": url})
                return cached
            await self._fire(HookName.ON_CACHE_MISS, {"url": url})

        timeout_seconds = timeout or self.settings.timeout
        max_attempts = self.settings.max_retries
        last_error: OdesliAPIError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                data = await self._attempt(url, attempt, timeout_seconds, context)
            except OdesliAPIError as e:
                last_error = e
                if not self._should_retry(e) or attempt == max_attempts:
                    break
                delay = backoff_delay(attempt, self.settings.retry_delay)
                self._log.warning(
                    LogMessages.retry_scheduled(
                        url=url,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay=delay,
                        error=str(e),
                    )
                )
                await self._sleep(delay)
                continue

            if use_cache and data is not None:
                assert self.cache is not None
                self.cache.put(url, data)
            return data

        assert last_error is not None
        await self._surface(url, last_error, attempt, context)
        raise last_error

    def _should_retry(self, error: OdesliAPIError) -> bool:
        if isinstance(error, ServerError):
            return self.settings.retry_server_errors
        return error.retryable

    async def _attempt(
        self, url: str, attempt: int, timeout_seconds: float, context: dict[str, Any]
    ) -> dict[str, Any] | None:
        """One network attempt, wrapped in before/after hooks and middleware."""
        hook_context: dict[str, Any] = {"url": url, "attempt": attempt}
        await self._fire(HookName.BEFORE_REQUEST, hook_context)

        started = time.perf_counter()
        try:
            status_code, data = await self._send_and_parse(url, timeout_seconds, hook_context)
        except OdesliAPIError as e:
            self._record_request(
                url,
                context,
                success=False,
                status_code=e.status_code,
                error=e,
                response_time_ms=(time.perf_counter() - started) * 1000,
            )
            raise

        response_time_ms = (time.perf_counter() - started) * 1000
        hook_context.update(status_code=status_code, response_time_ms=response_time_ms)
        self._record_request(
            url,
            context,
            success=True,
            status_code=status_code,
            response_time_ms=response_time_ms,
        )
        await self._fire(HookName.AFTER_REQUEST, hook_context)
        return data

    async def _send_and_parse(
        self, url: str, timeout_seconds: float, hook_context: dict[str, Any]
    ) -> tuple[int, dict[str, Any] | None]:
        client = await self._get_client()

        async def send() -> httpx.Response:
            return await client.get(url, headers=self.headers, timeout=timeout_seconds)

        try:
            async with asyncio.timeout(timeout_seconds):
                if self.plugins is not None and self.plugins.has_middleware():
                    response = await self.plugins.execute_middleware(hook_context, send)
                else:
                    response = await send()
        except (TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(timeout_seconds) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            # decoding, redirect and protocol failures land here too
            raise NetworkError(str(e) or type(e).__name__) from e

        return response.status_code, _parse_response(response)

    # ==========================================================================
    # SIDE EFFECTS
    # ==========================================================================

    async def _surface(
        self, url: str, error: OdesliAPIError, attempts: int, context: dict[str, Any]
    ) -> None:
        """Log, record and announce the error about to be raised."""
        if isinstance(error, RateLimitExceededError):
            self._log.warning(
                LogMessages.upstream_rate_limited(url, has_api_key=bool(self.settings.api_key))
            )
        else:
            self._log.error(LogMessages.request_failed(url, str(error), attempts))

        if self.metrics is not None:
            self.metrics.record_error(
                error,
                {
                    "url": url,
                    "attempts": attempts,
                    "platform": context.get("platform"),
                    "country": context.get("country"),
                },
            )
        await self._fire(HookName.ON_ERROR, {"error": error, "url": url, "attempts": attempts})

    def _record_request(
        self,
        url: str,
        context: dict[str, Any],
        *,
        success: bool,
        status_code: int | None = None,
        error: BaseException | None = None,
        response_time_ms: float | None = None,
        cache_hit: bool = False,
    ) -> None:
        if self.metrics is None:
            return
        self.metrics.record_request(
            url,
            success=success,
            status_code=status_code,
            error=error,
            response_time_ms=response_time_ms,
            platform=context.get("platform"),
            country=context.get("country"),
            cache_hit=cache_hit,
        )

    async def _fire(self, hook: HookName, hook_context: dict[str, Any]) -> None:
        if self.plugins is not None:
            await self.plugins.execute_hook(hook, hook_context)


# =============================================================================
# RESPONSE CLASSIFICATION
# =============================================================================


def _parse_response(response: httpx.Response) -> dict[str, Any] | None:
    """Turn a response into a document, None (not found) or a classified error.

    Hey future me - the service usually answers errors with HTTP 200 and a JSON
    envelope {"statusCode": 4xx, "code": "..."}. So the envelope is checked FIRST,
    the HTTP status only matters when there is no envelope.
    """
    try:
        body = response.json()
    except ValueError as e:
        if response.is_success:
            raise MalformedResponseError() from e
        raise _status_error(response.status_code, response.reason_phrase) from e

    if isinstance(body, dict):
        status_code = body.get("statusCode")
        if isinstance(status_code, int) and not isinstance(status_code, bool):
            return _envelope_result(status_code, body.get("code"))

    if not response.is_success:
        raise _status_error(response.status_code, response.reason_phrase)

    if not isinstance(body, dict):
        raise MalformedResponseError()
    return body


def _envelope_result(status_code: int, code: str | None) -> None:
    """Classify an error envelope; statusCode 200 means "no match"."""
    if status_code == 429:
        raise RateLimitExceededError(
            f"{status_code}: {code}, You are being rate limited, "
            "No API Key is 10 Requests / Minute.",
            status_code=status_code,
            code=code,
        )
    if 400 <= status_code < 500:
        raise ClientError(
            f"{status_code}: {code}, Codes in the 4xx range indicate an error "
            "that failed given the information provided.",
            status_code=status_code,
            code=code,
        )
    if 500 <= status_code < 600:
        raise ServerError(
            f"{status_code}: {code}, Codes in the 5xx range indicate an error "
            "with the lookup service's servers.",
            status_code=status_code,
            code=code,
        )
    if status_code != 200:
        raise OdesliAPIError(f"{status_code}: {code}", status_code=status_code, code=code)
    return None


def _status_error(status_code: int, reason: str) -> OdesliAPIError:
    message = f"HTTP {status_code}: {reason}"
    if status_code == 429:
        return RateLimitExceededError(
            f"{message}, You are being rate limited, No API Key is 10 Requests / Minute.",
            status_code=status_code,
        )
    if 400 <= status_code < 500:
        return ClientError(message, status_code=status_code)
    if status_code >= 500:
        return ServerError(message, status_code=status_code)
    return OdesliAPIError(message, status_code=status_code)


__all__ = ["USER_AGENT", "RequestExecutor", "backoff_delay"]
