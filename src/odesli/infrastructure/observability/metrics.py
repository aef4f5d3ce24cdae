"""Request metrics for the Odesli client.

Hey future me - this module collects METRICS about every lookup the client makes!

WHAT IS TRACKED:
- Requests: one record per served request (network attempt or cache hit)
- Errors: one record per surfaced error, with the exception class as `kind`
- Cache: hit/miss counters and current size
- Rate limits: how often and how long the RateLimiter made us wait

RETENTION:
Records are pruned by age (retention_seconds) and by count (max_data_points, the
most recent ones survive). cleanup() runs on a daemon timer thread so it never
keeps the interpreter alive at shutdown.

DISABLED MODE:
MetricsCollector(enabled=False) turns every record_* call into a no-op, but
get_summary() & friends still return a complete zeroed structure. Callers never
have to check `metrics.enabled`.

NOTE: We don't use prometheus_client to keep dependencies minimal.
to_prometheus_format() implements the text exposition format directly.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)

_RECENT_WINDOW_SECONDS = 60 * 60


@dataclass
class RequestRecord:
    """One served request."""

    timestamp: float
    url: str | None = None
    method: str = "GET"
    success: bool = True
    status_code: int | None = None
    error: str | None = None
    response_time_ms: float | None = None
    platform: str | None = None
    country: str | None = None
    cache_hit: bool = False


@dataclass
class ErrorRecord:
    """One surfaced error."""

    timestamp: float
    message: str
    kind: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass
class RateLimitRecord:
    """One rate limiter wait."""

    timestamp: float
    delay_ms: float


def _empty_counters() -> dict[str, int]:
    return {
        "total_requests": 0,
        "successful_requests": 0,
        "failed_requests": 0,
        "cache_hits": 0,
        "cache_misses": 0,
        "rate_limit_hits": 0,
    }


class MetricsCollector:
    """Counters and time series for requests, errors, cache and rate limits.

    Hey future me - one instance per client (or share one explicitly)! There is no
    module-level singleton: two clients never see each other's numbers.

    Usage:
        metrics = MetricsCollector()
        client = Odesli(metrics=metrics)
        ...
        summary = metrics.get_summary()
        print(summary["rates"]["cache_hit_rate"])
    """

    def __init__(
        self,
        enabled: bool = True,
        retention_seconds: float = 24 * 60 * 60,
        max_data_points: int = 10_000,
        cleanup_interval: float | None = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize metrics collector.

        Args:
            enabled: Record anything at all
            retention_seconds: Drop records older than this on cleanup()
            max_data_points: Keep at most this many request/error records
            cleanup_interval: Seconds between automatic cleanups (None = never)
            clock: Wall clock in seconds, injectable for tests
        """
        self.enabled = enabled
        self.retention_seconds = retention_seconds
        self.max_data_points = max_data_points
        self._clock = clock
        self._lock = Lock()
        self._prefix = "odesli"

        self._requests: list[RequestRecord] = []
        self._errors: list[ErrorRecord] = []
        self._rate_limit_delays: list[RateLimitRecord] = []
        self._cache = {"hits": 0, "misses": 0, "size": 0}
        self._counters = _empty_counters()

        self._cleanup_interval = cleanup_interval
        self._cleanup_timer: threading.Timer | None = None
        if self.enabled and cleanup_interval:
            self._schedule_cleanup()

    # ==========================================================================
    # RECORDING
    # ==========================================================================

    def record_request(
        self,
        url: str | None = None,
        *,
        method: str = "GET",
        start_time: float | None = None,
        end_time: float | None = None,
        success: bool = True,
        status_code: int | None = None,
        error: BaseException | str | None = None,
        response_time_ms: float | None = None,
        platform: str | None = None,
        country: str | None = None,
        cache_hit: bool = False,
    ) -> None:
        """Record a served request.

        Args:
            url: Request URL
            method: HTTP method
            start_time: Wall clock seconds when the request started (default: now)
            end_time: Wall clock seconds when it ended; wins over response_time_ms
            success: Whether the request produced a usable answer
            status_code: Upstream status code, if any
            error: Exception or message for failed requests
            response_time_ms: Duration in milliseconds
            platform: Detected source platform
            country: Requested user country
            cache_hit: Served from the response cache
        """
        if not self.enabled:
            return

        timestamp = start_time if start_time is not None else self._clock()
        if end_time is not None:
            response_time_ms = (end_time - timestamp) * 1000

        record = RequestRecord(
            timestamp=timestamp,
            url=url,
            method=method,
            success=success,
            status_code=status_code,
            error=str(error) if error is not None else None,
            response_time_ms=response_time_ms,
            platform=platform,
            country=country,
            cache_hit=cache_hit,
        )

        with self._lock:
            self._requests.append(record)
            self._counters["total_requests"] += 1
            if success:
                self._counters["successful_requests"] += 1
            else:
                self._counters["failed_requests"] += 1

    def record_error(
        self, error: BaseException, context: dict[str, Any] | None = None
    ) -> None:
        """Record an error with free-form context (url, attempt, ...)."""
        if not self.enabled:
            return

        record = ErrorRecord(
            timestamp=self._clock(),
            message=str(error),
            kind=type(error).__name__,
            context=dict(context or {}),
        )
        with self._lock:
            self._errors.append(record)

    def record_rate_limit(self, delay_ms: float) -> None:
        """Record that the rate limiter delayed a call by delay_ms."""
        if not self.enabled:
            return

        with self._lock:
            self._counters["rate_limit_hits"] += 1
            self._rate_limit_delays.append(
                RateLimitRecord(timestamp=self._clock(), delay_ms=delay_ms)
            )

    def record_cache_lookup(self, hit: bool) -> None:
        """Count one cache lookup as hit or miss."""
        if not self.enabled:
            return

        with self._lock:
            if hit:
                self._counters["cache_hits"] += 1
                self._cache["hits"] += 1
            else:
                self._counters["cache_misses"] += 1
                self._cache["misses"] += 1

    def update_cache_metrics(self, size: int) -> None:
        """Set the current number of cache entries."""
        if not self.enabled:
            return

        with self._lock:
            self._cache["size"] = size

    def reset_cache_metrics(self) -> None:
        """Zero the cache counters (called when the cache is cleared)."""
        with self._lock:
            self._cache = {"hits": 0, "misses": 0, "size": 0}
            self._counters["cache_hits"] = 0
            self._counters["cache_misses"] = 0

    # ==========================================================================
    # SUMMARIES
    # ==========================================================================

    def get_summary(self) -> dict[str, Any]:
        """Get rolling counters plus a trailing 1-hour view.

        Returns:
            Dict with counters, recent, rates, cache and rate_limits sections
        """
        now = self._clock()
        with self._lock:
            recent_requests = [
                r for r in self._requests if now - r.timestamp < _RECENT_WINDOW_SECONDS
            ]
            recent_errors = [
                e for e in self._errors if now - e.timestamp < _RECENT_WINDOW_SECONDS
            ]
            counters = dict(self._counters)
            cache = dict(self._cache)
            delays = [d.delay_ms for d in self._rate_limit_delays]

        avg_response_time = (
            sum(r.response_time_ms or 0 for r in recent_requests) / len(recent_requests)
            if recent_requests
            else 0
        )
        total = counters["total_requests"]
        success_rate = counters["successful_requests"] / total if total > 0 else 1.0
        lookups = counters["cache_hits"] + counters["cache_misses"]
        cache_hit_rate = counters["cache_hits"] / lookups if lookups > 0 else 0.0

        return {
            "counters": counters,
            "recent": {
                "requests": len(recent_requests),
                "errors": len(recent_errors),
                "avg_response_time": round(avg_response_time),
                "requests_per_minute": round(len(recent_requests) / 60),
            },
            "rates": {
                "success_rate": round(success_rate, 2),
                "cache_hit_rate": round(cache_hit_rate, 2),
                "error_rate": round(1 - success_rate, 2),
            },
            "cache": cache,
            "rate_limits": {
                "hits": counters["rate_limit_hits"],
                "avg_delay": round(sum(delays) / len(delays)) if delays else 0,
            },
        }

    def get_detailed_metrics(
        self,
        start_time: float | None = None,
        end_time: float | None = None,
        group_by: str | None = "hour",
    ) -> dict[str, dict[str, float]] | list[dict[str, Any]]:
        """Get request metrics grouped for analysis.

        Args:
            start_time: Wall clock seconds, default now - retention
            end_time: Wall clock seconds, default now
            group_by: "hour", "minute", "platform" or "country"; anything else
                returns the filtered raw records

        Returns:
            Mapping group -> {requests, errors, avg_response_time, total_response_time}
        """
        now = self._clock()
        start = start_time if start_time is not None else now - self.retention_seconds
        end = end_time if end_time is not None else now

        with self._lock:
            selected = [r for r in self._requests if start <= r.timestamp <= end]

        key_funcs: dict[str, Callable[[RequestRecord], str]] = {
            "hour": lambda r: _bucket(r.timestamp, "%Y-%m-%dT%H:00:00.000Z"),
            "minute": lambda r: _bucket(r.timestamp, "%Y-%m-%dT%H:%M:00.000Z"),
            "platform": lambda r: r.platform or "unknown",
            "country": lambda r: r.country or "unknown",
        }
        key_func = key_funcs.get(group_by or "")
        if key_func is None:
            return [asdict(r) for r in selected]

        groups: dict[str, dict[str, float]] = {}
        for record in selected:
            group = groups.setdefault(
                key_func(record),
                {
                    "requests": 0,
                    "errors": 0,
                    "avg_response_time": 0,
                    "total_response_time": 0,
                },
            )
            group["requests"] += 1
            if not record.success:
                group["errors"] += 1
            if record.response_time_ms:
                group["total_response_time"] += record.response_time_ms
            group["avg_response_time"] = group["total_response_time"] / group["requests"]
        return groups

    def export(self) -> dict[str, Any]:
        """Export summary, hourly detail and raw records for external systems."""
        summary = self.get_summary()
        detailed = self.get_detailed_metrics()
        with self._lock:
            raw = {
                "metrics": {
                    "requests": [asdict(r) for r in self._requests],
                    "errors": [asdict(e) for e in self._errors],
                    "cache": dict(self._cache),
                    "rate_limits": [asdict(d) for d in self._rate_limit_delays],
                },
                "counters": dict(self._counters),
            }
        return {"summary": summary, "detailed": detailed, "raw": raw}

    def to_prometheus_format(self) -> str:
        """Export counters in Prometheus text exposition format.

        Returns:
            Prometheus-formatted metrics text
        """
        help_texts = {
            "total_requests": "Requests served, counting cache hits and every network attempt",
            "successful_requests": "Attempts that returned a result",
            "failed_requests": "Network attempts that raised an error, retries included",
            "cache_hits": "Response cache hits",
            "cache_misses": "Response cache misses",
            "rate_limit_hits": "Calls delayed by the rate limiter",
        }
        lines = []
        with self._lock:
            for name, value in self._counters.items():
                full_name = f"{self._prefix}_{name}_total"
                lines.append(f"# HELP {full_name} {help_texts[name]}")
                lines.append(f"# TYPE {full_name} counter")
                lines.append(f"{full_name} {value}")

            lines.append(f"# HELP {self._prefix}_cache_size Current response cache entries")
            lines.append(f"# TYPE {self._prefix}_cache_size gauge")
            lines.append(f"{self._prefix}_cache_size {self._cache['size']}")

        return "\n".join(lines) + "\n"

    # ==========================================================================
    # MAINTENANCE
    # ==========================================================================

    def cleanup(self) -> None:
        """Drop records older than retention, then cap request/error records."""
        cutoff = self._clock() - self.retention_seconds
        with self._lock:
            self._requests = [r for r in self._requests if r.timestamp > cutoff]
            self._errors = [e for e in self._errors if e.timestamp > cutoff]
            self._rate_limit_delays = [
                d for d in self._rate_limit_delays if d.timestamp > cutoff
            ]

            if len(self._requests) > self.max_data_points:
                self._requests = self._requests[-self.max_data_points :]
            if len(self._errors) > self.max_data_points:
                self._errors = self._errors[-self.max_data_points :]

    def reset(self) -> None:
        """Reset all metrics (for testing)."""
        with self._lock:
            self._requests = []
            self._errors = []
            self._rate_limit_delays = []
            self._cache = {"hits": 0, "misses": 0, "size": 0}
            self._counters = _empty_counters()

    def close(self) -> None:
        """Stop the periodic cleanup timer."""
        if self._cleanup_timer is not None:
            self._cleanup_timer.cancel()
            self._cleanup_timer = None

    # Hey future me - the timer MUST stay daemon=True, it may never keep the interpreter
    # alive after the caller's script is done.
    def _schedule_cleanup(self) -> None:
        assert self._cleanup_interval is not None
        timer = threading.Timer(self._cleanup_interval, self._run_scheduled_cleanup)
        timer.daemon = True
        timer.start()
        self._cleanup_timer = timer

    def _run_scheduled_cleanup(self) -> None:
        try:
            self.cleanup()
        except Exception:
            logger.exception("Metrics cleanup failed")
        if self._cleanup_timer is not None:
            self._schedule_cleanup()

    # Read-only views for tests and debugging
    @property
    def requests(self) -> list[RequestRecord]:
        """Snapshot of request records."""
        with self._lock:
            return list(self._requests)

    @property
    def errors(self) -> list[ErrorRecord]:
        """Snapshot of error records."""
        with self._lock:
            return list(self._errors)


def _bucket(timestamp: float, fmt: str) -> str:
    return datetime.fromtimestamp(timestamp, UTC).strftime(fmt)


__all__ = [
    "ErrorRecord",
    "MetricsCollector",
    "RateLimitRecord",
    "RequestRecord",
]
