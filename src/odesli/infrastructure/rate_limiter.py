"""
Rate Limiter for outbound lookup calls.

Hey future me - this is the admission gate in FRONT of the request executor!
The lookup service allows 10 requests/minute without an API key, more with one.
Go over that and every call comes back 429.

THREE STRATEGIES, same interface (wait_for_slot / get_status):

TOKEN BUCKET (default)
- Bucket holds max_requests tokens, every call consumes one
- Refill is QUANTIZED: a full bucket per elapsed window, no continuous drip
- Allows a burst of max_requests, then waits for the next window boundary

SLIDING WINDOW
- Remembers the admission timestamps of the trailing window
- Exact: never more than max_requests in ANY trailing window_seconds
- When full: wait until the oldest timestamp falls out of the window

LEAKY BUCKET
- Every caller queues up, a drain task releases them one by one
- Fixed spacing of window_seconds / max_requests between admissions
- No bursts at all, FIFO by construction

FAIRNESS: token bucket and sliding window serialize waiters through an asyncio.Lock,
which wakes waiters in FIFO order. Leaky bucket has its explicit queue.

USAGE:
    limiter = RateLimiter(max_requests=10, window_seconds=60, strategy="sliding-window")

    async with limiter:
        result = await client.fetch(url)

    # After an upstream 429:
    await limiter.handle_rate_limit_response(retry_after_seconds=30)
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from odesli.domain.exceptions import ValidationError
from odesli.infrastructure.observability.log_messages import LogMessages
from odesli.infrastructure.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

DEFAULT_COOLDOWN_SECONDS = 60.0


class RateLimitStrategy(str, Enum):
    """Available admission strategies."""

    TOKEN_BUCKET = "token-bucket"
    SLIDING_WINDOW = "sliding-window"
    LEAKY_BUCKET = "leaky-bucket"


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter.

    Hey future me - the defaults match the UNAUTHENTICATED lookup quota:
    10 requests per 60 seconds. With an API key you can go a lot higher.
    """

    max_requests: int = 10
    window_seconds: float = 60.0
    strategy: RateLimitStrategy = RateLimitStrategy.TOKEN_BUCKET
    retry_after_seconds: float = 1.0  # Suggested delay between client-side retries
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS  # Wait after a 429 without Retry-After

    def __post_init__(self) -> None:
        """Validate limits and coerce the strategy name."""
        if self.max_requests < 1:
            raise ValidationError("max_requests must be at least 1")
        if self.window_seconds <= 0:
            raise ValidationError("window_seconds must be positive")
        try:
            self.strategy = RateLimitStrategy(self.strategy)
        except ValueError as e:
            valid = ", ".join(s.value for s in RateLimitStrategy)
            raise ValidationError(
                f"Unknown rate limit strategy {self.strategy!r} (expected one of: {valid})"
            ) from e


class _AdmissionStrategy(ABC):
    """One admission algorithm. acquire() returns the seconds it had to wait."""

    def __init__(self, config: RateLimiterConfig, clock: Clock, sleep: Sleep) -> None:
        self.config = config
        self._clock = clock
        self._sleep = sleep

    @abstractmethod
    async def acquire(self) -> float:
        """Suspend until admitted."""

    @abstractmethod
    def status(self) -> dict[str, Any]:
        """Strategy-specific snapshot."""


class TokenBucket(_AdmissionStrategy):
    """Quantized token bucket: full refill per elapsed window."""

    def __init__(self, config: RateLimiterConfig, clock: Clock, sleep: Sleep) -> None:
        super().__init__(config, clock, sleep)
        self._tokens = float(config.max_requests)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    # Hey future me - _last_refill advances by WHOLE windows only, the remainder is kept.
    # If it jumped to "now" on every call, callers arriving faster than one window
    # would keep resetting the clock and the bucket would never refill.
    def _refilled(self) -> tuple[float, float]:
        """Tokens and refill mark as of now, without storing them."""
        window = self.config.window_seconds
        windows = int((self._clock() - self._last_refill) // window)
        if windows <= 0:
            return self._tokens, self._last_refill
        tokens = min(
            float(self.config.max_requests),
            self._tokens + windows * self.config.max_requests,
        )
        return tokens, self._last_refill + windows * window

    def _refill(self) -> None:
        self._tokens, self._last_refill = self._refilled()

    async def acquire(self) -> float:
        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return waited

                wait_time = self.config.window_seconds - (
                    self._clock() - self._last_refill
                )
                wait_time = max(wait_time, 0.0)
                await self._sleep(wait_time)
                waited += wait_time

    # status is read-only, only acquire() moves the bucket
    def status(self) -> dict[str, Any]:
        tokens, _ = self._refilled()
        return {
            "available": tokens,
            "used": self.config.max_requests - tokens,
            "max": self.config.max_requests,
            "refill_rate": self.config.max_requests / self.config.window_seconds,
        }


class SlidingWindow(_AdmissionStrategy):
    """Exact sliding window over admission timestamps."""

    def __init__(self, config: RateLimiterConfig, clock: Clock, sleep: Sleep) -> None:
        super().__init__(config, clock, sleep)
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.config.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    async def acquire(self) -> float:
        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._timestamps) < self.config.max_requests:
                    self._timestamps.append(now)
                    return waited

                wait_time = self._timestamps[0] + self.config.window_seconds - now
                await self._sleep(wait_time)
                waited += wait_time

    def status(self) -> dict[str, Any]:
        cutoff = self._clock() - self.config.window_seconds
        return {
            "used": sum(1 for ts in self._timestamps if ts > cutoff),
            "max": self.config.max_requests,
            "window_seconds": self.config.window_seconds,
        }


class LeakyBucket(_AdmissionStrategy):
    """FIFO queue drained at a constant rate."""

    def __init__(self, config: RateLimiterConfig, clock: Clock, sleep: Sleep) -> None:
        super().__init__(config, clock, sleep)
        self._queue: deque[asyncio.Future[None]] = deque()
        self._draining = False
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        """Minimum spacing between two admissions."""
        return self.config.window_seconds / self.config.max_requests

    async def acquire(self) -> float:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._queue.append(future)
        if not self._draining:
            self._draining = True
            self._drain_task = asyncio.create_task(self._drain())

        started = self._clock()
        await future
        return self._clock() - started

    # Yo, the pause comes AFTER each release, including the last one. A caller that
    # shows up right after the queue emptied still has to respect the spacing.
    async def _drain(self) -> None:
        try:
            while self._queue:
                future = self._queue.popleft()
                if future.done():
                    continue  # waiter was cancelled
                future.set_result(None)
                await self._sleep(self.interval)
        finally:
            self._draining = False

    def status(self) -> dict[str, Any]:
        return {
            "queued": len(self._queue),
            "processing": self._draining,
            "max": self.config.max_requests,
        }


_STRATEGIES: dict[RateLimitStrategy, type[_AdmissionStrategy]] = {
    RateLimitStrategy.TOKEN_BUCKET: TokenBucket,
    RateLimitStrategy.SLIDING_WINDOW: SlidingWindow,
    RateLimitStrategy.LEAKY_BUCKET: LeakyBucket,
}


class RateLimiter:
    """Admission gate with a pluggable strategy.

    Hey future me - a limiter is owned by whoever creates it. Two clients with two
    limiters can still race each other against the same upstream quota. Pass ONE
    limiter to every client that shares an API key.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        strategy: RateLimitStrategy | str = RateLimitStrategy.TOKEN_BUCKET,
        retry_after_seconds: float = 1.0,
        *,
        config: RateLimiterConfig | None = None,
        metrics: MetricsCollector | None = None,
        name: str = "default",
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Admissions per window
            window_seconds: Window length
            strategy: "token-bucket", "sliding-window" or "leaky-bucket"
            retry_after_seconds: Suggested delay between client-side retries
            config: Full config, wins over the individual arguments
            metrics: Collector that receives every non-zero wait
            name: Label for logs
            clock: Monotonic clock in seconds, injectable for tests
            sleep: Async sleep, injectable for tests

        Raises:
            ValidationError: On an unknown strategy or non-positive limits
        """
        self.config = config or RateLimiterConfig(
            max_requests=max_requests,
            window_seconds=window_seconds,
            strategy=strategy,  # type: ignore[arg-type]
            retry_after_seconds=retry_after_seconds,
        )
        self.name = name
        self._metrics = metrics
        self._sleep = sleep
        self._strategy = _STRATEGIES[self.config.strategy](self.config, clock, sleep)

    @classmethod
    def for_public_api(cls, **kwargs: Any) -> "RateLimiter":
        """Limiter for the unauthenticated quota (10 requests/minute).

        Sliding window: never more than 10 admissions in any trailing minute.
        """
        kwargs.setdefault("name", "public")
        return cls(
            max_requests=10,
            window_seconds=60.0,
            strategy=RateLimitStrategy.SLIDING_WINDOW,
            **kwargs,
        )

    @classmethod
    def for_api_key(cls, requests_per_minute: int, **kwargs: Any) -> "RateLimiter":
        """Limiter for a keyed quota, allowing bursts up to the per-minute limit."""
        kwargs.setdefault("name", "api-key")
        return cls(
            max_requests=requests_per_minute,
            window_seconds=60.0,
            strategy=RateLimitStrategy.TOKEN_BUCKET,
            **kwargs,
        )

    @property
    def strategy(self) -> RateLimitStrategy:
        """Active strategy."""
        return self.config.strategy

    @property
    def max_requests(self) -> int:
        """Admissions per window."""
        return self.config.max_requests

    @property
    def window_seconds(self) -> float:
        """Window length in seconds."""
        return self.config.window_seconds

    async def wait_for_slot(self) -> None:
        """Suspend until the active strategy admits one call."""
        waited = await self._strategy.acquire()
        if waited > 0:
            logger.debug(
                LogMessages.limiter_waiting(self.name, self.strategy.value, waited)
            )
            if self._metrics is not None:
                self._metrics.record_rate_limit(waited * 1000)

    async def handle_rate_limit_response(
        self, retry_after_seconds: float | None = None
    ) -> float:
        """Cool down after an upstream 429, whatever the strategy.

        Args:
            retry_after_seconds: Retry-After from the response; 0/None means 60s

        Returns:
            The wait actually used, in seconds
        """
        wait_time = float(retry_after_seconds or self.config.cooldown_seconds)
        logger.warning(
            f"RateLimiter[{self.name}]: upstream rate limit hit, "
            f"cooling down for {wait_time:.1f}s"
        )
        if self._metrics is not None:
            self._metrics.record_rate_limit(wait_time * 1000)
        await self._sleep(wait_time)
        return wait_time

    def get_status(self) -> dict[str, Any]:
        """Get a strategy-specific snapshot (for debugging and dashboards)."""
        return self._strategy.status()

    async def __aenter__(self) -> "RateLimiter":
        """Enter async context - wait for a slot."""
        await self.wait_for_slot()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        """Exit async context. The slot is consumed either way."""


__all__ = [
    "LeakyBucket",
    "RateLimitStrategy",
    "RateLimiter",
    "RateLimiterConfig",
    "SlidingWindow",
    "TokenBucket",
]
