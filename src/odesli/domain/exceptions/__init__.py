"""Domain exceptions."""

from typing import Any


class OdesliError(Exception):
    """Base exception for all library exceptions."""

    # Hey future me, message is stored as an attribute so callers (and the batch error
    # classifier) can inspect it without parsing str(exception). Never raise this class
    # directly - use a specific subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationError(OdesliError):
    """Caller input failed validation.

    Raised before any network call when url, platform, type, id or country
    are missing or malformed. Never retried.

    Example:
        raise ValidationError("No URL was provided to Odesli.fetch()")
    """

    pass


class PluginError(OdesliError):
    """Plugin registration or lookup failed.

    Example:
        raise PluginError('Plugin "logging" is already registered')
    """

    pass


class OdesliAPIError(OdesliError):
    """The upstream lookup failed.

    Hey future me - `retryable` is a CLASS attribute! The executor and the
    batch orchestrator both read it to decide "try again or give up", so the retry
    policy for an error class lives in exactly one place.

    Attributes:
        status_code: Upstream status code (HTTP status or envelope statusCode)
        code: Upstream error code string from the error envelope, if any
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class RequestTimeoutError(OdesliAPIError):
    """The request did not complete within the configured timeout."""

    retryable = True

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Request timeout after {round(timeout_seconds * 1000)}ms")
        self.timeout_seconds = timeout_seconds


class NetworkError(OdesliAPIError):
    """Transport-level failure (DNS, connection refused, reset, ...)."""

    retryable = True


class MalformedResponseError(OdesliAPIError):
    """The upstream body could not be parsed as JSON."""

    def __init__(self, message: str = "API returned an unexpected result.") -> None:
        super().__init__(message)


class RateLimitExceededError(OdesliAPIError):
    """Upstream answered 429 Too Many Requests.

    Example:
        raise RateLimitExceededError(
            "429: TOO_MANY_REQUESTS, You are being rate limited, ...",
            status_code=429,
        )
    """

    pass


class ClientError(OdesliAPIError):
    """Upstream rejected the request (4xx other than 429)."""

    pass


class ServerError(OdesliAPIError):
    """Upstream failed on its side (5xx)."""

    retryable = True


__all__ = [
    # Base
    "OdesliError",
    # Caller input
    "ValidationError",
    # Plugins
    "PluginError",
    # Upstream
    "OdesliAPIError",
    "RequestTimeoutError",
    "NetworkError",
    "MalformedResponseError",
    "RateLimitExceededError",
    "ClientError",
    "ServerError",
]
