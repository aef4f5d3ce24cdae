"""Error classification for failed lookups.

Hey future me - batch results never raise per item, so the caller needs something
better than an exception message to decide "retry this URL or not". This module turns
any exception into an ErrorKind plus a human suggestion.

Typed errors (our own domain exceptions) are classified by class first. Anything
else falls back to message sniffing, because plugin middleware can raise whatever
it likes and we still want a useful label.
"""

from enum import Enum

from odesli.domain.exceptions import (
    ClientError,
    OdesliAPIError,
    RateLimitExceededError,
    RequestTimeoutError,
    ValidationError,
)


class ErrorKind(str, Enum):
    """Classification attached to failed batch items."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


_SUGGESTIONS: dict[ErrorKind, str] = {
    ErrorKind.BAD_REQUEST: (
        "Check that the URL is a valid song or album link from a supported platform."
    ),
    ErrorKind.UNAUTHORIZED: "Check that your API key is valid.",
    ErrorKind.RATE_LIMITED: (
        "Slow down or use an API key for a higher limit "
        "(unauthenticated access is limited to 10 requests/minute)."
    ),
    ErrorKind.NOT_FOUND: (
        "The item could not be matched. It may be region-locked, removed, "
        "or not available on other platforms."
    ),
    ErrorKind.TIMEOUT: "The request timed out. Retry later or raise the timeout.",
    ErrorKind.UNKNOWN: "Retry later. If the problem persists, check the URL and the service status.",
}


def _status_kind(status_code: int) -> ErrorKind:
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if 400 <= status_code < 500:
        return ErrorKind.BAD_REQUEST
    return ErrorKind.UNKNOWN


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception onto an ErrorKind.

    Args:
        error: Exception raised by a lookup

    Returns:
        Best matching ErrorKind (UNKNOWN if nothing matches)
    """
    if isinstance(error, RequestTimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, RateLimitExceededError):
        return ErrorKind.RATE_LIMITED
    if isinstance(error, ValidationError):
        return ErrorKind.BAD_REQUEST
    if isinstance(error, OdesliAPIError) and error.status_code is not None:
        return _status_kind(error.status_code)
    if isinstance(error, ClientError):
        return ErrorKind.BAD_REQUEST

    message = str(error).lower()
    if "429" in message or "rate limit" in message:
        return ErrorKind.RATE_LIMITED
    if "401" in message or "unauthorized" in message:
        return ErrorKind.UNAUTHORIZED
    if "404" in message or "not found" in message:
        return ErrorKind.NOT_FOUND
    if "400" in message or "bad request" in message:
        return ErrorKind.BAD_REQUEST
    if "timeout" in message or "timed out" in message:
        return ErrorKind.TIMEOUT
    return ErrorKind.UNKNOWN


def is_retryable(error: BaseException) -> bool:
    """Check whether retrying the same lookup later can succeed.

    True for timeouts, transport failures and upstream 5xx - the classes that carry
    `retryable = True` in the exception hierarchy.
    """
    if isinstance(error, OdesliAPIError):
        return error.retryable
    return isinstance(error, (TimeoutError, ConnectionError))


def suggestion_for(kind: ErrorKind) -> str:
    """Get the human-readable suggestion for an ErrorKind."""
    return _SUGGESTIONS[kind]


__all__ = ["ErrorKind", "classify_error", "is_retryable", "suggestion_for"]
