"""Async client for the Odesli (song.link) music link lookup service."""

from odesli.__about__ import __version__
from odesli.application.cache import ResponseCache
from odesli.client import Odesli
from odesli.config import FetchOptions, OdesliSettings
from odesli.domain.dtos import (
    BatchFailure,
    BatchItemResult,
    BatchSuccess,
    EntityData,
    LinkResult,
    PlatformLink,
)
from odesli.domain.exceptions import (
    ClientError,
    MalformedResponseError,
    NetworkError,
    OdesliAPIError,
    OdesliError,
    PluginError,
    RateLimitExceededError,
    RequestTimeoutError,
    ServerError,
    ValidationError,
)
from odesli.domain.value_objects.error_kind import ErrorKind
from odesli.infrastructure.observability import MetricsCollector, configure_logging
from odesli.infrastructure.plugins import (
    AnalyticsPlugin,
    HookName,
    LoggingPlugin,
    Plugin,
    PluginSystem,
    ResponseTransformerPlugin,
)
from odesli.infrastructure.rate_limiter import RateLimiter, RateLimitStrategy

__all__ = [
    "__version__",
    # Client
    "Odesli",
    "OdesliSettings",
    "FetchOptions",
    # Results
    "BatchFailure",
    "BatchItemResult",
    "BatchSuccess",
    "EntityData",
    "ErrorKind",
    "LinkResult",
    "PlatformLink",
    # Collaborators
    "MetricsCollector",
    "RateLimiter",
    "RateLimitStrategy",
    "ResponseCache",
    "configure_logging",
    # Plugins
    "AnalyticsPlugin",
    "HookName",
    "LoggingPlugin",
    "Plugin",
    "PluginSystem",
    "ResponseTransformerPlugin",
    # Errors
    "ClientError",
    "MalformedResponseError",
    "NetworkError",
    "OdesliAPIError",
    "OdesliError",
    "PluginError",
    "RateLimitExceededError",
    "RequestTimeoutError",
    "ServerError",
    "ValidationError",
]
