"""
Plugin System for the lookup client.

Hey future me - this is how callers hook INTO a lookup without forking the client!
A plugin can bring three things, all optional:

1. HOOKS - async (or sync) callbacks fired at fixed points of a lookup
   (before_request, after_request, on_cache_hit, on_error, ...). They observe,
   they can't change the result. A failing hook NEVER fails the lookup.
2. MIDDLEWARE - wraps the HTTP call itself: middleware(context, call_next).
   Chain runs in registration order, first registered = outermost.
3. TRANSFORMERS - per result type ("song"/"album") post-processing of the
   normalized result. Unlike hooks, these DO change what the caller gets back.

Usage:
    plugins = PluginSystem()
    plugins.register_plugin(LoggingPlugin())
    plugins.register_hook_handler(HookName.ON_ERROR, alert, priority=10)

    client = Odesli(plugins=plugins)

Thread-Safety:
    NOT thread-safe. Register everything before the first lookup.
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from odesli.domain.exceptions import PluginError

logger = logging.getLogger(__name__)

HookContext = dict[str, Any]
HookHandler = Callable[[HookContext], Awaitable[None] | None]
CallNext = Callable[[], Awaitable[Any]]
Middleware = Callable[[HookContext, CallNext], Awaitable[Any]]
Transformer = Callable[[Any, HookContext], Awaitable[Any] | Any]


class HookName(str, Enum):
    """Hook points fired by the client.

    Hey future me - the context dict each hook receives:
    - BEFORE_REQUEST / AFTER_REQUEST: url, attempt (+ status_code, response_time_ms after)
    - BEFORE_RESPONSE / AFTER_RESPONSE: url, data (+ result, cached after)
    - ON_ERROR: error (+ hook_name when a handler itself failed)
    - ON_RATE_LIMIT: url, error, has_api_key
    - ON_CACHE_HIT / ON_CACHE_MISS: url
    """

    BEFORE_REQUEST = "before_request"
    AFTER_REQUEST = "after_request"
    BEFORE_RESPONSE = "before_response"
    AFTER_RESPONSE = "after_response"
    ON_ERROR = "on_error"
    ON_RATE_LIMIT = "on_rate_limit"
    ON_CACHE_HIT = "on_cache_hit"
    ON_CACHE_MISS = "on_cache_miss"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Plugin:
    """Base class for plugins.

    Override what you need: `hooks()`, `transformers()`, or define an async
    `middleware(context, call_next)` method. `init()` runs on registration,
    `cleanup()` on unregistration.
    """

    name: str = "plugin"
    version: str = "1.0.0"
    description: str = ""
    middleware: Middleware | None = None

    def init(self) -> None:
        """Called once when the plugin is registered."""

    def cleanup(self) -> None:
        """Called once when the plugin is unregistered."""

    def hooks(self) -> dict[str, HookHandler]:
        """Map hook name -> handler."""
        return {}

    def transformers(self) -> dict[str, Transformer]:
        """Map result type -> transformer."""
        return {}


@dataclass
class _HandlerEntry:
    handler: HookHandler
    plugin_name: str | None
    priority: int


@dataclass
class _NamedMiddleware:
    plugin_name: str
    middleware: Middleware


@dataclass
class _NamedTransformers:
    plugin_name: str
    transformers: dict[str, Transformer]


class PluginSystem:
    """Registry and dispatcher for plugins, hooks, middleware and transformers."""

    def __init__(self) -> None:
        """Initialize with the built-in hook points and no handlers."""
        self._plugins: dict[str, Plugin] = {}
        self._hooks: dict[str, list[_HandlerEntry]] = {}
        self._middleware: list[_NamedMiddleware] = []
        self._transformers: list[_NamedTransformers] = []

        for hook in HookName:
            self.register_hook(hook)

    # ==========================================================================
    # REGISTRATION
    # ==========================================================================

    def register_plugin(self, plugin: Plugin, name: str | None = None) -> "PluginSystem":
        """Register a plugin under its name.

        Args:
            plugin: Plugin instance
            name: Registration name (default: plugin.name)

        Returns:
            self, for chaining

        Raises:
            PluginError: If the name is already taken
        """
        name = name or plugin.name
        if name in self._plugins:
            raise PluginError(f'Plugin "{name}" is already registered')

        plugin.init()
        self._plugins[name] = plugin

        for hook_name, handler in plugin.hooks().items():
            self.register_hook_handler(hook_name, handler, plugin_name=name)

        if plugin.middleware is not None:
            self._middleware.append(_NamedMiddleware(name, plugin.middleware))

        transformers = plugin.transformers()
        if transformers:
            self._transformers.append(_NamedTransformers(name, transformers))

        logger.info("Registered plugin: %s (v%s)", name, plugin.version)
        return self

    def unregister_plugin(self, name: str) -> "PluginSystem":
        """Remove a plugin with all its handlers, middleware and transformers.

        Raises:
            PluginError: If no plugin is registered under that name
        """
        plugin = self._plugins.get(name)
        if plugin is None:
            raise PluginError(f'Plugin "{name}" is not registered')

        plugin.cleanup()
        self._middleware = [m for m in self._middleware if m.plugin_name != name]
        self._transformers = [t for t in self._transformers if t.plugin_name != name]
        for hook_name, handlers in self._hooks.items():
            self._hooks[hook_name] = [h for h in handlers if h.plugin_name != name]

        del self._plugins[name]
        logger.info("Unregistered plugin: %s", name)
        return self

    def register_hook(self, name: str) -> "PluginSystem":
        """Declare a hook point. Existing handlers are kept."""
        self._hooks.setdefault(_hook_key(name), [])
        return self

    def register_hook_handler(
        self,
        hook_name: str,
        handler: HookHandler,
        plugin_name: str | None = None,
        priority: int = 0,
    ) -> "PluginSystem":
        """Attach a handler to a hook, declaring the hook if needed.

        Higher priority runs first; equal priorities keep registration order.
        """
        key = _hook_key(hook_name)
        handlers = self._hooks.setdefault(key, [])
        handlers.append(_HandlerEntry(handler, plugin_name, priority))
        handlers.sort(key=lambda entry: -entry.priority)
        return self

    # ==========================================================================
    # DISPATCH
    # ==========================================================================

    # Hey future me - handler errors are routed to ON_ERROR and NEVER raised. If an
    # ON_ERROR handler fails too we only log it, otherwise one broken error handler
    # would recurse forever. CancelledError is a BaseException and passes through.
    async def execute_hook(self, hook_name: str, context: HookContext | None = None) -> None:
        """Run every handler of a hook in priority order."""
        key = _hook_key(hook_name)
        context = context if context is not None else {}

        for entry in list(self._hooks.get(key, [])):
            try:
                await _maybe_await(entry.handler(context))
            except Exception as e:
                if key == HookName.ON_ERROR.value:
                    logger.error("Error in on_error hook handler: %s", e)
                    continue
                await self.execute_hook(
                    HookName.ON_ERROR,
                    {"error": e, "hook_name": key, "context": context},
                )

    async def execute_middleware(self, context: HookContext, call_next: CallNext) -> Any:
        """Run the middleware chain around call_next.

        Errors from middleware or call_next propagate to the caller.
        """
        chain = list(self._middleware)

        async def run(index: int) -> Any:
            if index >= len(chain):
                return await call_next()
            return await chain[index].middleware(context, lambda: run(index + 1))

        return await run(0)

    async def transform_data(
        self, data: Any, data_type: str | None, context: HookContext | None = None
    ) -> Any:
        """Pass data through every transformer registered for data_type.

        A failing transformer is skipped (its error goes to ON_ERROR) and the
        chain continues with the last good value.
        """
        context = context if context is not None else {}
        if data_type is None:
            return data

        transformed = data
        for named in self._transformers:
            transformer = named.transformers.get(data_type)
            if transformer is None:
                continue
            try:
                transformed = await _maybe_await(transformer(transformed, context))
            except Exception as e:
                await self.execute_hook(
                    HookName.ON_ERROR,
                    {"error": e, "type": data_type, "context": context},
                )
        return transformed

    # ==========================================================================
    # INTROSPECTION
    # ==========================================================================

    def get_plugin(self, name: str) -> Plugin | None:
        """Get a registered plugin by name."""
        return self._plugins.get(name)

    def get_plugins(self) -> list[str]:
        """Names of all registered plugins, in registration order."""
        return list(self._plugins)

    def has_plugin(self, name: str) -> bool:
        return name in self._plugins

    def has_middleware(self) -> bool:
        return bool(self._middleware)

    def get_plugin_info(self, name: str) -> dict[str, Any] | None:
        """Describe a plugin, or None if not registered."""
        plugin = self._plugins.get(name)
        if plugin is None:
            return None
        return {
            "name": name,
            "hooks": list(plugin.hooks()),
            "has_middleware": plugin.middleware is not None,
            "has_transformers": bool(plugin.transformers()),
            "version": plugin.version,
            "description": plugin.description,
        }

    def handler_count(self, hook_name: str) -> int:
        return len(self._hooks.get(_hook_key(hook_name), []))


def _hook_key(hook_name: str) -> str:
    if isinstance(hook_name, HookName):
        return hook_name.value
    return hook_name


# =============================================================================
# BUILT-IN PLUGINS
# =============================================================================


class LoggingPlugin(Plugin):
    """Logs every request, response and error."""

    name = "logging"
    description = "Adds request, response and error logging"

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def init(self) -> None:
        self._log.debug("Logging plugin initialized")

    def hooks(self) -> dict[str, HookHandler]:
        return {
            HookName.BEFORE_REQUEST.value: self._before_request,
            HookName.AFTER_REQUEST.value: self._after_request,
            HookName.ON_ERROR.value: self._on_error,
        }

    async def _before_request(self, context: HookContext) -> None:
        self._log.info("Request: %s (attempt %s)", context.get("url"), context.get("attempt", 1))

    async def _after_request(self, context: HookContext) -> None:
        self._log.info(
            "Response: %s (%.0fms)",
            context.get("status_code"),
            context.get("response_time_ms") or 0.0,
        )

    async def _on_error(self, context: HookContext) -> None:
        self._log.error("Error: %s", context.get("error"))


class AnalyticsPlugin(Plugin):
    """Counts requests, errors and cache hits in memory."""

    name = "analytics"
    description = "Tracks usage analytics"

    def __init__(self) -> None:
        self.requests = 0
        self.errors = 0
        self.cache_hits = 0
        self.response_times: list[float] = []

    def init(self) -> None:
        self.requests = 0
        self.errors = 0
        self.cache_hits = 0
        self.response_times = []

    def hooks(self) -> dict[str, HookHandler]:
        return {
            HookName.BEFORE_REQUEST.value: self._before_request,
            HookName.AFTER_REQUEST.value: self._after_request,
            HookName.ON_CACHE_HIT.value: self._on_cache_hit,
            HookName.ON_ERROR.value: self._on_error,
        }

    def _before_request(self, context: HookContext) -> None:
        context.setdefault("start_time", time.monotonic())
        self.requests += 1

    def _after_request(self, context: HookContext) -> None:
        response_time_ms = context.get("response_time_ms")
        if response_time_ms is None and "start_time" in context:
            response_time_ms = (time.monotonic() - context["start_time"]) * 1000
        if response_time_ms is not None:
            self.response_times.append(response_time_ms)

    def _on_cache_hit(self, context: HookContext) -> None:
        self.requests += 1
        self.cache_hits += 1

    def _on_error(self, context: HookContext) -> None:
        self.errors += 1

    def get_metrics(self) -> dict[str, Any]:
        """Counters plus average response time (ms) and cache hit rate (%)."""
        avg = (
            sum(self.response_times) / len(self.response_times)
            if self.response_times
            else 0.0
        )
        return {
            "requests": self.requests,
            "errors": self.errors,
            "cache_hits": self.cache_hits,
            "response_times": list(self.response_times),
            "avg_response_time": avg,
            "cache_hit_rate": (self.cache_hits / self.requests) * 100 if self.requests else 0.0,
        }


class ResponseTransformerPlugin(Plugin):
    """Flattens song/album results into a dict with a few display helpers."""

    name = "response-transformer"
    description = "Transforms lookup results into display-friendly dicts"

    def transformers(self) -> dict[str, Transformer]:
        return {"song": _decorate_result, "album": _decorate_result}


def _decorate_result(data: Any, context: HookContext) -> dict[str, Any]:
    if isinstance(data, dict):
        base = dict(data)
    else:
        base = {
            "entity_unique_id": data.entity_unique_id,
            "id": data.id,
            "title": data.title,
            "artist": data.artist,
            "type": data.type,
            "thumbnail": data.thumbnail,
            "page_url": data.page_url,
            "links_by_platform": {
                platform: link.url for platform, link in data.links_by_platform.items()
            },
        }
    title = base.get("title")
    artist = base.get("artist") or []
    return {
        **base,
        "formatted_title": title.upper() if title else None,
        "artist_count": len(artist),
        "has_thumbnail": bool(base.get("thumbnail")),
    }


__all__ = [
    "AnalyticsPlugin",
    "HookName",
    "LoggingPlugin",
    "Plugin",
    "PluginSystem",
    "ResponseTransformerPlugin",
]
