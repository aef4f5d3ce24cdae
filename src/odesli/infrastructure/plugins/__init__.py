"""Plugin system - hooks, middleware and result transformers."""

from odesli.infrastructure.plugins.plugin_system import (
    AnalyticsPlugin,
    HookName,
    LoggingPlugin,
    Plugin,
    PluginSystem,
    ResponseTransformerPlugin,
)

__all__ = [
    "AnalyticsPlugin",
    "HookName",
    "LoggingPlugin",
    "Plugin",
    "PluginSystem",
    "ResponseTransformerPlugin",
]
