"""Tests for the plugin system."""

import logging
from typing import Any

import pytest

from odesli.domain.dtos import LinkResult
from odesli.domain.exceptions import PluginError
from odesli.infrastructure.plugins import (
    AnalyticsPlugin,
    HookName,
    LoggingPlugin,
    Plugin,
    PluginSystem,
    ResponseTransformerPlugin,
)


class RecordingPlugin(Plugin):
    """Plugin that records lifecycle calls and hook invocations."""

    name = "recording"
    version = "2.0.0"
    description = "records"

    def __init__(self) -> None:
        self.calls: list[str] = []

    def init(self) -> None:
        self.calls.append("init")

    def cleanup(self) -> None:
        self.calls.append("cleanup")

    def hooks(self) -> dict[str, Any]:
        return {HookName.BEFORE_REQUEST.value: self._before}

    async def _before(self, context: dict) -> None:
        self.calls.append(f"before:{context.get('url')}")


class WrappingPlugin(Plugin):
    """Middleware that records entry and exit around the call."""

    def __init__(self, name: str, trail: list[str]) -> None:
        self.name = name
        self.trail = trail

    async def middleware(self, context: dict, call_next) -> Any:
        self.trail.append(f"{self.name}:in")
        result = await call_next()
        self.trail.append(f"{self.name}:out")
        return result


@pytest.fixture
def plugins() -> PluginSystem:
    """Create an empty plugin system."""
    return PluginSystem()


class TestRegistration:
    """Test plugin registration."""

    def test_builtin_hooks_are_declared(self, plugins: PluginSystem) -> None:
        """Test every hook point exists without handlers."""
        for hook in HookName:
            assert plugins.handler_count(hook) == 0

    def test_register_runs_init_and_wires_hooks(self, plugins: PluginSystem) -> None:
        """Test registration calls init and attaches hook handlers."""
        plugin = RecordingPlugin()
        assert plugins.register_plugin(plugin) is plugins

        assert plugin.calls == ["init"]
        assert plugins.has_plugin("recording")
        assert plugins.get_plugin("recording") is plugin
        assert plugins.get_plugins() == ["recording"]
        assert plugins.handler_count(HookName.BEFORE_REQUEST) == 1

    def test_duplicate_name_rejected(self, plugins: PluginSystem) -> None:
        """Test a second plugin with the same name raises PluginError."""
        plugins.register_plugin(RecordingPlugin())
        with pytest.raises(PluginError, match='"recording" is already registered'):
            plugins.register_plugin(RecordingPlugin())

    def test_register_under_custom_name(self, plugins: PluginSystem) -> None:
        """Test the same plugin class can be registered twice under different names."""
        plugins.register_plugin(RecordingPlugin())
        plugins.register_plugin(RecordingPlugin(), name="recording-2")
        assert plugins.handler_count("before_request") == 2

    def test_unregister_removes_everything(self, plugins: PluginSystem) -> None:
        """Test unregistering calls cleanup and drops handlers and middleware."""
        plugin = RecordingPlugin()
        plugins.register_plugin(plugin)
        plugins.register_plugin(WrappingPlugin("wrap", []))

        plugins.unregister_plugin("recording")
        plugins.unregister_plugin("wrap")

        assert plugin.calls == ["init", "cleanup"]
        assert plugins.handler_count(HookName.BEFORE_REQUEST) == 0
        assert plugins.has_middleware() is False
        assert plugins.get_plugins() == []

    def test_unregister_unknown_rejected(self, plugins: PluginSystem) -> None:
        """Test unregistering an unknown name raises PluginError."""
        with pytest.raises(PluginError, match="is not registered"):
            plugins.unregister_plugin("ghost")

    def test_plugin_info(self, plugins: PluginSystem) -> None:
        """Test plugin descriptions."""
        plugins.register_plugin(RecordingPlugin())
        assert plugins.get_plugin_info("recording") == {
            "name": "recording",
            "hooks": ["before_request"],
            "has_middleware": False,
            "has_transformers": False,
            "version": "2.0.0",
            "description": "records",
        }
        assert plugins.get_plugin_info("ghost") is None

    def test_custom_hook_point(self, plugins: PluginSystem) -> None:
        """Test registering a hook keeps existing handlers."""
        plugins.register_hook_handler("custom", lambda ctx: None)
        plugins.register_hook("custom")
        assert plugins.handler_count("custom") == 1


class TestHooks:
    """Test hook dispatch."""

    async def test_priority_order(self, plugins: PluginSystem) -> None:
        """Test higher priority runs first and ties keep registration order."""
        order: list[str] = []
        plugins.register_hook_handler("before_request", lambda ctx: order.append("low"))
        plugins.register_hook_handler(
            "before_request", lambda ctx: order.append("high"), priority=10
        )
        plugins.register_hook_handler("before_request", lambda ctx: order.append("low-2"))

        await plugins.execute_hook(HookName.BEFORE_REQUEST, {})

        assert order == ["high", "low", "low-2"]

    async def test_sync_and_async_handlers_share_context(self, plugins: PluginSystem) -> None:
        """Test both handler styles run and see the same context object."""

        async def async_handler(ctx: dict) -> None:
            ctx["async"] = True

        plugins.register_hook_handler("after_request", async_handler)
        plugins.register_hook_handler("after_request", lambda ctx: ctx.update(sync=True))
        context: dict = {}

        await plugins.execute_hook("after_request", context)

        assert context == {"async": True, "sync": True}

    async def test_failing_handler_routes_to_on_error(self, plugins: PluginSystem) -> None:
        """Test a failing handler does not raise and reaches on_error."""
        seen: list[dict] = []

        def broken(ctx: dict) -> None:
            raise RuntimeError("handler broke")

        plugins.register_hook_handler("on_cache_hit", broken)
        plugins.register_hook_handler("on_error", seen.append)

        await plugins.execute_hook("on_cache_hit", {"url": "u"})

        assert len(seen) == 1
        assert str(seen[0]["error"]) == "handler broke"
        assert seen[0]["hook_name"] == "on_cache_hit"

    async def test_failing_error_handler_does_not_recurse(
        self, plugins: PluginSystem, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an on_error handler failure is only logged."""
        calls = 0

        def broken(ctx: dict) -> None:
            nonlocal calls
            calls += 1
            raise RuntimeError("error handler broke")

        plugins.register_hook_handler("on_error", broken)

        with caplog.at_level(logging.ERROR):
            await plugins.execute_hook("on_error", {"error": ValueError("x")})

        assert calls == 1
        assert "error handler broke" in caplog.text

    async def test_unknown_hook_is_noop(self, plugins: PluginSystem) -> None:
        """Test firing an undeclared hook does nothing."""
        await plugins.execute_hook("never_declared", {})


class TestMiddleware:
    """Test the middleware chain."""

    async def test_first_registered_is_outermost(self, plugins: PluginSystem) -> None:
        """Test middleware nests in registration order around the call."""
        trail: list[str] = []
        plugins.register_plugin(WrappingPlugin("a", trail))
        plugins.register_plugin(WrappingPlugin("b", trail))

        async def call_next() -> str:
            trail.append("call")
            return "result"

        assert await plugins.execute_middleware({}, call_next) == "result"
        assert trail == ["a:in", "b:in", "call", "b:out", "a:out"]
        assert plugins.get_plugin_info("a")["has_middleware"] is True

    async def test_no_middleware_calls_through(self, plugins: PluginSystem) -> None:
        """Test an empty chain just awaits call_next."""

        async def call_next() -> int:
            return 42

        assert plugins.has_middleware() is False
        assert await plugins.execute_middleware({}, call_next) == 42

    async def test_errors_propagate(self, plugins: PluginSystem) -> None:
        """Test errors from the wrapped call reach the caller."""
        plugins.register_plugin(WrappingPlugin("a", []))

        async def call_next() -> None:
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await plugins.execute_middleware({}, call_next)


class TestTransformers:
    """Test result transformers."""

    async def test_transformers_chain_per_type(self, plugins: PluginSystem) -> None:
        """Test only transformers for the data type run, in registration order."""

        class Upper(Plugin):
            name = "upper"

            def transformers(self) -> dict[str, Any]:
                return {"song": lambda data, ctx: {**data, "title": data["title"].upper()}}

        class Suffix(Plugin):
            name = "suffix"

            def transformers(self) -> dict[str, Any]:
                async def suffix(data: dict, ctx: dict) -> dict:
                    return {**data, "title": data["title"] + "!"}

                return {"song": suffix}

        plugins.register_plugin(Upper()).register_plugin(Suffix())

        assert await plugins.transform_data({"title": "hey"}, "song") == {"title": "HEY!"}
        assert await plugins.transform_data({"title": "hey"}, "album") == {"title": "hey"}
        assert await plugins.transform_data({"title": "hey"}, None) == {"title": "hey"}

    async def test_failing_transformer_is_skipped(self, plugins: PluginSystem) -> None:
        """Test a failing transformer keeps the last good value and reports the error."""
        errors: list[dict] = []

        class Broken(Plugin):
            name = "broken"

            def transformers(self) -> dict[str, Any]:
                def broken(data: Any, ctx: dict) -> Any:
                    raise ValueError("nope")

                return {"song": broken}

        plugins.register_plugin(Broken())
        plugins.register_hook_handler("on_error", errors.append)

        assert await plugins.transform_data({"title": "x"}, "song") == {"title": "x"}
        assert errors[0]["type"] == "song"


class TestBuiltinPlugins:
    """Test the bundled plugins."""

    async def test_analytics_counts(self, plugins: PluginSystem) -> None:
        """Test analytics counts requests, cache hits and errors."""
        analytics = AnalyticsPlugin()
        plugins.register_plugin(analytics)

        await plugins.execute_hook("before_request", {"url": "u"})
        await plugins.execute_hook("after_request", {"url": "u", "response_time_ms": 120.0})
        await plugins.execute_hook("on_cache_hit", {"url": "u"})
        await plugins.execute_hook("on_error", {"error": ValueError("x")})

        metrics = analytics.get_metrics()
        assert metrics["requests"] == 2
        assert metrics["cache_hits"] == 1
        assert metrics["errors"] == 1
        assert metrics["avg_response_time"] == 120.0
        assert metrics["cache_hit_rate"] == 50.0

    async def test_logging_plugin(
        self, plugins: PluginSystem, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test the logging plugin logs requests and errors."""
        plugins.register_plugin(LoggingPlugin())

        with caplog.at_level(logging.INFO, logger="odesli"):
            await plugins.execute_hook("before_request", {"url": "https://x", "attempt": 2})
            await plugins.execute_hook("on_error", {"error": ValueError("bad")})

        assert "Request: https://x (attempt 2)" in caplog.text
        assert "Error: bad" in caplog.text

    async def test_response_transformer_on_link_result(self, plugins: PluginSystem) -> None:
        """Test a LinkResult is flattened with display helpers."""
        plugins.register_plugin(ResponseTransformerPlugin())
        result = LinkResult(
            entity_unique_id="X",
            entities_by_unique_id={},
            links_by_platform={},
            id="abc",
            title="Song A",
            artist=["A1", "A2"],
            type="song",
            thumbnail=None,
        )

        transformed = await plugins.transform_data(result, "song")

        assert transformed["formatted_title"] == "SONG A"
        assert transformed["artist_count"] == 2
        assert transformed["has_thumbnail"] is False
        assert transformed["links_by_platform"] == {}
