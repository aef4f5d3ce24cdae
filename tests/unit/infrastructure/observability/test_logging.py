"""Tests for structured logging."""

import asyncio
import json
import logging
import sys

import pytest

from odesli.domain.exceptions import NetworkError
from odesli.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def make_record(msg: str = "hello", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="odesli.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self) -> None:
        """Test setting and getting correlation ID."""
        result = set_correlation_id("test-123-abc")
        assert result == "test-123-abc"
        assert get_correlation_id() == "test-123-abc"

    def test_set_correlation_id_generates_id_when_none(self) -> None:
        """Test that setting None generates a short random ID."""
        result = set_correlation_id(None)
        assert len(result) == 12
        assert get_correlation_id() == result

    async def test_tasks_keep_their_own_id(self) -> None:
        """Test concurrent tasks do not see each other's IDs."""

        async def worker(name: str) -> str:
            set_correlation_id(name)
            await asyncio.sleep(0)
            return get_correlation_id()

        assert await asyncio.gather(worker("a"), worker("b")) == ["a", "b"]

    def test_filter_adds_correlation_id(self) -> None:
        """Test the filter copies the context ID onto the record."""
        set_correlation_id("cid-1")
        record = make_record()
        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "cid-1"


class TestFormatters:
    """Test log formatters."""

    def test_json_formatter_fields(self) -> None:
        """Test JSON output carries level, logger and correlation ID."""
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = make_record("lookup done")
        record.correlation_id = "cid-2"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "lookup done"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "odesli.test"
        assert payload["line"] == 10
        assert payload["correlation_id"] == "cid-2"

    def test_json_formatter_omits_empty_correlation_id(self) -> None:
        """Test no correlation_id key when none is bound."""
        formatter = CustomJsonFormatter("%(message)s")
        record = make_record()
        record.correlation_id = ""
        assert "correlation_id" not in json.loads(formatter.format(record))

    def test_compact_formatter_shows_root_cause_first(self) -> None:
        """Test the exception chain is printed from the root cause outward."""
        try:
            try:
                raise ConnectionError("socket closed")
            except ConnectionError as e:
                raise NetworkError("All connection attempts failed") from e
        except NetworkError:
            exc_info = sys.exc_info()

        text = CompactExceptionFormatter().formatException(exc_info)

        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines == [
            "╰─► ConnectionError: socket closed",
            "╰─► NetworkError: All connection attempts failed",
        ]


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self, restore_root_logger) -> None:
        """Test configuring logging with DEBUG level."""
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("odesli").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_json_format(self, restore_root_logger) -> None:
        """Test configuring logging with JSON format installs one JSON handler."""
        configure_logging(log_level="INFO", json_format=True)
        handlers = restore_root_logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, CustomJsonFormatter)

    def test_configure_logging_text_format(self, restore_root_logger) -> None:
        """Test configuring logging with the compact text format."""
        configure_logging(log_level="WARNING", json_format=False)
        handlers = restore_root_logger.handlers
        assert isinstance(handlers[0].formatter, CompactExceptionFormatter)
        assert restore_root_logger.level == logging.WARNING

    def test_http_libraries_are_quieted(self, restore_root_logger) -> None:
        """Test httpx request lines are raised to WARNING."""
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, restore_root_logger) -> None:
        """Test an unknown level name does not raise."""
        configure_logging(log_level="chatty")
        assert restore_root_logger.level == logging.INFO
