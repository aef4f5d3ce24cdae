"""Tests for log message templates."""

from odesli.infrastructure.observability.log_messages import LogMessages, LogTemplate


class TestLogTemplate:
    """Test template rendering."""

    def test_tree_layout_with_hint(self) -> None:
        """Test fields use tree prefixes and the hint closes the tree."""
        text = LogTemplate(
            icon="🔴", title="Failed", fields={"A": "1", "B": "2"}, hint="do {thing}"
        ).format(thing="this")
        assert text.splitlines() == ["🔴 Failed", "├─ A: 1", "├─ B: 2", "└─ 💡 do this"]

    def test_last_field_closes_tree_without_hint(self) -> None:
        """Test the last field gets the closing prefix."""
        text = LogTemplate(icon="x", title="T", fields={"A": "1"}).format()
        assert text.splitlines()[-1] == "└─ A: 1"

    def test_missing_placeholder_does_not_raise(self) -> None:
        """Test unknown placeholders render a marker."""
        text = LogTemplate(icon="x", title="T", fields={"A": "{nope}"}).format(other=1)
        assert "<missing: 'nope'>" in text

    def test_literal_braces_survive_without_values(self) -> None:
        """Test pre-rendered text with braces is left alone."""
        text = LogTemplate(icon="x", title="T", fields={"Reason": "bad {json}"}).format()
        assert "Reason: bad {json}" in text


class TestLogMessages:
    """Test the request layer messages."""

    def test_retry_scheduled(self) -> None:
        """Test retry message carries attempt counter and delay."""
        text = LogMessages.retry_scheduled(
            url="https://api/x", attempt=1, max_attempts=3, delay=2.0, error="boom"
        )
        assert "Attempt: 1/3" in text
        assert "Reason: boom" in text
        assert "Next attempt in 2.0s" in text

    def test_upstream_rate_limited_hint_depends_on_key(self) -> None:
        """Test the keyless hint mentions the public quota."""
        assert "10 requests/minute" in LogMessages.upstream_rate_limited("u", has_api_key=False)
        assert "quota is exhausted" in LogMessages.upstream_rate_limited("u", has_api_key=True)

    def test_batch_completed_icon(self) -> None:
        """Test the summary icon reflects failures."""
        assert LogMessages.batch_completed(3, 3, 0, 1).startswith("✅")
        assert LogMessages.batch_completed(3, 2, 1, 1).startswith("⚠️")

    def test_batch_item_failed(self) -> None:
        """Test failure message fields."""
        text = LogMessages.batch_item_failed("u", "timeout", "TIMEOUT", retryable=True)
        assert "Kind: TIMEOUT" in text
        assert "Retryable: yes" in text
