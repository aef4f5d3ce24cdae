"""Structured log message templates.

Hey future me - instead of "Error: All connection attempts failed" the client logs:

    🔄 Lookup Retry Scheduled
    ├─ URL: https://api.song.link/v1-alpha.1/links?url=...
    ├─ Attempt: 1/3
    ├─ Reason: All connection attempts failed
    └─ 💡 Next attempt in 1.0s

Icon first, then what happened, then context, then an optional hint.

Usage:
    from odesli.infrastructure.observability.log_messages import LogMessages

    logger.warning(LogMessages.retry_scheduled(url=url, attempt=1, max_attempts=3,
                                               delay=1.0, error="boom"))
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class LogTemplate:
    """A log message with icon, title, tree-formatted fields and an optional hint."""

    icon: str
    title: str
    fields: dict[str, str]
    hint: str | None = None

    def format(self, **kwargs: Any) -> str:
        """Render the template, filling {placeholders} from kwargs.

        Missing placeholders render as `<missing: name>` instead of raising;
        a log call must never be the thing that crashes.
        """
        lines = [f"{self.icon} {self.title}"]

        items = list(self.fields.items())
        for index, (key, value_template) in enumerate(items):
            last = index == len(items) - 1 and not self.hint
            prefix = "└─" if last else "├─"
            lines.append(f"{prefix} {key}: {_fill(value_template, kwargs)}")

        if self.hint:
            lines.append(f"└─ 💡 {_fill(self.hint, kwargs)}")

        return "\n".join(lines)


def _fill(template: str, values: dict[str, Any]) -> str:
    # Pre-rendered values (URLs, error text) may contain literal braces.
    if not values:
        return template
    try:
        return template.format(**values)
    except KeyError as e:
        return f"<missing: {e}>"
    except (IndexError, ValueError):
        return template


class LogMessages:
    """Log message templates used by the request layer."""

    # === Requests ===

    @staticmethod
    def retry_scheduled(
        url: str, attempt: int, max_attempts: int, delay: float, error: str
    ) -> str:
        """Format a "will retry" message.

        Args:
            url: Request URL
            attempt: Attempt that just failed (1-based)
            max_attempts: Configured attempts
            delay: Backoff before the next attempt in seconds
            error: Failure reason
        """
        return LogTemplate(
            icon="🔄",
            title="Lookup Retry Scheduled",
            fields={
                "URL": url,
                "Attempt": f"{attempt}/{max_attempts}",
                "Reason": error,
            },
            hint=f"Next attempt in {delay:.1f}s",
        ).format()

    @staticmethod
    def request_failed(
        url: str, error: str, attempts: int, hint: str | None = None
    ) -> str:
        """Format a terminal request failure."""
        return LogTemplate(
            icon="🔴",
            title="Lookup Failed",
            fields={"URL": url, "Attempts": str(attempts), "Reason": error},
            hint=hint,
        ).format()

    @staticmethod
    def upstream_rate_limited(url: str, has_api_key: bool) -> str:
        """Format an upstream 429 message."""
        hint = (
            "Your API key quota is exhausted, slow down"
            if has_api_key
            else "Without an API key the limit is 10 requests/minute, request a key at https://odesli.co/"
        )
        return LogTemplate(
            icon="⚠️",
            title="Lookup Service Rate Limit Hit",
            fields={"URL": url},
            hint=hint,
        ).format()

    # === Rate limiter ===

    @staticmethod
    def limiter_waiting(name: str, strategy: str, wait_seconds: float) -> str:
        """Format a local rate limiter wait."""
        return LogTemplate(
            icon="⏳",
            title=f"RateLimiter[{name}] Waiting",
            fields={"Strategy": strategy, "Wait": f"{wait_seconds:.2f}s"},
        ).format()

    # === Batches ===

    @staticmethod
    def batch_item_failed(
        url: str, error: str, error_kind: str, retryable: bool
    ) -> str:
        """Format a failed batch item."""
        return LogTemplate(
            icon="❌",
            title="Batch Item Failed",
            fields={
                "URL": url,
                "Kind": error_kind,
                "Reason": error,
                "Retryable": "yes" if retryable else "no",
            },
        ).format()

    @staticmethod
    def batch_completed(total: int, succeeded: int, failed: int, chunks: int) -> str:
        """Format a batch summary."""
        return LogTemplate(
            icon="✅" if failed == 0 else "⚠️",
            title="Batch Lookup Completed",
            fields={
                "Total": str(total),
                "Succeeded": str(succeeded),
                "Failed": str(failed),
                "Chunks": str(chunks),
            },
        ).format()


__all__ = ["LogMessages", "LogTemplate"]
