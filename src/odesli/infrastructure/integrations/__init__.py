"""Upstream HTTP integration."""

from odesli.infrastructure.integrations.request_executor import (
    RequestExecutor,
    backoff_delay,
)

__all__ = ["RequestExecutor", "backoff_delay"]
