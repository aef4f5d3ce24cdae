"""Observability infrastructure - metrics and structured logging."""

from odesli.infrastructure.observability.log_messages import LogMessages, LogTemplate
from odesli.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from odesli.infrastructure.observability.metrics import MetricsCollector

__all__ = [
    "LogMessages",
    "LogTemplate",
    "MetricsCollector",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
