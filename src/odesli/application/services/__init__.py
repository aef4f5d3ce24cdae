"""Application services - result normalization and batch orchestration."""

from odesli.application.services.batch_orchestrator import (
    DEFAULT_CONCURRENCY,
    BatchOrchestrator,
    build_failure,
)
from odesli.application.services.normalizer import normalize_response, split_artists

__all__ = [
    "DEFAULT_CONCURRENCY",
    "BatchOrchestrator",
    "build_failure",
    "normalize_response",
    "split_artists",
]
