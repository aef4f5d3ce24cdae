# Hey future me - BatchOrchestrator turns "look up these 50 URLs" into chunks of
# `concurrency` parallel lookups. Chunk N+1 only starts when ALL of chunk N are done.
#
# In-flight lookups never exceed `concurrency`. One slow URL holds up its whole chunk.
#
# Per-item failures NEVER abort the batch. Every URL gets exactly one result in the
# same slot as its input index - a BatchSuccess or a BatchFailure with a kind,
# a retryable flag and a suggestion. Only structural mistakes (not a list,
# concurrency < 1) raise.
"""Chunked batch lookups with per-item failure records."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from odesli.domain.dtos import BatchFailure, BatchItemResult, BatchSuccess, LinkResult
from odesli.domain.exceptions import ValidationError
from odesli.domain.value_objects.error_kind import (
    classify_error,
    is_retryable,
    suggestion_for,
)
from odesli.domain.value_objects.platforms import detect_platform, extract_id
from odesli.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[LinkResult | dict[str, Any] | None]]

DEFAULT_CONCURRENCY = 5


class BatchOrchestrator:
    """Runs a lookup over many URLs, chunk by chunk."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    async def fetch_all(
        self,
        urls: Sequence[str],
        lookup: Lookup,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> list[BatchItemResult]:
        """Look up every URL, preserving input order.

        Args:
            urls: List of URLs (duplicates are looked up once per occurrence)
            lookup: Single-URL lookup coroutine function
            concurrency: Lookups in flight per chunk

        Returns:
            One BatchSuccess or BatchFailure per input URL, in input order

        Raises:
            ValidationError: If urls is not a list or concurrency < 1
        """
        if not isinstance(urls, (list, tuple)):
            raise ValidationError("urls must be a list of URLs")
        if not isinstance(concurrency, int) or concurrency < 1:
            raise ValidationError("concurrency must be a positive integer")

        results: list[BatchItemResult | None] = [None] * len(urls)
        chunks = 0

        for start in range(0, len(urls), concurrency):
            chunk = urls[start : start + concurrency]
            chunks += 1
            chunk_results = await asyncio.gather(
                *(self._run_one(url, lookup) for url in chunk)
            )
            for offset, item in enumerate(chunk_results):
                results[start + offset] = item

        completed = [item for item in results if item is not None]
        failed = sum(1 for item in completed if not item.success)
        self._log.info(
            LogMessages.batch_completed(
                total=len(completed),
                succeeded=len(completed) - failed,
                failed=failed,
                chunks=chunks,
            )
        )
        return completed

    # Yo, CancelledError is a BaseException and must keep propagating.
    async def _run_one(self, url: str, lookup: Lookup) -> BatchItemResult:
        try:
            result = await lookup(url)
        except Exception as e:
            failure = build_failure(url, e)
            self._log.warning(
                LogMessages.batch_item_failed(
                    url=url,
                    error=failure.error,
                    error_kind=failure.error_kind,
                    retryable=failure.retryable,
                )
            )
            return failure
        return BatchSuccess(url=url, result=result if result is not None else {})


def build_failure(url: Any, error: BaseException) -> BatchFailure:
    """Build a failure record, re-running platform detection for diagnostics."""
    kind = classify_error(error)
    url_text = url if isinstance(url, str) else None
    return BatchFailure(
        url=str(url),
        error=getattr(error, "message", None) or str(error) or type(error).__name__,
        error_kind=kind.value,
        retryable=is_retryable(error),
        suggestion=suggestion_for(kind),
        platform=detect_platform(url_text),
        extracted_id=extract_id(url_text),
    )


__all__ = ["DEFAULT_CONCURRENCY", "BatchOrchestrator", "build_failure"]
