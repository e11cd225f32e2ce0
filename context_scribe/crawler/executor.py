# context_scribe/crawler/executor.py
"""
Bounded executor: run one task per item with at most ``limit`` in flight.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterator, Sequence, TypeVar

from context_scribe.crawler.cancellation import CancelToken, ScrapeCancelled
from context_scribe.logger import logger

T = TypeVar("T")

__all__ = ["run_bounded"]


async def run_bounded(
    items: Sequence[T],
    limit: int,
    task: Callable[[T], Awaitable[object]],
    cancel: CancelToken,
) -> None:
    """Run ``task(item)`` for every item, never more than *limit* at once.

    Workers pull the next item only after their previous task has settled and
    only while *cancel* is not raised, so cancellation stops admission of new
    items but every admitted task runs to completion (or to its own
    cancellation check). Returns once all admitted tasks have finished.

    Tasks are expected to handle their own failures; anything that still
    escapes is logged and does not disturb sibling tasks.
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")
    pending: Iterator[T] = iter(items)

    async def _worker() -> None:
        while not cancel.cancelled:
            try:
                item = next(pending)
            except StopIteration:
                return
            try:
                await task(item)
            except ScrapeCancelled:
                return
            except Exception:
                logger.exception("Task for %r failed", item)

    workers = [asyncio.create_task(_worker()) for _ in range(min(limit, len(items)))]
    if workers:
        await asyncio.gather(*workers)
