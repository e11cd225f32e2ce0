# context_scribe/crawler/cancellation.py
"""
Cooperative cancellation for one crawl request.

A single :class:`CancelToken` is created per request and passed explicitly to
every operation that can suspend. Nothing is killed forcibly: loops check the
token before admitting new work, and :meth:`CancelToken.guard` abandons an
awaitable (typically an HTTP request) as soon as the token is raised.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class ScrapeCancelled(Exception):
    """The caller asked to stop the crawl."""


class CancelToken:
    """Raised-once flag shared by every task of a crawl request."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by client") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScrapeCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable* unless the token is raised first.

        Raises :class:`ScrapeCancelled` if cancellation wins the race; the
        abandoned awaitable is cancelled and awaited so no task is leaked.
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        stopper = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            stopper.cancel()
        if work in done:
            return work.result()
        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise ScrapeCancelled(self.reason or "cancelled")
