# context_scribe/crawler/fetcher.py
"""
Fetcher module: handles HTTP requests with retry/backoff, timeout and cancellation.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from context_scribe.config import ScribeConfig
from context_scribe.crawler.cancellation import CancelToken
from context_scribe.crawler.models import PageData
from context_scribe.logger import logger

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)


class _Retryable(ClientError):
    pass


def open_session(config: ScribeConfig) -> ClientSession:
    """Client session carrying the configured timeout and User-Agent."""
    return ClientSession(
        timeout=ClientTimeout(total=config.timeout),
        headers={"User-Agent": config.user_agent},
        raise_for_status=False,
    )


class Fetcher:
    """Fetches HTML pages; anything else is a dead end, not an error."""

    def __init__(
        self,
        session: ClientSession,
        config: ScribeConfig,
        retry_status: Sequence[int] = RETRY_STATUS,
    ) -> None:
        self.session = session
        self.config = config
        self._retry_status = retry_status

    async def fetch(self, url: str, cancel: CancelToken) -> Optional[PageData]:
        """
        Fetch *url* unless *cancel* is raised before or during the request.

        Returns PageData for a 2xx ``text/html`` response and None for
        non-2xx statuses, other content types, timeouts and network errors.
        Raises ScrapeCancelled when cancellation wins.
        """
        return await cancel.guard(self._fetch_with_retry(url))

    async def _fetch_with_retry(self, url: str) -> Optional[PageData]:
        attempts = 0
        while True:
            try:
                return await self._get(url)
            except asyncio.TimeoutError:
                # no retry on timeout
                logger.warning("Timeout fetching %s", url)
                return None
            except ClientError as exc:
                attempts += 1
                if attempts > self.config.retry_times:
                    logger.warning("Failed %s: %s", url, exc)
                    return None
                backoff = self._backoff(attempts)
                logger.debug(
                    "Retry %d/%d for %s after %.1f s", attempts, self.config.retry_times, url, backoff
                )
                await asyncio.sleep(backoff)

    @staticmethod
    def _backoff(attempt: int) -> float:
        # exponential backoff, cap at 60s
        return min(2**attempt, 60)

    async def _get(self, url: str) -> Optional[PageData]:
        async with self.session.get(url) as resp:
            if resp.status in self._retry_status:
                raise _Retryable(f"retryable status {resp.status}")
            if not 200 <= resp.status < 300:
                logger.debug("Skipping %s: HTTP %s", url, resp.status)
                return None
            ctype = resp.headers.get("Content-Type", "").lower()
            if "text/html" not in ctype:
                logger.debug("Skipping %s: content type %r", url, ctype)
                return None
            text = await resp.text(errors="replace")
            return PageData(url, text)
