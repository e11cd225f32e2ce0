# context_scribe/cleanup/base.py
"""
Cleanup stage contract shared by every variant.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from context_scribe.crawler.cancellation import CancelToken, ScrapeCancelled
from context_scribe.logger import logger


class Cleaner(ABC):
    """Transforms the raw concatenated chunks into the delivered document.

    :meth:`clean` never raises except for cancellation: when a variant
    fails, the raw input is returned unchanged. With a *cancel* token the
    transform is abandoned as soon as the token is raised.
    """

    name: str = "base"

    @abstractmethod
    async def _clean(self, raw: str) -> str:
        """Variant-specific transform; may raise."""

    async def clean(self, raw: str, cancel: Optional[CancelToken] = None) -> str:
        logger.info("[CLEANUP] Starting %s cleanup (%d chars)", self.name, len(raw))
        try:
            if cancel is None:
                result = await self._clean(raw)
            else:
                result = await cancel.guard(self._clean(raw))
        except (asyncio.CancelledError, ScrapeCancelled):
            raise
        except Exception:
            logger.exception("[CLEANUP] %s cleanup failed, keeping raw document", self.name)
            return raw
        logger.info("[CLEANUP] %s cleanup successful (%d chars)", self.name, len(result))
        return result


class PassthroughCleaner(Cleaner):
    name = "none"

    async def _clean(self, raw: str) -> str:
        return raw
