# File: context_scribe/engine.py
"""context_scribe.engine: оркестрация одного запроса: discovering → processing → cleaning → complete.

Каждый запрос получает собственный контекст (frontier, счётчики, токен отмены);
между запросами разделяется только файловый кэш.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, List, Optional

from pydantic import BaseModel, field_validator

from context_scribe.cache import CacheStore
from context_scribe.cleanup import Cleaner, build_cleaner
from context_scribe.config import ScribeConfig
from context_scribe.crawler.cancellation import CancelToken, ScrapeCancelled
from context_scribe.crawler.fetcher import Fetcher, open_session
from context_scribe.crawler.frontier import Frontier
from context_scribe.events import (
    CacheHit,
    CompleteEvent,
    DiscoveryEvent,
    ErrorEvent,
    PhaseEvent,
    ProcessingEvent,
    ProgressEvent,
    StoppedEvent,
    is_terminal,
)
from context_scribe.logger import logger
from context_scribe.pipeline import ExtractionPipeline
from context_scribe.utils import parse_seed, scope_of

__all__ = ["ScrapeRequest", "CrawlState", "CrawlResult", "ScrapeEngine"]

UNEXPECTED_ERROR = "An unexpected server error occurred."
STOPPED_MESSAGE = "Scraping was stopped by the user."

EventCallback = Callable[[ProgressEvent], None]


class ScrapeRequest(BaseModel):
    """Входные данные запроса: seed URL и флаг принудительного обхода кэша."""

    url: str
    force: bool = False

    @field_validator("url", mode="before")
    def _validate_url(cls, v: Any) -> Any:
        # InvalidURLError is a ValueError, so pydantic reports it as a validation error
        parse_seed(v)
        return v.strip()

    @property
    def scope(self) -> str:
        return scope_of(self.url)


class CrawlState(str, enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    PROCESSING = "processing"
    CLEANING = "cleaning"
    COMPLETE = "complete"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class CrawlResult:
    """Итог запроса: конечное состояние, документ и число страниц."""

    state: CrawlState
    content: Optional[str] = None
    discovered: List[str] = field(default_factory=list)
    processed: int = 0
    error: Optional[str] = None
    cache_hit: Optional[CacheHit] = None


class ScrapeEngine:
    """Фасад для сервера, CLI и тестов."""

    def __init__(
        self,
        config: ScribeConfig,
        cache: Optional[CacheStore] = None,
        cleaner: Optional[Cleaner] = None,
    ) -> None:
        self.config = config
        self.cache = cache or CacheStore(config.cache_dir, config.cache_ttl_seconds)
        self.cleaner = cleaner or build_cleaner(config)

    def lookup_cache(self, request: ScrapeRequest) -> Optional[CacheHit]:
        """Свежая запись кэша или None; при ``force`` кэш не читается вовсе."""
        if request.force:
            logger.info("[CACHE BYPASS] Forcing re-scrape for %s", request.url)
            return None
        entry = self.cache.get(request.scope)
        if entry is None:
            return None
        return CacheHit(lastModified=entry.iso_last_modified(), content=entry.content)

    async def run(
        self,
        request: ScrapeRequest,
        cancel: Optional[CancelToken] = None,
        on_event: Optional[EventCallback] = None,
    ) -> CrawlResult:
        """Выполняет запрос целиком; свежий кэш сразу даёт COMPLETE без обхода."""
        hit = self.lookup_cache(request)
        if hit is not None:
            return CrawlResult(CrawlState.COMPLETE, content=hit.content, cache_hit=hit)
        return await self._execute(request, cancel or CancelToken(), on_event or (lambda _e: None))

    async def stream(
        self, request: ScrapeRequest, cancel: CancelToken
    ) -> AsyncIterator[ProgressEvent]:
        """События запроса по мере появления; кэш проверяется вызывающей стороной.

        Если потребитель перестаёт читать (закрывает генератор), токен
        поднимается и запрос завершается как ``stopped``.
        """
        queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()
        runner = asyncio.create_task(self._execute(request, cancel, queue.put_nowait))
        try:
            while True:
                event = await queue.get()
                yield event
                if is_terminal(event):
                    break
        finally:
            if not runner.done():
                cancel.cancel("stream closed by consumer")
            await runner

    async def _execute(
        self, request: ScrapeRequest, cancel: CancelToken, emit: EventCallback
    ) -> CrawlResult:
        result = CrawlResult(CrawlState.IDLE)
        pipeline: Optional[ExtractionPipeline] = None
        scope = request.scope
        try:
            result.state = CrawlState.DISCOVERING
            emit(PhaseEvent(phase="discovering", message="Phase 1: Discovering all pages..."))
            async with open_session(self.config) as session:
                fetcher = Fetcher(session, self.config)
                frontier = Frontier(
                    request.url,
                    fetcher,
                    self.config.concurrency,
                    cancel,
                    on_visit=lambda url, count: emit(
                        DiscoveryEvent(discovered=count, message=f"Searching: {url}")
                    ),
                )
                result.discovered = await frontier.discover()
                cancel.raise_if_cancelled()

                total = len(result.discovered)
                result.state = CrawlState.PROCESSING
                emit(
                    PhaseEvent(
                        phase="processing",
                        message=f"Phase 2: Processing {total} pages...",
                        total=total,
                    )
                )
                pipeline = ExtractionPipeline(
                    fetcher,
                    self.config.concurrency,
                    cancel,
                    on_progress=lambda done, of, url: emit(
                        ProcessingEvent(processed=done, total=of, message=f"Processed: {url}")
                    ),
                )
                await pipeline.run(result.discovered)
                result.processed = pipeline.processed
                cancel.raise_if_cancelled()

            result.state = CrawlState.CLEANING
            emit(PhaseEvent(phase="cleaning", message="Phase 3: Cleaning up content..."))
            final = (await self.cleaner.clean(pipeline.document(), cancel)).strip()
            cancel.raise_if_cancelled()

            if final:
                self.cache.put(scope, final)
            result.state = CrawlState.COMPLETE
            result.content = final
            emit(CompleteEvent(content=final))
        except ScrapeCancelled as exc:
            logger.info("Scrape of %s stopped: %s", request.url, exc)
            result.state = CrawlState.STOPPED
            if pipeline is not None:
                result.processed = pipeline.processed
            partial = None
            if self.config.keep_partial_on_stop and pipeline is not None:
                partial = pipeline.document()
            result.content = partial
            emit(StoppedEvent(message=STOPPED_MESSAGE, content=partial))
        except Exception:
            logger.exception("Unexpected error while scraping %s", request.url)
            result.state = CrawlState.ERROR
            result.error = UNEXPECTED_ERROR
            result.content = None
            emit(ErrorEvent(error=UNEXPECTED_ERROR))
        return result
