# File: context_scribe/pipeline.py
"""context_scribe.pipeline: fetch → readable content → markdown chunk, for every discovered URL."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from context_scribe.crawler.cancellation import CancelToken, ScrapeCancelled
from context_scribe.crawler.executor import run_bounded
from context_scribe.crawler.fetcher import Fetcher
from context_scribe.crawler.models import PageChunk
from context_scribe.logger import logger
from context_scribe.parser.html_parser import extract_article, html_to_markdown

__all__ = ["ExtractionPipeline", "ProgressCallback"]

# (processed, total, source_url)
ProgressCallback = Callable[[int, int, str], None]


class ExtractionPipeline:
    """Turns discovered URLs into page chunks under a shared concurrency cap.

    Chunks are appended in completion order. ``processed`` advances exactly
    once per URL whatever the outcome, so it reaches ``total`` before
    :meth:`run` returns unless cancellation stopped admission early.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        concurrency: int,
        cancel: CancelToken,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.fetcher = fetcher
        self.concurrency = concurrency
        self.cancel = cancel
        self._on_progress = on_progress
        self.chunks: List[PageChunk] = []
        self.processed = 0
        self.total = 0

    async def run(self, urls: Sequence[str]) -> List[PageChunk]:
        self.total = len(urls)
        await run_bounded(urls, self.concurrency, self._process, self.cancel)
        self.cancel.raise_if_cancelled()
        logger.info("Processing finished: %d chunks from %d pages", len(self.chunks), self.total)
        return self.chunks

    def document(self) -> str:
        """Raw concatenation of the chunks produced so far."""
        return "".join(chunk.render() for chunk in self.chunks)

    async def extract(self, url: str) -> Optional[PageChunk]:
        """Zero or one chunk for *url*; dead ends return None."""
        page = await self.fetcher.fetch(url, self.cancel)
        if page is None:
            return None
        article = extract_article(page.content, url)
        if article is None:
            logger.debug("No readable content at %s", url)
            return None
        body = html_to_markdown(article.content)
        if not body:
            return None
        return PageChunk(source_url=url, title=article.title, body=body)

    async def _process(self, url: str) -> None:
        try:
            chunk = await self.extract(url)
            if chunk is not None:
                self.chunks.append(chunk)
        except ScrapeCancelled:
            raise
        except Exception as exc:
            logger.warning("Processing failed for %s: %s", url, exc)
        finally:
            self.processed += 1
            if self._on_progress is not None:
                self._on_progress(self.processed, self.total, url)
