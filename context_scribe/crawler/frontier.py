# context_scribe/crawler/frontier.py
"""
Frontier: owns the discovered-URL set of one crawl and drives discovery rounds.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

from context_scribe.crawler.cancellation import CancelToken, ScrapeCancelled
from context_scribe.crawler.executor import run_bounded
from context_scribe.crawler.fetcher import Fetcher
from context_scribe.crawler.link_extractor import extract_links
from context_scribe.logger import logger
from context_scribe.utils import canonicalize, scope_of

VisitCallback = Callable[[str, int], None]


class Frontier:
    """Breadth-first discovery over rounds of at most ``concurrency`` pages.

    Round *k+1* starts only after every fetch of round *k* has settled. URLs
    found during a round are added to the discovered set immediately, so a
    link seen by two concurrent tasks is scheduled once.
    """

    def __init__(
        self,
        seed: str,
        fetcher: Fetcher,
        concurrency: int,
        cancel: CancelToken,
        on_visit: Optional[VisitCallback] = None,
    ) -> None:
        self.scope = scope_of(seed)
        root = canonicalize(seed)
        if root is None:
            raise ValueError(f"Cannot canonicalize seed {seed!r}")
        self.root = root
        self.fetcher = fetcher
        self.concurrency = concurrency
        self.cancel = cancel
        self._on_visit = on_visit
        # dict keeps first-discovered order
        self._discovered: Dict[str, None] = {root: None}
        self._pending: List[str] = [root]

    @property
    def discovered(self) -> List[str]:
        return list(self._discovered)

    def add(self, url: str) -> bool:
        """Insert *url* if absent; True when it was new.

        Contains no await, so the check and the insert cannot interleave with
        another discovery task.
        """
        if url in self._discovered:
            return False
        self._discovered[url] = None
        self._pending.append(url)
        return True

    async def discover(self) -> List[str]:
        """Run discovery rounds until no new in-scope URL turns up.

        Raises ScrapeCancelled if the token is raised between rounds.
        """
        logger.info("Discovery started: %s (scope %s)", self.root, self.scope)
        index = 0
        rounds = 0
        while index < len(self._pending):
            self.cancel.raise_if_cancelled()
            batch = self._pending[index:index + self.concurrency]
            index += len(batch)
            rounds += 1
            await run_bounded(batch, self.concurrency, self._discover_from, self.cancel)
        self.cancel.raise_if_cancelled()
        logger.info("Discovery finished: %d pages in %d rounds", len(self._discovered), rounds)
        return self.discovered

    async def _discover_from(self, url: str) -> None:
        if self._on_visit is not None:
            self._on_visit(url, len(self._discovered))
        try:
            page = await self.fetcher.fetch(url, self.cancel)
            if page is None:
                return
            links = extract_links(page, self.scope)
        except ScrapeCancelled:
            raise
        except Exception as exc:
            logger.warning("Discovery failed for %s: %s", url, exc)
            return
        new = sum(1 for link in links if self.add(link))
        if new:
            logger.debug("%s: %d new links", url, new)
