"""context_scribe.crawler: discovery, fetching and bounded concurrency."""

from context_scribe.crawler.cancellation import CancelToken, ScrapeCancelled
from context_scribe.crawler.executor import run_bounded
from context_scribe.crawler.frontier import Frontier

__all__ = ["CancelToken", "ScrapeCancelled", "run_bounded", "Frontier"]
