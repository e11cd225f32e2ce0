# context_scribe/crawler/models.py
"""
Data models for the ContextScribe crawler.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class PageData:
    """Holds the canonical URL and HTML markup of a fetched page."""

    url: str
    content: str


@dataclass(slots=True, frozen=True)
class PageChunk:
    """One page's contribution to the consolidated document."""

    source_url: str
    body: str
    title: Optional[str] = None

    def render(self) -> str:
        """Markdown block with a source attribution header."""
        title_header = f"# {self.title}\n\n" if self.title else ""
        return f"\n\n---\n\n## Source: {self.source_url}\n\n{title_header}{self.body}"
