# === FILE: context_scribe/parser/html_parser.py ===
"""Readable-content extraction and HTML → markdown conversion.

Two black-box capabilities used by the extraction pipeline:

* :func:`extract_article`: the "main article" region of a page and its
  title, via ``readability-lxml`` (a port of Mozilla's Readability).
* :func:`html_to_markdown`: markdown with ATX headings and fenced code
  blocks, via ``markdownify``.

Both are plain functions over strings so they can be swapped or faked in
tests without touching the pipeline.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from markdownify import markdownify
from readability import Document
from readability.readability import Unparseable

__all__: Sequence[str] = ("Article", "extract_article", "html_to_markdown")

_NO_TITLE = "[no-title]"


@dataclass(slots=True)
class Article:
    """Readable part of a page."""

    title: Optional[str]
    content: str


def extract_article(html: str, url: str) -> Optional[Article]:
    """Return the main article of *html*, or ``None`` when nothing readable is left."""
    if not html.strip():
        return None
    try:
        doc = Document(html, url=url)
        content = doc.summary(html_partial=True)
        title = (doc.title() or "").strip()
    except Unparseable:
        return None
    if not BeautifulSoup(content, "html.parser").get_text(strip=True):
        return None
    if title == _NO_TITLE:
        title = ""
    return Article(title=title or None, content=content)


def html_to_markdown(html: str) -> str:
    return markdownify(html, heading_style="ATX", bullets="-").strip()
