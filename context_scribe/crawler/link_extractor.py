# context_scribe/crawler/link_extractor.py
"""
Link extraction for ContextScribe discovery.
"""
from __future__ import annotations

from typing import List
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from context_scribe.crawler.models import PageData
from context_scribe.utils import canonicalize, in_scope


def extract_links(page: PageData, scope: str) -> List[str]:
    """
    Extract canonical in-scope links from PageData content.

    Hrefs are resolved against the page URL; mailto:, javascript:, other
    schemes and out-of-scope targets are ignored. Order of first appearance
    is kept and duplicates within the page are dropped.
    """
    soup = BeautifulSoup(page.content, "html.parser")
    links: List[str] = []
    seen: set[str] = set()
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.startswith(("mailto:", "javascript:", "tel:")):
            continue
        try:
            absolute = urljoin(page.url, raw)
        except ValueError:
            continue
        canonical = canonicalize(absolute)
        if canonical is None or not in_scope(canonical, scope) or canonical in seen:
            continue
        seen.add(canonical)
        links.append(canonical)
    return links
