# File: tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Callable, Dict, Tuple, Union

import pytest
import pytest_asyncio
from aiohttp import web

from context_scribe.config import ScribeConfig
from context_scribe.crawler.models import PageData

#: "[METHOD ]path" -> HTML body, or (status, content_type, body), or a handler coroutine
PageSpec = Union[str, Tuple[int, str, str], Callable]


def _article(title: str, *paragraphs: str, links: Tuple[str, ...] = ()) -> str:
    """Small but readable HTML page with an <article> body and optional links."""
    anchors = "".join(f'<li><a href="{href}">{href}</a></li>' for href in links)
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        f"<html><head><title>{title}</title></head><body>"
        f"<nav><ul>{anchors}</ul></nav>"
        f"<article><h1>{title}</h1>{body}</article>"
        "</body></html>"
    )


def build_app(pages: Dict[str, PageSpec]) -> web.Application:
    app = web.Application()
    for route, page in pages.items():
        method, _, path = route.rpartition(" ")
        if callable(page):
            handler = page
        else:
            if isinstance(page, str):
                status, ctype, text = 200, "text/html", page
            else:
                status, ctype, text = page

            async def handler(_request, status=status, ctype=ctype, text=text):
                return web.Response(status=status, text=text, content_type=ctype)

        app.router.add_route(method or "GET", path, handler)
    return app


@pytest_asyncio.fixture
async def serve_site(unused_tcp_port_factory) -> AsyncIterator[Callable]:
    """Factory fixture: ``base = await serve_site({"/": "<html>..."})``."""
    runners = []

    async def _start(pages: Dict[str, PageSpec]) -> str:
        port = unused_tcp_port_factory()
        runner = web.AppRunner(build_app(pages))
        await runner.setup()
        await web.TCPSite(runner, "localhost", port).start()
        runners.append(runner)
        return f"http://localhost:{port}"

    yield _start
    for runner in runners:
        await runner.cleanup()


@pytest.fixture()
def make_article() -> Callable[..., str]:
    return _article


@pytest.fixture()
def basic_config(tmp_path) -> ScribeConfig:
    """Return a valid ScribeConfig with an isolated cache directory."""
    return ScribeConfig(
        concurrency=4,
        timeout=5.0,
        user_agent="TestAgent/1.0",
        cache_dir=tmp_path / "cache",
        cleanup="none",
    )


@pytest.fixture()
def mock_page_data() -> PageData:
    """Provide a simple PageData instance with HTML content."""
    html = (
        '<html><body><a href="/docs/link1">L1</a><a href="http://external.com">X</a>'
        '<a href="/blog/post">B</a><a href="guide?x=1#top">G</a></body></html>'
    )
    return PageData(url="http://example.com/docs/", content=html)
