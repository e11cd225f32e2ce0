# File: context_scribe/server.py
"""context_scribe.server: HTTP surface of the engine (aiohttp).

Routes
------
``POST /api/scrape``
    Body ``{"url": str, "force": bool}``. Answers ``400`` on a bad URL, a
    single JSON :class:`~context_scribe.events.CacheHit` on a fresh cache
    entry, otherwise a ``text/event-stream`` of progress events. The stream
    id is returned in the ``X-Scrape-Id`` header.
``DELETE /api/scrape/{scrape_id}``
    Raises the cancellation token of a running stream.
"""

from __future__ import annotations

import uuid
from contextlib import aclosing
from typing import Dict

from aiohttp import web

from context_scribe.config import ScribeConfig
from context_scribe.crawler.cancellation import CancelToken
from context_scribe.engine import UNEXPECTED_ERROR, ScrapeEngine, ScrapeRequest
from context_scribe.events import encode_event
from context_scribe.logger import logger

__all__ = ["create_app", "run_server", "ENGINE_KEY", "RUNS_KEY"]

ENGINE_KEY: web.AppKey[ScrapeEngine] = web.AppKey("engine", ScrapeEngine)
RUNS_KEY: web.AppKey[Dict[str, CancelToken]] = web.AppKey("runs", dict)

SCRAPE_ID_HEADER = "X-Scrape-Id"


def _json_error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def handle_scrape(request: web.Request) -> web.StreamResponse:
    try:
        body = await request.json()
        scrape = ScrapeRequest.model_validate(body)
    except ValueError as exc:
        # covers JSONDecodeError and pydantic ValidationError
        logger.info("Rejected scrape request: %s", exc)
        return _json_error("Invalid URL provided", 400)

    engine = request.app[ENGINE_KEY]
    try:
        hit = engine.lookup_cache(scrape)
    except Exception:
        logger.exception("Cache lookup failed for %s", scrape.url)
        return _json_error(UNEXPECTED_ERROR, 500)
    if hit is not None:
        return web.json_response(hit.payload())

    scrape_id = uuid.uuid4().hex
    cancel = CancelToken()
    runs = request.app[RUNS_KEY]
    runs[scrape_id] = cancel

    response = web.StreamResponse(
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            SCRAPE_ID_HEADER: scrape_id,
        }
    )
    try:
        await response.prepare(request)
        async with aclosing(engine.stream(scrape, cancel)) as events:
            async for event in events:
                try:
                    await response.write(encode_event(event))
                except ConnectionResetError:
                    logger.info("Client disconnected from %s", scrape_id)
                    cancel.cancel("client disconnected")
                    break
    finally:
        runs.pop(scrape_id, None)
    try:
        await response.write_eof()
    except ConnectionResetError:
        logger.debug("Stream %s closed before EOF", scrape_id)
    return response


async def handle_cancel(request: web.Request) -> web.Response:
    scrape_id = request.match_info["scrape_id"]
    cancel = request.app[RUNS_KEY].get(scrape_id)
    if cancel is None:
        return _json_error("Unknown scrape id", 404)
    cancel.cancel("cancel requested")
    logger.info("Cancel requested for %s", scrape_id)
    return web.Response(status=204)


def create_app(config: ScribeConfig, engine: ScrapeEngine | None = None) -> web.Application:
    app = web.Application()
    app[ENGINE_KEY] = engine or ScrapeEngine(config)
    app[RUNS_KEY] = {}
    app.router.add_post("/api/scrape", handle_scrape)
    app.router.add_delete("/api/scrape/{scrape_id}", handle_cancel)
    return app


def run_server(config: ScribeConfig) -> None:
    logger.info("Serving on http://%s:%s", config.host, config.port)
    web.run_app(create_app(config), host=config.host, port=config.port, print=None)
