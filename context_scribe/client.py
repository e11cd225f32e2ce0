# File: context_scribe/client.py
"""context_scribe.client: consumer of the ``/api/scrape`` protocol (aiohttp)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from aiohttp import ClientResponse, ClientSession, ClientTimeout

from context_scribe.events import (
    CacheHit,
    CompleteEvent,
    ErrorEvent,
    EventStreamDecoder,
    ProgressEvent,
    StoppedEvent,
    is_terminal,
)

__all__ = ["ScrapeClientError", "RemoteResult", "ScrapeClient"]


class ScrapeClientError(RuntimeError):
    """The server rejected the request or the stream ended with an error event."""


@dataclass
class RemoteResult:
    content: Optional[str]
    cache_hit: Optional[CacheHit] = None
    terminal: Optional[ProgressEvent] = None
    scrape_id: Optional[str] = None

    @property
    def stopped(self) -> bool:
        return isinstance(self.terminal, StoppedEvent)


class ScrapeClient:
    """Posts a scrape request and follows the event stream until a terminal event."""

    def __init__(self, base_url: str, connect_timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        # the stream may stay quiet for a long time during cleanup
        self._timeout = ClientTimeout(total=None, connect=connect_timeout)

    async def scrape(
        self,
        url: str,
        force: bool = False,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
    ) -> RemoteResult:
        async with ClientSession(timeout=self._timeout) as session:
            async with session.post(
                f"{self.base_url}/api/scrape", json={"url": url, "force": force}
            ) as resp:
                if resp.status != 200:
                    raise ScrapeClientError(await self._error_message(resp))
                if resp.content_type == "application/json":
                    hit = CacheHit.model_validate(await resp.json())
                    return RemoteResult(content=hit.content, cache_hit=hit)

                result = RemoteResult(content=None, scrape_id=resp.headers.get("X-Scrape-Id"))
                decoder = EventStreamDecoder()
                async for chunk in resp.content.iter_any():
                    for event in decoder.feed(chunk):
                        self._handle(event, result, on_event)
                for event in decoder.close():
                    self._handle(event, result, on_event)

        if isinstance(result.terminal, ErrorEvent):
            raise ScrapeClientError(result.terminal.error)
        if result.terminal is None:
            raise ScrapeClientError("stream ended without a terminal event")
        return result

    async def cancel(self, scrape_id: str) -> bool:
        async with ClientSession(timeout=self._timeout) as session:
            async with session.delete(f"{self.base_url}/api/scrape/{scrape_id}") as resp:
                return resp.status == 204

    @staticmethod
    async def _error_message(resp: ClientResponse) -> str:
        # proxies in front of the server may answer with an HTML error page
        try:
            data = await resp.json(content_type=None)
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("error"), str):
            return data["error"]
        return f"HTTP {resp.status}"

    @staticmethod
    def _handle(
        event: ProgressEvent,
        result: RemoteResult,
        on_event: Optional[Callable[[ProgressEvent], None]],
    ) -> None:
        if on_event is not None:
            on_event(event)
        if is_terminal(event) and result.terminal is None:
            result.terminal = event
            if isinstance(event, (CompleteEvent, StoppedEvent)):
                result.content = event.content
