# File: context_scribe/events.py
"""context_scribe.events: progress events, their wire framing and an incremental decoder.

Every event is one ``text/event-stream`` record::

    data: {"type": "processing", "processed": 3, "total": 10, "message": "..."}\\n\\n

The consumer side (:class:`EventStreamDecoder`) buffers partial network reads
and only parses complete records; a trailing fragment is kept until the next
read or parsed as a final record when the stream ends.
"""

from __future__ import annotations

import codecs
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from context_scribe.logger import logger

__all__ = [
    "PhaseEvent",
    "DiscoveryEvent",
    "ProcessingEvent",
    "ContentEvent",
    "CompleteEvent",
    "StoppedEvent",
    "ErrorEvent",
    "ProgressEvent",
    "CacheHit",
    "is_terminal",
    "encode_event",
    "parse_record",
    "EventStreamDecoder",
]

Phase = Literal["discovering", "processing", "cleaning"]


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class PhaseEvent(_Event):
    type: Literal["phase"] = "phase"
    phase: Phase
    message: str
    total: Optional[int] = None


class DiscoveryEvent(_Event):
    type: Literal["discovery"] = "discovery"
    discovered: int
    message: str


class ProcessingEvent(_Event):
    type: Literal["processing"] = "processing"
    processed: int
    total: int
    message: str


class ContentEvent(_Event):
    """Legacy incremental content; emitted by nothing in this engine but still decoded."""

    type: Literal["content"] = "content"
    content: str


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"
    content: str


class StoppedEvent(_Event):
    type: Literal["stopped"] = "stopped"
    message: str
    content: Optional[str] = None


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: str


ProgressEvent = Annotated[
    Union[
        PhaseEvent,
        DiscoveryEvent,
        ProcessingEvent,
        ContentEvent,
        CompleteEvent,
        StoppedEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[ProgressEvent] = TypeAdapter(ProgressEvent)


class CacheHit(BaseModel):
    """Single JSON payload answered instead of a stream on a fresh cache entry."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    cache_hit: bool = Field(True, alias="cacheHit")
    last_modified: str = Field(..., alias="lastModified")
    content: str

    def payload(self) -> dict:
        return self.model_dump(by_alias=True)


def is_terminal(event: object) -> bool:
    return isinstance(event, (CompleteEvent, StoppedEvent, ErrorEvent))


def encode_event(event: _Event) -> bytes:
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n".encode("utf-8")


def parse_record(record: str) -> Optional[ProgressEvent]:
    """Parse one complete record; None for records without data or of unknown shape."""
    data_lines = []
    for line in record.split("\n"):
        if line.startswith("data:"):
            value = line[5:]
            data_lines.append(value[1:] if value.startswith(" ") else value)
    if not data_lines:
        return None
    try:
        return _EVENT_ADAPTER.validate_json("\n".join(data_lines))
    except ValidationError as exc:
        logger.warning("Unparseable event record %.80r: %s", record, exc.errors()[0]["msg"])
        return None


class EventStreamDecoder:
    """Incremental decoder for a stream of blank-line separated records."""

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: Union[bytes, str]) -> List[ProgressEvent]:
        """Add a network read; return the events of every record it completed."""
        text = self._utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        *records, self._buffer = self._buffer.split("\n\n")
        return self._parse(records)

    def close(self) -> List[ProgressEvent]:
        """End of stream: a non-empty trailing fragment is parsed as a final record."""
        self._buffer += self._utf8.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        return self._parse([tail]) if tail.strip() else []

    @staticmethod
    def _parse(records: List[str]) -> List[ProgressEvent]:
        events: List[ProgressEvent] = []
        for record in records:
            if not record.strip():
                continue
            event = parse_record(record)
            if event is not None:
                events.append(event)
        return events
