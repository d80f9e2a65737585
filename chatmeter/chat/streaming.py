"""
Streaming Decoder - turns the relay's SSE byte stream into typed events.

Wire format, one block per event, blocks separated by a blank line:

    event: chunk
    data: {"content": "Hel"}

Network reads are not aligned with blocks, so the decoder keeps a buffer
across ``feed`` calls and only emits complete blocks.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartEvent:
    """Server began answering (model is informational)."""
    model: str = ""


@dataclass(frozen=True)
class ChunkEvent:
    """Incremental text fragment."""
    content: str


@dataclass(frozen=True)
class DoneEvent:
    """Terminal success event with server-side accounting."""
    tokens: int
    cost: float
    model: str = ""


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal failure reported by the server."""
    error: str


StreamEvent = Union[StartEvent, ChunkEvent, DoneEvent, ErrorEvent]

TERMINAL_EVENTS = (DoneEvent, ErrorEvent)


def parse_event(event_type: str, payload: dict) -> Optional[StreamEvent]:
    """
    Map a decoded (type, payload) pair to an event; None for unknown types.

    Raises:
        ValueError, TypeError, OverflowError: When a numeric field does not convert
    """
    if event_type == "start":
        return StartEvent(model=str(payload.get("model") or ""))
    if event_type == "chunk":
        return ChunkEvent(content=str(payload.get("content") or ""))
    if event_type == "done":
        return DoneEvent(
            tokens=int(payload.get("tokens") or 0),
            cost=float(payload.get("cost") or 0.0),
            model=str(payload.get("model") or ""),
        )
    if event_type == "error":
        return ErrorEvent(error=str(payload.get("error") or "Unknown error"))
    return None


def encode_event(event_type: str, payload: dict) -> str:
    """Frame one event block (the inverse of the decoder)."""
    return f"event: {event_type}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


class StreamDecoder:
    """
    Incremental SSE decoder.

    ``feed`` accepts arbitrary byte slices (even ones splitting a UTF-8
    sequence) and returns the events completed by that slice. ``close``
    flushes a trailing block that was not followed by a blank line.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pending_cr = False

    def _append(self, text: str) -> None:
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        # A trailing CR may be the first half of a CRLF split across reads
        if text.endswith("\r"):
            text = text[:-1]
            self._pending_cr = True
        self._buffer += text.replace("\r\n", "\n").replace("\r", "\n")

    def feed(self, data: bytes) -> List[StreamEvent]:
        self._append(self._decoder.decode(data))

        events = []
        while "\n\n" in self._buffer:
            block, self._buffer = self._buffer.split("\n\n", 1)
            event = self._decode_block(block)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> List[StreamEvent]:
        self._append(self._decoder.decode(b"", final=True))
        if self._pending_cr:
            self._buffer += "\n"
            self._pending_cr = False

        events = []
        for block in self._buffer.split("\n\n"):
            event = self._decode_block(block)
            if event is not None:
                events.append(event)
        self._buffer = ""
        return events

    def _decode_block(self, block: str) -> Optional[StreamEvent]:
        if not block.strip():
            return None

        event_type = "message"
        data_lines = []
        for line in block.split("\n"):
            if line.startswith(":"):
                continue  # comment / keep-alive
            field, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if field == "event":
                event_type = value.strip()
            elif field == "data":
                data_lines.append(value)

        if not data_lines:
            return None

        try:
            payload = json.loads("\n".join(data_lines))
        except json.JSONDecodeError:
            logger.warning(f"Skipping malformed stream block: event={event_type}")
            return None
        if not isinstance(payload, dict):
            logger.warning(f"Skipping non-object payload: event={event_type}")
            return None

        try:
            event = parse_event(event_type, payload)
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Skipping stream block with invalid fields: event={event_type}")
            return None
        if event is None:
            logger.debug(f"Ignoring unrecognized stream event: {event_type}")
        return event


async def decode_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """Decode an async byte stream into events, flushing at transport close."""
    decoder = StreamDecoder()
    try:
        async for chunk in chunks:
            for event in decoder.feed(chunk):
                yield event
        for event in decoder.close():
            yield event
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()
