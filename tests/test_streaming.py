"""
Unit tests for the SSE stream decoder.
"""

import pytest

from chatmeter.chat.streaming import (
    StreamDecoder, StartEvent, ChunkEvent, DoneEvent, ErrorEvent,
    decode_stream, encode_event, parse_event,
)


PAYLOAD = (
    encode_event("start", {"model": "gemini"})
    + encode_event("chunk", {"content": "Hi"})
    + encode_event("chunk", {"content": " thère 👋"})
    + encode_event("done", {"tokens": 12, "cost": 0.002, "model": "gemini"})
).encode("utf-8")

EXPECTED = [
    StartEvent(model="gemini"),
    ChunkEvent(content="Hi"),
    ChunkEvent(content=" thère 👋"),
    DoneEvent(tokens=12, cost=0.002, model="gemini"),
]


def decode_all(*pieces):
    decoder = StreamDecoder()
    events = []
    for piece in pieces:
        events.extend(decoder.feed(piece))
    events.extend(decoder.close())
    return events


class TestStreamDecoder:
    """Tests for StreamDecoder."""

    def test_single_read(self):
        assert decode_all(PAYLOAD) == EXPECTED

    def test_split_at_every_offset(self):
        for i in range(len(PAYLOAD) + 1):
            assert decode_all(PAYLOAD[:i], PAYLOAD[i:]) == EXPECTED, f"split at {i}"

    def test_byte_by_byte(self):
        assert decode_all(*[PAYLOAD[i:i + 1] for i in range(len(PAYLOAD))]) == EXPECTED

    def test_feed_returns_only_complete_blocks(self):
        decoder = StreamDecoder()
        assert decoder.feed(b'event: chunk\ndata: {"content": "a"}') == []
        assert decoder.feed(b"\n\n") == [ChunkEvent(content="a")]

    def test_crlf_line_endings(self):
        data = PAYLOAD.replace(b"\n", b"\r\n")
        assert decode_all(data) == EXPECTED
        for i in range(len(data) + 1):
            assert decode_all(data[:i], data[i:]) == EXPECTED, f"split at {i}"

    def test_unknown_event_is_ignored(self):
        data = b'event: ping\ndata: {}\n\nevent: chunk\ndata: {"content": "x"}\n\n'
        assert decode_all(data) == [ChunkEvent(content="x")]

    def test_malformed_data_is_skipped(self):
        data = b'event: chunk\ndata: {not json\n\nevent: chunk\ndata: {"content": "ok"}\n\n'
        assert decode_all(data) == [ChunkEvent(content="ok")]

    def test_invalid_numeric_fields_are_skipped(self):
        data = (
            encode_event("chunk", {"content": "Hi"})
            + encode_event("done", {"tokens": "n/a", "cost": 0.1})
            + encode_event("chunk", {"content": "!"})
        ).encode("utf-8")
        assert StreamDecoder().feed(data) == [ChunkEvent(content="Hi"), ChunkEvent(content="!")]

    def test_non_object_data_is_skipped(self):
        assert decode_all(b'event: chunk\ndata: [1, 2]\n\n') == []

    def test_comments_and_blank_blocks(self):
        data = b': keep-alive\n\n\n\nevent: error\ndata: {"error": "boom"}\n\n'
        assert decode_all(data) == [ErrorEvent(error="boom")]

    def test_block_without_data_is_ignored(self):
        assert decode_all(b"event: chunk\n\n") == []

    def test_multiline_data_is_joined(self):
        data = b'event: chunk\ndata: {"content":\ndata: "joined"}\n\n'
        assert decode_all(data) == [ChunkEvent(content="joined")]

    def test_trailing_block_flushed_on_close(self):
        decoder = StreamDecoder()
        assert decoder.feed(b'event: done\ndata: {"tokens": 3, "cost": 0.1}') == []
        assert decoder.close() == [DoneEvent(tokens=3, cost=0.1)]

    def test_multibyte_split(self):
        data = encode_event("chunk", {"content": "日本"}).encode("utf-8")
        cut = data.index("日".encode("utf-8")) + 1
        assert decode_all(data[:cut], data[cut:]) == [ChunkEvent(content="日本")]


class TestParseEvent:
    """Tests for parse_event."""

    def test_done_defaults(self):
        assert parse_event("done", {}) == DoneEvent(tokens=0, cost=0.0, model="")

    def test_error_default_message(self):
        assert parse_event("error", {}) == ErrorEvent(error="Unknown error")

    def test_done_with_non_numeric_tokens(self):
        with pytest.raises(ValueError):
            parse_event("done", {"tokens": "n/a"})

    def test_unknown_type(self):
        assert parse_event("message", {"content": "x"}) is None


class TestDecodeStream:
    """Tests for decode_stream."""

    @pytest.mark.asyncio
    async def test_decodes_async_chunks(self):
        async def chunks():
            for i in range(0, len(PAYLOAD), 7):
                yield PAYLOAD[i:i + 7]

        events = [event async for event in decode_stream(chunks())]
        assert events == EXPECTED

    @pytest.mark.asyncio
    async def test_closes_source_when_stopped_early(self):
        closed = []

        async def chunks():
            try:
                yield PAYLOAD
                yield PAYLOAD
            finally:
                closed.append(True)

        stream = decode_stream(chunks())
        assert await stream.__anext__() == StartEvent(model="gemini")
        await stream.aclose()
        assert closed == [True]
