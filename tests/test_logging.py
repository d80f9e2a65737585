"""
Unit tests for logging helpers and user notices.
"""

import json
import logging

from chatmeter.chat.notices import Notifier
from chatmeter.core.logging_config import (
    ContextLogger, JSONFormatter, filter_sensitive_data, truncate_large_data,
)


def make_record(extra_fields=None):
    record = logging.LogRecord("chatmeter.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    if extra_fields is not None:
        record.extra_fields = extra_fields
    return record


class TestJSONFormatter:

    def test_formats_message_and_fields(self):
        line = JSONFormatter().format(make_record({"session_id": "s-1", "tokens": 12}))
        data = json.loads(line)
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["session_id"] == "s-1"
        assert data["tokens"] == 12

    def test_masks_credentials(self):
        data = json.loads(JSONFormatter().format(make_record({"api_key": "sk-1", "total_tokens": 3})))
        assert data["api_key"] == "***FILTERED***"
        assert data["total_tokens"] == 3


class TestFilterSensitiveData:

    def test_nested(self):
        data = {"headers": {"Authorization": "Bearer x"}, "items": [{"password": "p"}], "content": "hi"}
        assert filter_sensitive_data(data) == {
            "headers": {"Authorization": "***FILTERED***"},
            "items": [{"password": "***FILTERED***"}],
            "content": "hi",
        }

    def test_truncate(self):
        assert truncate_large_data("abc", max_length=5) == "abc"
        assert truncate_large_data("abcdef", max_length=3).startswith("abc... (truncated, total length: 6)")


class TestContextLogger:

    def test_merges_context(self):
        log = ContextLogger(logging.getLogger("chatmeter.test"), {"session_id": "s-1"})
        _, kwargs = log.process("msg", {"extra": {"extra_fields": {"tokens": 3}}})
        assert kwargs["extra"]["extra_fields"] == {"session_id": "s-1", "tokens": 3}

    def test_call_fields_win(self):
        log = ContextLogger(logging.getLogger("chatmeter.test"), {"model": "gemini"})
        _, kwargs = log.process("msg", {"extra": {"extra_fields": {"model": "openai"}}})
        assert kwargs["extra"]["extra_fields"]["model"] == "openai"


class TestNotifier:

    def test_notify_and_drain(self):
        notifier = Notifier()
        seen = []
        notifier.add_listener(seen.append)

        notifier.error("Error creating new chat")
        notifier.success("Chat deleted")

        assert [(n.level, n.message) for n in notifier.pending] == [
            ("error", "Error creating new chat"), ("success", "Chat deleted"),
        ]
        assert len(seen) == 2
        assert len(notifier.drain()) == 2
        assert notifier.pending == []
