"""
Shared test fixtures and configuration.
"""

import pytest
import os
import tempfile
from unittest.mock import AsyncMock

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("STORAGE_TYPE", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "chatmeter_test_data"))
os.environ.setdefault("LOG_FILE_ENABLED", "false")

from chatmeter.models import Principal
from chatmeter.storage import ChatStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def principal():
    return Principal(id="user-1", email="user@example.com")


@pytest.fixture
def chat_store():
    """A ChatStore whose every operation succeeds and returns nothing."""
    store = AsyncMock(spec=ChatStore)
    store.list_sessions.return_value = []
    store.list_messages.return_value = []
    return store


def sse(*blocks):
    """Join (event, json-text) pairs into one SSE payload."""
    return "".join(f"event: {event}\ndata: {data}\n\n" for event, data in blocks).encode("utf-8")


def byte_stream(*chunks):
    """Async generator over raw byte chunks, as RemoteModelClient.stream yields them."""
    async def gen(*args, **kwargs):
        for chunk in chunks:
            yield chunk
    return gen
