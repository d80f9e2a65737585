"""
Unit tests for the chat store backends.
"""

import httpx
import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from chatmeter.models import ChatSession, Message
from chatmeter.models.records import SessionRow, MessageRow
from chatmeter.storage import (
    ChatStoreError, LocalChatStore, SupabaseChatStore, create_chat_store,
)


def make_session_row(session_id="s-1", user_id="user-1", day=1):
    session = ChatSession(
        id=session_id,
        created_at=datetime(2024, 1, day, tzinfo=timezone.utc),
        updated_at=datetime(2024, 1, day, tzinfo=timezone.utc),
    )
    return SessionRow.from_session(session, user_id)


def make_message_row(message_id, session_id="s-1", minute=0, sender="user"):
    message = Message(
        id=message_id,
        content=f"text {message_id}",
        sender=sender,
        model="gemini",
        timestamp=datetime(2024, 1, 1, 12, minute, tzinfo=timezone.utc),
    )
    return MessageRow.from_message(message, session_id)


@pytest.fixture
def local_store(tmp_path):
    return LocalChatStore(str(tmp_path))


class TestLocalChatStore:
    """Tests for LocalChatStore."""

    @pytest.mark.asyncio
    async def test_list_sessions_filters_and_orders(self, local_store):
        await local_store.insert_session(make_session_row("old", day=1))
        await local_store.insert_session(make_session_row("new", day=3))
        await local_store.insert_session(make_session_row("other", user_id="user-2", day=2))

        rows = await local_store.list_sessions("user-1")

        assert [r.id for r in rows] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_messages_roundtrip_in_order(self, local_store):
        await local_store.insert_session(make_session_row())
        await local_store.insert_message(make_message_row("m2", minute=5, sender="assistant"))
        await local_store.insert_message(make_message_row("m1", minute=1))

        rows = await local_store.list_messages("s-1")

        assert [r.id for r in rows] == ["m1", "m2"]
        assert rows[1].to_message().sender == "assistant"

    @pytest.mark.asyncio
    async def test_list_messages_of_unknown_session(self, local_store):
        assert await local_store.list_messages("missing") == []

    @pytest.mark.asyncio
    async def test_duplicate_session_rejected(self, local_store):
        await local_store.insert_session(make_session_row())
        with pytest.raises(ChatStoreError, match="already exists"):
            await local_store.insert_session(make_session_row())

    @pytest.mark.asyncio
    async def test_message_requires_session(self, local_store):
        with pytest.raises(ChatStoreError, match="not found"):
            await local_store.insert_message(make_message_row("m1"))

    @pytest.mark.asyncio
    async def test_update_session(self, local_store):
        await local_store.insert_session(make_session_row())
        updated_at = datetime(2024, 2, 1, tzinfo=timezone.utc)

        await local_store.update_session("s-1", {
            "title": "Hello...", "total_tokens": 12, "total_cost": 0.002, "updated_at": updated_at,
        })

        row = (await local_store.list_sessions("user-1"))[0]
        assert row.title == "Hello..."
        assert row.total_tokens == 12
        assert row.updated_at == updated_at

    @pytest.mark.asyncio
    async def test_invalid_update_rejected(self, local_store):
        await local_store.insert_session(make_session_row())
        with pytest.raises(ChatStoreError, match="Invalid update"):
            await local_store.update_session("s-1", {"total_tokens": "many"})
        assert (await local_store.list_sessions("user-1"))[0].total_tokens == 0

    @pytest.mark.asyncio
    async def test_update_unknown_session(self, local_store):
        with pytest.raises(ChatStoreError):
            await local_store.update_session("missing", {"title": "x"})

    @pytest.mark.asyncio
    async def test_delete_removes_messages(self, local_store):
        await local_store.insert_session(make_session_row())
        await local_store.insert_message(make_message_row("m1"))

        await local_store.delete_session("s-1")

        assert await local_store.list_sessions("user-1") == []
        assert await local_store.list_messages("s-1") == []
        with pytest.raises(ChatStoreError):
            await local_store.delete_session("s-1")

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, local_store):
        with pytest.raises(ChatStoreError, match="path traversal"):
            await local_store.list_messages("../../etc/passwd")


class TestSupabaseChatStore:
    """Tests for SupabaseChatStore (PostgREST over httpx)."""

    @staticmethod
    def _mock_response(data=None, content=b"[]"):
        response = MagicMock()
        response.json.return_value = data
        response.content = content
        response.raise_for_status = MagicMock()
        return response

    @pytest.mark.asyncio
    async def test_list_sessions(self):
        store = SupabaseChatStore("https://proj.supabase.co/", "anon-key", access_token="user-jwt")
        row = make_session_row().model_dump(mode="json")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.request.return_value = self._mock_response([row])
            mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
            mock_instance.__aexit__ = AsyncMock(return_value=False)
            mock_client.return_value = mock_instance

            rows = await store.list_sessions("user-1")

            assert [r.id for r in rows] == ["s-1"]
            args = mock_instance.request.await_args
            assert args.args == ("GET", "https://proj.supabase.co/rest/v1/chat_sessions")
            assert args.kwargs["params"]["user_id"] == "eq.user-1"
            assert args.kwargs["params"]["order"] == "updated_at.desc"
            assert args.kwargs["headers"]["apikey"] == "anon-key"
            assert args.kwargs["headers"]["Authorization"] == "Bearer user-jwt"

    @pytest.mark.asyncio
    async def test_update_serializes_datetimes(self):
        store = SupabaseChatStore("https://proj.supabase.co", "anon-key")
        updated_at = datetime(2024, 2, 1, tzinfo=timezone.utc)

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.request.return_value = self._mock_response(content=b"")
            mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
            mock_instance.__aexit__ = AsyncMock(return_value=False)
            mock_client.return_value = mock_instance

            await store.update_session("s-1", {"total_tokens": 3, "updated_at": updated_at})

            args = mock_instance.request.await_args
            assert args.args[0] == "PATCH"
            assert args.kwargs["params"] == {"id": "eq.s-1"}
            assert args.kwargs["json"] == {"total_tokens": 3, "updated_at": updated_at.isoformat()}

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        store = SupabaseChatStore("https://proj.supabase.co", "anon-key")
        request = httpx.Request("POST", "https://proj.supabase.co/rest/v1/chat_messages")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.request.return_value = httpx.Response(409, request=request, text="conflict")
            mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
            mock_instance.__aexit__ = AsyncMock(return_value=False)
            mock_client.return_value = mock_instance

            with pytest.raises(ChatStoreError, match="409"):
                await store.insert_message(make_message_row("m1"))

    @pytest.mark.asyncio
    async def test_malformed_rows_raise(self):
        store = SupabaseChatStore("https://proj.supabase.co", "anon-key")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.request.return_value = self._mock_response([{"id": "m1"}])
            mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
            mock_instance.__aexit__ = AsyncMock(return_value=False)
            mock_client.return_value = mock_instance

            with pytest.raises(ChatStoreError, match="Malformed"):
                await store.list_messages("s-1")


class TestChatStoreFactory:
    """Tests for create_chat_store."""

    def test_local(self, tmp_path):
        config = SimpleNamespace(storage_type="local", local_storage_path=str(tmp_path))
        assert isinstance(create_chat_store(config), LocalChatStore)

    def test_supabase(self):
        config = SimpleNamespace(storage_type="supabase", supabase_url="https://x.supabase.co", supabase_key="k")
        assert isinstance(create_chat_store(config), SupabaseChatStore)

    def test_supabase_requires_credentials(self):
        config = SimpleNamespace(storage_type="supabase", supabase_url=None, supabase_key=None)
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            create_chat_store(config)

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_chat_store(SimpleNamespace(storage_type="redis"))
