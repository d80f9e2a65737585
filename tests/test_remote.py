"""
Unit tests for the relay HTTP client.
"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from chatmeter.chat.remote import RemoteModelClient, RemoteModelError

TURNS = [{"role": "user", "content": "Hi"}]


def mock_async_client(mock_client, mock_instance):
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance


class TestComplete:
    """Tests for RemoteModelClient.complete."""

    @pytest.mark.asyncio
    async def test_success(self):
        remote = RemoteModelClient("http://relay/chat", timeout=5)
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "content": "Hello", "tokens": 20, "cost": 0.01, "model": "gemini-2.0-flash",
        }
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = mock_response
            mock_async_client(mock_client, mock_instance)

            reply = await remote.complete(TURNS, "user-1", "s-1", "gemini")

            assert reply.content == "Hello"
            assert reply.tokens == 20
            assert reply.model == "gemini-2.0-flash"
            assert reply.error is None
            mock_client.assert_called_once_with(timeout=5)
            kwargs = mock_instance.post.await_args.kwargs
            assert kwargs["json"] == {
                "messages": TURNS, "user_id": "user-1", "session_id": "s-1", "model": "gemini",
            }
            assert "Accept" not in kwargs["headers"]

    @pytest.mark.asyncio
    async def test_error_reply(self):
        remote = RemoteModelClient("http://relay/chat")
        mock_response = MagicMock()
        mock_response.json.return_value = {"error": "API key not configured", "content": "Error: API key not configured"}
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = mock_response
            mock_async_client(mock_client, mock_instance)

            reply = await remote.complete(TURNS, "user-1", "s-1", "gemini")

            assert reply.error == "API key not configured"
            assert reply.model == "gemini"

    @pytest.mark.asyncio
    async def test_http_status_error(self):
        remote = RemoteModelClient("http://relay/chat")
        request = httpx.Request("POST", "http://relay/chat")
        response = httpx.Response(502, request=request)

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = response
            mock_async_client(mock_client, mock_instance)

            with pytest.raises(RemoteModelError, match="HTTP error! status: 502"):
                await remote.complete(TURNS, "user-1", "s-1", "gemini")

    @pytest.mark.asyncio
    async def test_network_error(self):
        remote = RemoteModelClient("http://relay/chat")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.side_effect = httpx.ConnectError("refused")
            mock_async_client(mock_client, mock_instance)

            with pytest.raises(RemoteModelError, match="Network error"):
                await remote.complete(TURNS, "user-1", "s-1", "gemini")

    @pytest.mark.asyncio
    async def test_malformed_reply(self):
        remote = RemoteModelClient("http://relay/chat")
        mock_response = MagicMock()
        mock_response.json.return_value = ["not", "an", "object"]
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = mock_response
            mock_async_client(mock_client, mock_instance)

            with pytest.raises(RemoteModelError, match="Malformed"):
                await remote.complete(TURNS, "user-1", "s-1", "gemini")

    @pytest.mark.asyncio
    async def test_non_numeric_usage(self):
        remote = RemoteModelClient("http://relay/chat")
        mock_response = MagicMock()
        mock_response.json.return_value = {"content": "Hello", "tokens": "n/a", "cost": {"usd": 1}}
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = mock_response
            mock_async_client(mock_client, mock_instance)

            with pytest.raises(RemoteModelError, match="Malformed"):
                await remote.complete(TURNS, "user-1", "s-1", "gemini")


class TestStream:
    """Tests for RemoteModelClient.stream against an in-process transport."""

    @staticmethod
    def _client_factory(handler):
        real_client = httpx.AsyncClient

        def factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        return factory

    @pytest.mark.asyncio
    async def test_yields_body_bytes(self):
        body = b'event: chunk\ndata: {"content": "Hi"}\n\n'
        seen = {}

        def handler(request):
            seen["accept"] = request.headers.get("accept")
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        remote = RemoteModelClient("http://relay/chat", api_key="anon-key")
        with patch("httpx.AsyncClient", self._client_factory(handler)):
            chunks = [chunk async for chunk in remote.stream(TURNS, "user-1", "s-1", "gemini")]

        assert b"".join(chunks) == body
        assert seen["accept"] == "text/event-stream"
        assert seen["auth"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_error_status(self):
        remote = RemoteModelClient("http://relay/chat")
        with patch("httpx.AsyncClient", self._client_factory(lambda request: httpx.Response(500))):
            with pytest.raises(RemoteModelError, match="HTTP error! status: 500"):
                async for _ in remote.stream(TURNS, "user-1", "s-1", "gemini"):
                    pass

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        remote = RemoteModelClient("http://relay/chat")
        with patch("httpx.AsyncClient", self._client_factory(handler)):
            with pytest.raises(RemoteModelError, match="Network error"):
                async for _ in remote.stream(TURNS, "user-1", "s-1", "gemini"):
                    pass
