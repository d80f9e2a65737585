"""
Remote Model Client - calls the chat relay on behalf of the client core.
"""

import httpx
import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

logger = logging.getLogger(__name__)


class RemoteModelError(Exception):
    """Transport failure, non-2xx status or malformed reply from the relay."""


@dataclass
class ModelReply:
    """Complete answer of a blocking relay call."""
    content: str
    tokens: int = 0
    cost: float = 0.0
    model: str = ""
    error: Optional[str] = None


class RemoteModelClient:
    """
    HTTP client for the relay endpoint.

    No retries: a retried exchange could bill the user twice. ``timeout``
    applies to connecting and to every read, so a stalled stream fails too.
    """

    def __init__(self, url: str, timeout: float = 60.0, api_key: Optional[str] = None):
        self.url = url
        self.timeout = timeout
        self.api_key = api_key

    def _get_headers(self, stream: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if stream:
            headers["Accept"] = "text/event-stream"
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _payload(
        turns: List[Dict[str, str]], user_id: str, session_id: str, model: str
    ) -> Dict[str, Any]:
        return {
            "messages": turns,
            "user_id": user_id,
            "session_id": session_id,
            "model": model,
        }

    async def complete(
        self,
        turns: List[Dict[str, str]],
        user_id: str,
        session_id: str,
        model: str,
    ) -> ModelReply:
        """
        Send the conversation and wait for the full answer.

        Args:
            turns: Ordered ``{"role", "content"}`` dicts
            user_id: Caller id
            session_id: Session the turns belong to
            model: Active model identifier

        Returns:
            ModelReply with content and relay-side accounting
        """
        start_time = time.time()
        payload = self._payload(turns, user_id, session_id, model)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.url, json=payload, headers=self._get_headers(stream=False)
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise RemoteModelError(f"HTTP error! status: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RemoteModelError(f"Network error: {e}") from e
        except ValueError as e:
            raise RemoteModelError("Malformed reply from model relay") from e

        if not isinstance(data, dict) or "content" not in data:
            raise RemoteModelError("Malformed reply from model relay")

        try:
            reply = ModelReply(
                content=str(data.get("content") or ""),
                tokens=int(data.get("tokens") or 0),
                cost=float(data.get("cost") or 0.0),
                model=str(data.get("model") or model),
                error=str(data["error"]) if data.get("error") else None,
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise RemoteModelError("Malformed reply from model relay") from e

        logger.info(
            f"Relay call completed",
            extra={"extra_fields": {
                "session_id": session_id,
                "model": data.get("model", model),
                "tokens": data.get("tokens"),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            }}
        )
        return reply

    async def stream(
        self,
        turns: List[Dict[str, str]],
        user_id: str,
        session_id: str,
        model: str,
    ) -> AsyncIterator[bytes]:
        """
        Send the conversation and yield the raw SSE bytes as they arrive.

        Raises:
            RemoteModelError: On non-2xx status or transport failure,
                including failures in the middle of the stream
        """
        payload = self._payload(turns, user_id, session_id, model)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream(
                    "POST", self.url, json=payload, headers=self._get_headers(stream=True)
                ) as response:
                    if response.status_code >= 400:
                        raise RemoteModelError(f"HTTP error! status: {response.status_code}")
                    async for chunk in response.aiter_bytes():
                        yield chunk
        except httpx.HTTPError as e:
            raise RemoteModelError(f"Network error: {e}") from e
