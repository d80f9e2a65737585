"""
Supabase Chat Store.
Talks to the hosted Postgres tables through Supabase's PostgREST endpoint.
"""

import httpx
import logging
import time
from typing import Any, Dict, List, Optional
from pydantic import ValidationError

from .interface import ChatStore, ChatStoreError
from ..models.records import SessionRow, MessageRow, row_payload

logger = logging.getLogger(__name__)


def _parse_rows(model, data) -> list:
    try:
        return [model(**row) for row in data or []]
    except ValidationError as e:
        raise ChatStoreError(f"Malformed {model.__name__} rows: {e}") from e


class SupabaseChatStore(ChatStore):
    """
    Chat store backed by the ``chat_sessions`` / ``chat_messages`` tables.
    Row level security scopes reads to the caller when ``access_token``
    is a user JWT; the anon/service key goes in ``apikey``.
    """

    SESSIONS_TABLE = "chat_sessions"
    MESSAGES_TABLE = "chat_messages"

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.api_key = api_key
        self.access_token = access_token or api_key
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        url = f"{self.base_url}/{table}"
        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(
                    method, url, params=params, json=json_body, headers=self._get_headers()
                )
                resp.raise_for_status()
                data = resp.json() if resp.content else None
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Supabase {method} {table} failed: {e.response.status_code}",
                extra={"extra_fields": {
                    "table": table,
                    "status_code": e.response.status_code,
                    "response": e.response.text[:500],
                }}
            )
            raise ChatStoreError(f"{method} {table} returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Supabase {method} {table} failed: {e}", exc_info=True)
            raise ChatStoreError(f"{method} {table} failed: {e}") from e

        logger.debug(
            f"Supabase {method} {table} completed",
            extra={"extra_fields": {
                "table": table,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            }}
        )
        return data

    async def list_sessions(self, user_id: str) -> List[SessionRow]:
        data = await self._request("GET", self.SESSIONS_TABLE, params={
            "select": "*",
            "user_id": f"eq.{user_id}",
            "order": "updated_at.desc",
        })
        return _parse_rows(SessionRow, data)

    async def list_messages(self, session_id: str) -> List[MessageRow]:
        data = await self._request("GET", self.MESSAGES_TABLE, params={
            "select": "*",
            "session_id": f"eq.{session_id}",
            "order": "timestamp.asc",
        })
        return _parse_rows(MessageRow, data)

    async def insert_session(self, row: SessionRow) -> None:
        await self._request("POST", self.SESSIONS_TABLE, json_body=row_payload(row))

    async def insert_message(self, row: MessageRow) -> None:
        await self._request("POST", self.MESSAGES_TABLE, json_body=row_payload(row))

    async def update_session(self, session_id: str, fields: Dict[str, Any]) -> None:
        body = {
            key: value.isoformat() if hasattr(value, "isoformat") else value
            for key, value in fields.items()
        }
        await self._request(
            "PATCH", self.SESSIONS_TABLE, params={"id": f"eq.{session_id}"}, json_body=body
        )

    async def delete_session(self, session_id: str) -> None:
        # chat_messages.session_id is declared ON DELETE CASCADE
        await self._request("DELETE", self.SESSIONS_TABLE, params={"id": f"eq.{session_id}"})
