"""
Local Filesystem Chat Store.
Stores sessions and message logs as JSON documents under a base directory.
"""

import json
import logging
import aiofiles
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import ValidationError

from .interface import ChatStore, ChatStoreError
from ..models.records import SessionRow, MessageRow, row_payload

logger = logging.getLogger(__name__)


class LocalChatStore(ChatStore):
    """
    Local filesystem implementation of the chat store.

    Layout:
        sessions/<session_id>.json   one session row
        messages/<session_id>.json   list of message rows
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, path: str) -> Path:
        """Convert relative path to full absolute path within base directory."""
        full_path = (self.base_dir / path).resolve()

        if not full_path.is_relative_to(self.base_dir):
            raise ChatStoreError(f"Invalid path: {path} - path traversal detected")

        return full_path

    @staticmethod
    def _parse(model, data: Dict[str, Any]):
        try:
            return model(**data)
        except ValidationError as e:
            raise ChatStoreError(f"Malformed {model.__name__}: {e}") from e

    def _session_path(self, session_id: str) -> Path:
        return self._get_full_path(f"sessions/{session_id}.json")

    def _messages_path(self, session_id: str) -> Path:
        return self._get_full_path(f"messages/{session_id}.json")

    async def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                return json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as e:
            raise ChatStoreError(f"Failed to read {path.name}: {e}") from e

    async def _write_json(self, path: Path, data: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(data, indent=2, ensure_ascii=False))
        except OSError as e:
            raise ChatStoreError(f"Failed to write {path.name}: {e}") from e

    async def list_sessions(self, user_id: str) -> List[SessionRow]:
        sessions_dir = self._get_full_path("sessions")
        if not sessions_dir.exists():
            return []

        rows = []
        for file_path in sessions_dir.glob("*.json"):
            data = await self._read_json(file_path)
            if data and data.get("user_id") == user_id:
                rows.append(self._parse(SessionRow, data))

        rows.sort(key=lambda r: r.updated_at, reverse=True)
        return rows

    async def list_messages(self, session_id: str) -> List[MessageRow]:
        data = await self._read_json(self._messages_path(session_id)) or []
        rows = [self._parse(MessageRow, item) for item in data]
        rows.sort(key=lambda r: r.timestamp)
        return rows

    async def insert_session(self, row: SessionRow) -> None:
        path = self._session_path(row.id)
        if path.exists():
            raise ChatStoreError(f"Session {row.id} already exists")
        await self._write_json(path, row_payload(row))
        logger.debug(f"Inserted session {row.id} for user {row.user_id}")

    async def insert_message(self, row: MessageRow) -> None:
        if not self._session_path(row.session_id).exists():
            raise ChatStoreError(f"Session {row.session_id} not found")

        path = self._messages_path(row.session_id)
        messages = await self._read_json(path) or []
        if any(m.get("id") == row.id for m in messages):
            raise ChatStoreError(f"Message {row.id} already exists")
        messages.append(row_payload(row))
        await self._write_json(path, messages)

    async def update_session(self, session_id: str, fields: Dict[str, Any]) -> None:
        path = self._session_path(session_id)
        data = await self._read_json(path)
        if data is None:
            raise ChatStoreError(f"Session {session_id} not found")

        for key, value in fields.items():
            data[key] = value.isoformat() if isinstance(value, datetime) else value
        # Validate before writing so a bad field never lands on disk
        try:
            row = SessionRow(**data)
        except ValidationError as e:
            raise ChatStoreError(f"Invalid update for session {session_id}: {e}") from e
        await self._write_json(path, row_payload(row))

    async def delete_session(self, session_id: str) -> None:
        path = self._session_path(session_id)
        if not path.exists():
            raise ChatStoreError(f"Session {session_id} not found")
        try:
            path.unlink()
            messages_path = self._messages_path(session_id)
            if messages_path.exists():
                messages_path.unlink()
        except OSError as e:
            raise ChatStoreError(f"Failed to delete session {session_id}: {e}") from e
        logger.debug(f"Deleted session {session_id}")
