"""
Chat Store Interface - Abstract base class for the durable chat store.
This interface enables switching between local files, Supabase, etc.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..models.records import SessionRow, MessageRow


class ChatStoreError(Exception):
    """Raised when the durable store rejects or fails an operation."""


class ChatStore(ABC):
    """
    Contract of the remote system of record for sessions and messages.
    Every method raises ChatStoreError on failure.
    """

    @abstractmethod
    async def list_sessions(self, user_id: str) -> List[SessionRow]:
        """
        Fetch all sessions owned by a user.

        Args:
            user_id: Owner id

        Returns:
            List[SessionRow]: Sessions ordered by updated_at, newest first
        """
        pass

    @abstractmethod
    async def list_messages(self, session_id: str) -> List[MessageRow]:
        """
        Fetch the messages of a session.

        Args:
            session_id: Session id

        Returns:
            List[MessageRow]: Messages ordered by timestamp, oldest first
        """
        pass

    @abstractmethod
    async def insert_session(self, row: SessionRow) -> None:
        """Insert one session row."""
        pass

    @abstractmethod
    async def insert_message(self, row: MessageRow) -> None:
        """Insert one message row."""
        pass

    @abstractmethod
    async def update_session(self, session_id: str, fields: Dict[str, Any]) -> None:
        """
        Partially update a session row.

        Args:
            session_id: Session id
            fields: Column values to overwrite (title, model, totals, updated_at)
        """
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Delete a session row together with its messages."""
        pass
