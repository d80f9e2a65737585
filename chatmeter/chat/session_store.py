"""
Session Store - the signed-in principal's sessions and the active pointer.

Structural operations (create, delete) are store-first: nothing changes
locally unless the durable write succeeded. In-flight exchange updates
arrive through ``show_session`` / ``commit_session`` and are applied
locally right away.
"""

import logging
import uuid
from typing import Callable, List, Optional

from ..models.chat import AIModel, ChatSession, Principal
from ..models.records import SessionRow
from ..storage.interface import ChatStore, ChatStoreError
from .notices import Notifier

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Owns the ordered session list (most recently updated first), the
    active session, the active model and the derived total cost.
    Every change replaces whole objects and then notifies listeners.
    """

    def __init__(
        self,
        chat_store: ChatStore,
        notifier: Optional[Notifier] = None,
        default_model: str = AIModel.GEMINI.value,
    ):
        self.chat_store = chat_store
        self.notifier = notifier or Notifier()
        self.principal: Optional[Principal] = None
        self.default_model = default_model
        self.current_model = default_model
        self.total_cost = 0.0
        self.is_initialized = False
        self._sessions: List[ChatSession] = []
        self._current: Optional[ChatSession] = None
        self._listeners: List[Callable[["SessionStore"], None]] = []

    @property
    def sessions(self) -> List[ChatSession]:
        return list(self._sessions)

    @property
    def current_session(self) -> Optional[ChatSession]:
        return self._current

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        return next((s for s in self._sessions if s.id == session_id), None)

    def add_listener(self, listener: Callable[["SessionStore"], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[["SessionStore"], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener(self)

    def _set_sessions(self, sessions: List[ChatSession]) -> None:
        self._sessions = sessions
        self.total_cost = sum(s.total_cost for s in sessions)

    def reset(self) -> None:
        """Forget everything (signed out)."""
        self.principal = None
        self._set_sessions([])
        self._current = None
        self._changed()

    async def load(self, principal: Optional[Principal]) -> None:
        """
        Load all sessions of ``principal`` with their messages.

        A principal without sessions gets a fresh one. Without a principal
        the store is emptied and no session is created.
        """
        if principal is None:
            self.reset()
            self.is_initialized = True
            return

        self.principal = principal
        try:
            rows = await self.chat_store.list_sessions(principal.id)
        except ChatStoreError as e:
            logger.error(f"Error fetching chat history for {principal.id}: {e}")
            self.notifier.error("Error fetching chat history")
            self._set_sessions([])
            self._current = None
            self.is_initialized = True
            self._changed()
            return

        sessions = []
        for row in rows:
            try:
                message_rows = await self.chat_store.list_messages(row.id)
            except ChatStoreError as e:
                logger.error(f"Error fetching messages for session {row.id}: {e}")
                continue
            sessions.append(row.to_session([m.to_message() for m in message_rows]))

        self._set_sessions(sessions)
        self._current = sessions[0] if sessions else None
        logger.info(
            f"Loaded {len(sessions)} sessions",
            extra={"extra_fields": {"user_id": principal.id, "session_count": len(sessions)}}
        )
        self._changed()

        if not sessions:
            await self.create_session()
        self.is_initialized = True

    async def create_session(self, model: Optional[str] = None) -> Optional[ChatSession]:
        """
        Create, persist and activate a new empty session.

        Returns:
            The new session, or None when the durable write failed
        """
        if self.principal is None:
            self.notifier.error("You must be logged in to create a new chat")
            return None

        session = ChatSession(id=str(uuid.uuid4()), model=model or self.current_model)
        try:
            await self.chat_store.insert_session(SessionRow.from_session(session, self.principal.id))
        except ChatStoreError as e:
            logger.error(f"Error creating new chat: {e}")
            self.notifier.error("Error creating new chat")
            return None

        self._set_sessions([session, *self._sessions])
        self._current = session
        self._changed()
        return session

    def select_session(self, session_id: str) -> bool:
        """Activate a session and its model. Unknown ids are ignored."""
        session = self.get_session(session_id)
        if session is None:
            return False
        self._current = session
        self.current_model = self._selectable_model(session.model)
        self._changed()
        return True

    def _selectable_model(self, model: str) -> str:
        if model in {m.value for m in AIModel}:
            return model
        logger.warning(f"Session model {model!r} is not selectable, using {self.default_model}")
        return self.default_model

    def set_current_model(self, model: str) -> None:
        self.current_model = AIModel(model).value
        self._changed()

    async def delete_session(self, session_id: str) -> bool:
        """
        Delete a session durably, then locally.

        If it was active, the most recent remaining session becomes active,
        or a new session is created when none remain.
        """
        if self.principal is None:
            return False

        try:
            await self.chat_store.delete_session(session_id)
        except ChatStoreError as e:
            logger.error(f"Error deleting chat {session_id}: {e}")
            self.notifier.error("Error deleting chat")
            return False

        remaining = [s for s in self._sessions if s.id != session_id]
        self._set_sessions(remaining)

        if self._current is None or self._current.id == session_id:
            self._current = remaining[0] if remaining else None
        self._changed()

        if not remaining:
            await self.create_session()

        self.notifier.success("Chat deleted")
        return True

    def show_session(self, session: ChatSession) -> None:
        """In-flight update: replace the active session only."""
        if self._current is not None and self._current.id == session.id:
            self._current = session
            self._changed()

    def commit_session(self, session: ChatSession) -> None:
        """Final update: replace the session in the list and, if active, the pointer."""
        self._set_sessions([session if s.id == session.id else s for s in self._sessions])
        if self._current is not None and self._current.id == session.id:
            self._current = session
        self._changed()
