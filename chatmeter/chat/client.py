"""
Chat Client - wires the Session Store, the exchange pipeline and the
notifier together for one signed-in principal.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..models.chat import AIModel, Principal, SessionList
from ..storage.interface import ChatStore
from .notices import Notifier
from .pipeline import ExchangeMode, ExchangeResult, MessageExchangePipeline
from .remote import RemoteModelClient
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class ChatClient:
    """Everything the chat UI talks to."""

    def __init__(
        self,
        chat_store: ChatStore,
        remote: RemoteModelClient,
        mode: ExchangeMode = ExchangeMode.STREAMING,
        default_model: str = AIModel.GEMINI.value,
    ):
        self.notifier = Notifier()
        self.sessions = SessionStore(chat_store, self.notifier, default_model=default_model)
        self.pipeline = MessageExchangePipeline(
            chat_store, remote, notifier=self.notifier, sink=self.sessions, mode=mode
        )

    @property
    def is_processing(self) -> bool:
        return self.pipeline.is_processing

    async def sign_in(self, principal: Optional[Principal]) -> None:
        await self.sessions.load(principal)

    async def send_message(
        self, content: str, mode: Optional[ExchangeMode] = None
    ) -> Optional[ExchangeResult]:
        return await self.pipeline.send_message(
            content,
            principal=self.sessions.principal,
            session=self.sessions.current_session,
            model=self.sessions.current_model,
            mode=mode,
        )

    def snapshot(self) -> SessionList:
        current = self.sessions.current_session
        return SessionList(
            sessions=self.sessions.sessions,
            current_session_id=current.id if current else None,
            current_model=self.sessions.current_model,
            total_cost=self.sessions.total_cost,
        )


class ChatClientRegistry:
    """One loaded ChatClient per principal id."""

    def __init__(
        self,
        chat_store: ChatStore,
        remote: RemoteModelClient,
        mode: ExchangeMode = ExchangeMode.STREAMING,
        default_model: str = AIModel.GEMINI.value,
    ):
        self.chat_store = chat_store
        self.remote = remote
        self.mode = mode
        self.default_model = default_model
        self._clients: Dict[str, ChatClient] = {}
        self._lock = asyncio.Lock()

    async def get(self, principal: Principal) -> ChatClient:
        async with self._lock:
            client = self._clients.get(principal.id)
            if client is None:
                client = ChatClient(
                    self.chat_store, self.remote, mode=self.mode, default_model=self.default_model
                )
                await client.sign_in(principal)
                self._clients[principal.id] = client
                logger.info(f"Chat client created for user {principal.id}")
            return client

    def discard(self, principal_id: str) -> None:
        self._clients.pop(principal_id, None)
