"""
Chat Models - sessions, messages and the signed-in principal.

Sessions and messages are immutable values: every change produces a new
object through ``model_copy(update=...)`` so observers never see a
half-updated session.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Sender = Literal["user", "assistant"]

NEW_CHAT_TITLE = "New Chat"
TITLE_LENGTH = 30


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AIModel(str, Enum):
    """Models a session can be bound to."""
    OPENAI = "openai"
    GEMINI = "gemini"


class Principal(BaseModel):
    """The signed-in user as supplied by the identity provider."""
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None


class Message(BaseModel):
    """One chat message. Token/cost are only set on finalized assistant messages."""
    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    sender: Sender
    model: str
    timestamp: datetime = Field(default_factory=utcnow)
    tokens: Optional[int] = None
    cost: Optional[float] = None

    def append_content(self, text: str) -> "Message":
        return self.model_copy(update={"content": self.content + text})


class ChatSession(BaseModel):
    """A conversation thread with its running token/cost totals."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = NEW_CHAT_TITLE
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    model: str = AIModel.GEMINI.value
    total_tokens: int = 0
    total_cost: float = 0.0

    def with_message(self, message: Message) -> "ChatSession":
        """Return a copy with ``message`` appended and ``updated_at`` bumped."""
        return self.model_copy(update={
            "messages": [*self.messages, message],
            "updated_at": utcnow(),
        })

    def with_replaced_message(self, message: Message) -> "ChatSession":
        """Return a copy where the message sharing ``message.id`` is swapped out."""
        return self.model_copy(update={
            "messages": [message if m.id == message.id else m for m in self.messages],
        })


def derive_title(first_message: str) -> str:
    """Session title taken from the opening user message."""
    return first_message[:TITLE_LENGTH] + "..."


class SessionList(BaseModel):
    """Sessions of one principal as returned to the UI."""
    sessions: List[ChatSession]
    current_session_id: Optional[str] = None
    current_model: str
    total_cost: float = 0.0
