"""
Row models for the durable store tables ``chat_sessions`` and ``chat_messages``.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel

from .chat import ChatSession, Message


class SessionRow(BaseModel):
    """One row of ``chat_sessions``."""
    id: str
    user_id: str
    title: str
    model: str
    total_tokens: int = 0
    total_cost: float = 0.0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: ChatSession, user_id: str) -> "SessionRow":
        return cls(
            id=session.id,
            user_id=user_id,
            title=session.title,
            model=session.model,
            total_tokens=session.total_tokens,
            total_cost=session.total_cost,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )

    def to_session(self, messages: list) -> ChatSession:
        return ChatSession(
            id=self.id,
            title=self.title,
            messages=messages,
            created_at=self.created_at,
            updated_at=self.updated_at,
            model=self.model,
            total_tokens=self.total_tokens or 0,
            total_cost=float(self.total_cost or 0),
        )


class MessageRow(BaseModel):
    """One row of ``chat_messages``."""
    id: str
    session_id: str
    content: str
    sender: str
    model: str
    tokens: Optional[int] = None
    cost: Optional[float] = None
    timestamp: datetime

    @classmethod
    def from_message(cls, message: Message, session_id: str) -> "MessageRow":
        return cls(
            id=message.id,
            session_id=session_id,
            content=message.content,
            sender=message.sender,
            model=message.model,
            tokens=message.tokens,
            cost=message.cost,
            timestamp=message.timestamp,
        )

    def to_message(self) -> Message:
        return Message(
            id=self.id,
            content=self.content,
            sender=self.sender,
            model=self.model,
            timestamp=self.timestamp,
            tokens=self.tokens,
            cost=self.cost,
        )


def row_payload(row: BaseModel) -> Dict[str, Any]:
    """JSON-ready dict of a row (datetimes as ISO strings)."""
    return row.model_dump(mode="json")
