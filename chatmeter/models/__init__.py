"""Models module."""

from .chat import (
    AIModel, Principal, Message, ChatSession, SessionList, Sender,
    NEW_CHAT_TITLE, derive_title, utcnow,
)
from .records import SessionRow, MessageRow, row_payload

__all__ = [
    'AIModel', 'Principal', 'Message', 'ChatSession', 'SessionList', 'Sender',
    'NEW_CHAT_TITLE', 'derive_title', 'utcnow',
    'SessionRow', 'MessageRow', 'row_payload',
]
