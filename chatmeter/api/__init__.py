"""API module."""

from .chat import router as chat_router
from .sessions import router as sessions_router
from .relay import router as relay_router

__all__ = ['chat_router', 'sessions_router', 'relay_router']
