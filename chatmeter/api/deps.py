"""
Shared service instances for the routers.
Tests replace them through ``app.dependency_overrides``.
"""

from typing import Optional

from ..config import settings
from ..chat import ChatClientRegistry, ExchangeMode, RemoteModelClient
from ..llm import providers_from_settings
from ..relay import RelayService
from ..storage import create_chat_store

_chat_registry: Optional[ChatClientRegistry] = None
_relay_service: Optional[RelayService] = None


def get_chat_registry() -> ChatClientRegistry:
    """
    Get the global chat client registry, creating it on first use.

    Returns:
        ChatClientRegistry backed by the configured chat store and relay
    """
    global _chat_registry
    if _chat_registry is None:
        remote = RemoteModelClient(settings.relay_url, timeout=settings.relay_timeout)
        _chat_registry = ChatClientRegistry(
            create_chat_store(settings),
            remote,
            mode=ExchangeMode(settings.exchange_mode),
            default_model=settings.default_model,
        )
    return _chat_registry


def get_relay_service() -> RelayService:
    """Get the global relay service (one provider per configured key)."""
    global _relay_service
    if _relay_service is None:
        _relay_service = RelayService(providers_from_settings(settings), default_model=settings.default_model)
    return _relay_service
