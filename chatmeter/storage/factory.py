"""
Chat Store Factory - Creates the configured durable store.
"""

from typing import Any

from .interface import ChatStore
from .local_storage import LocalChatStore
from .supabase_storage import SupabaseChatStore


def create_chat_store(config: Any) -> ChatStore:
    """
    Create a chat store instance based on configuration.

    Args:
        config: Settings object (storage_type, local_storage_path, supabase_*)

    Returns:
        ChatStore instance
    """
    if config.storage_type == "local":
        return LocalChatStore(config.local_storage_path)

    elif config.storage_type == "supabase":
        if not config.supabase_url or not config.supabase_key:
            raise ValueError("Supabase storage requires SUPABASE_URL and SUPABASE_KEY")
        return SupabaseChatStore(url=config.supabase_url, api_key=config.supabase_key)

    else:
        raise ValueError(f"Unsupported storage type: {config.storage_type}")
