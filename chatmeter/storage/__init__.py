"""Storage module - durable store interface and implementations."""

from .interface import ChatStore, ChatStoreError
from .local_storage import LocalChatStore
from .supabase_storage import SupabaseChatStore
from .factory import create_chat_store

__all__ = ['ChatStore', 'ChatStoreError', 'LocalChatStore', 'SupabaseChatStore', 'create_chat_store']
