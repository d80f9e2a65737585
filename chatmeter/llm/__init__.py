"""LLM module - provides unified interface for LLM API providers."""

from .base import LLMProvider, LLMMessage, LLMResponse
from .openai_provider import OpenAIProvider
from .gemini_provider import GeminiProvider
from .factory import create_llm_provider, providers_from_settings

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'OpenAIProvider',
    'GeminiProvider',
    'create_llm_provider',
    'providers_from_settings',
]
