"""
LLM Provider Factory - Creates the provider behind each selectable model.
"""

from typing import Any, Dict, Optional
from .base import LLMProvider
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider

_PROVIDERS = {
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}


def create_llm_provider(
    provider: str = "gemini",
    api_key: str = "",
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    **kwargs
) -> Optional[LLMProvider]:
    """
    Create an LLM provider instance based on configuration.

    Args:
        provider: Provider name ("gemini" or "openai")
        api_key: API key for the provider
        model: Model name (uses provider default if not specified)
        base_url: Custom base URL (uses provider default if not specified)
        **kwargs: Additional provider-specific parameters

    Returns:
        LLMProvider instance, or None if api_key is not configured
    """
    provider_cls = _PROVIDERS.get(provider)
    if provider_cls is None:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    if not api_key:
        return None

    params: Dict[str, Any] = {"api_key": api_key}
    if model:
        params["model"] = model
    if base_url:
        params["base_url"] = base_url
    params.update(kwargs)
    return provider_cls(**params)


def providers_from_settings(config: Any) -> Dict[str, LLMProvider]:
    """
    Build the provider for every selectable model that has a key configured.

    Returns:
        Mapping of model identifier ("gemini", "openai") to provider
    """
    providers: Dict[str, LLMProvider] = {}
    for name in _PROVIDERS:
        provider = create_llm_provider(
            provider=name,
            api_key=getattr(config, f"{name}_api_key") or "",
            model=getattr(config, f"{name}_model"),
            base_url=getattr(config, f"{name}_base_url"),
            timeout=config.llm_timeout,
        )
        if provider is not None:
            providers[name] = provider
    return providers
