"""
Relay Service - forwards a conversation to the provider behind the
selected model and reports the answer with usage accounting.
"""

import httpx
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional

from ..chat.streaming import encode_event
from ..llm.base import LLMMessage, LLMProvider
from .pricing import relay_usage

logger = logging.getLogger(__name__)


def _error_text(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"Model API error: {exc.response.status_code}"
    return str(exc) or exc.__class__.__name__


class RelayService:
    """
    Answers relay requests either as one JSON object or as framed events
    (start, chunk*, done | error).
    """

    def __init__(self, providers: Dict[str, LLMProvider], default_model: str = "gemini"):
        self.providers = providers
        self.default_model = default_model

    def _resolve(self, model: Optional[str]) -> tuple:
        name = model or self.default_model
        return name, self.providers.get(name)

    @staticmethod
    def _to_llm_messages(messages: List[Dict[str, str]]) -> List[LLMMessage]:
        return [
            LLMMessage.text("user" if m.get("role") == "user" else "assistant", m.get("content", ""))
            for m in messages
        ]

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Produce the full answer.

        Returns:
            {"content", "tokens", "cost", "model"} on success,
            {"error", "content"} on failure
        """
        name, provider = self._resolve(model)
        logger.info(
            f"Processing request for session {session_id} from user {user_id}",
            extra={"extra_fields": {"model": name, "message_count": len(messages)}}
        )
        if provider is None:
            logger.error(f"No API key configured for model {name}")
            return {"error": "API key not configured", "content": "Error: API key not configured"}

        try:
            response = await provider.chat_completion(self._to_llm_messages(messages))
        except Exception as e:
            logger.error(f"Provider error for session {session_id}: {e}", exc_info=True)
            error = _error_text(e)
            return {"error": error, "content": f"Error: {error}. Please try again later."}

        usage = relay_usage(messages, response.content, name)
        logger.info(f"Completed response for session {session_id}: {usage.tokens} tokens, ${usage.cost:.6f} cost")
        return {
            "content": response.content,
            "tokens": usage.tokens,
            "cost": usage.cost,
            "model": response.model or provider.model,
        }

    async def stream(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> AsyncGenerator[str, None]:
        """Yield framed SSE event blocks for one streamed answer."""
        name, provider = self._resolve(model)
        logger.info(
            f"Processing stream request for session {session_id} from user {user_id}",
            extra={"extra_fields": {"model": name, "message_count": len(messages)}}
        )
        if provider is None:
            logger.error(f"No API key configured for model {name}")
            yield encode_event("error", {"error": "API key not configured"})
            return

        yield encode_event("start", {"model": provider.model})

        content = ""
        try:
            async for text in provider.chat_completion_stream(self._to_llm_messages(messages)):
                content += text
                yield encode_event("chunk", {"content": text})
        except Exception as e:
            logger.error(f"Provider stream error for session {session_id}: {e}", exc_info=True)
            yield encode_event("error", {"error": _error_text(e)})
            return

        usage = relay_usage(messages, content, name)
        logger.info(f"Completed stream for session {session_id}: {usage.tokens} tokens, ${usage.cost:.6f} cost")
        yield encode_event("done", {"tokens": usage.tokens, "cost": usage.cost, "model": provider.model})
