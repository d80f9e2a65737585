"""
Google Gemini LLM Provider.
Uses the Generative Language REST API (generateContent / streamGenerateContent).
"""

import httpx
import json
import logging
import time
from typing import Optional, List, Dict, Any, AsyncGenerator

from .base import LLMProvider, LLMMessage, LLMResponse

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """
    Provider for Gemini models. Gemini calls the assistant role "model"
    and takes the system prompt separately from the turns.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        default_temperature: float = 0.7,
        default_max_tokens: int = 2048,
        timeout: float = 120.0,
        top_p: float = 0.8,
        top_k: int = 40,
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens, timeout)
        self.top_p = top_p
        self.top_k = top_k

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user" if m.role == "user" else "model",
                "parts": [{"text": m.content}],
            }
            for m in messages if m.role != "system"
        ]

    def _build_payload(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": self._format_messages(messages),
            "generationConfig": {
                "temperature": temperature if temperature is not None else self.default_temperature,
                "topP": self.top_p,
                "topK": self.top_k,
                "maxOutputTokens": max_tokens or self.default_max_tokens,
            },
        }
        system_text = "\n\n".join(m.content for m in messages if m.role == "system")
        if system_text:
            payload["systemInstruction"] = {"parts": [{"text": system_text}]}
        return payload

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        start_time = time.time()
        model = kwargs.get("model", self.model)
        url = f"{self.base_url}/models/{model}:generateContent"
        payload = self._build_payload(messages, temperature, max_tokens)
        self._log_start(logger, "call", model, messages)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=self._get_headers())
                resp.raise_for_status()
                data = resp.json()

            content = self._extract_text(data)
            if not content:
                raise ValueError("Failed to extract content from Gemini response")

            usage_meta = data.get("usageMetadata", {})
            usage = {
                "prompt_tokens": usage_meta.get("promptTokenCount", 0),
                "completion_tokens": usage_meta.get("candidatesTokenCount", 0),
                "total_tokens": usage_meta.get("totalTokenCount", 0),
            }

            logger.info(
                f"LLM API call completed",
                extra={"extra_fields": {
                    "provider": self.name,
                    "model": model,
                    **usage,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )

            return LLMResponse(content=content, model=model, usage=usage, raw=data)
        except Exception as e:
            logger.error(
                f"LLM API call failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "provider": self.name,
                    "model": model,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise

    async def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncGenerator[str, None]:
        start_time = time.time()
        model = kwargs.get("model", self.model)
        url = f"{self.base_url}/models/{model}:streamGenerateContent"
        payload = self._build_payload(messages, temperature, max_tokens)
        self._log_start(logger, "stream", model, messages)

        content_length = 0
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream(
                    'POST', url, params={"alt": "sse"}, json=payload, headers=self._get_headers()
                ) as response:
                    response.raise_for_status()

                    async for line in response.aiter_lines():
                        if not line.startswith("data: "):
                            continue
                        try:
                            chunk = json.loads(line[6:])
                        except json.JSONDecodeError:
                            continue

                        text = self._extract_text(chunk)
                        if text:
                            content_length += len(text)
                            yield text

            logger.info(
                f"LLM API stream completed",
                extra={"extra_fields": {
                    "provider": self.name,
                    "model": model,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "content_length": content_length,
                }}
            )

        except Exception as e:
            logger.error(
                f"LLM API stream failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "provider": self.name,
                    "model": model,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise
