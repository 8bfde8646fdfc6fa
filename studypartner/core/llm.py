import json
import re
from typing import Any

import httpx
from loguru import logger

from studypartner.core.errors import ExternalServiceError
from studypartner.core.settings import settings

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class LLMService:
    """Client for an OpenAI-compatible ``/chat/completions`` endpoint.

    One request per call, no retry: a non-2xx status, a transport error, or a
    reply that is not a JSON object raises ``ExternalServiceError``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        self.http = http
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        body = {
            "model": self.model,
            "messages": messages,
            "temperature": settings.OPENAI_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or settings.OPENAI_MAX_TOKENS,
        }
        try:
            response = await self.http.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as e:
            logger.error(f"[LLM] Transport error: {e}")
            raise ExternalServiceError(f"AI request failed: {e}")

        if response.is_error:
            logger.error(f"[LLM] {response.status_code}: {response.text[:300]}")
            raise ExternalServiceError(
                f"AI API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise ExternalServiceError("AI API returned an unexpected payload")

    async def chat_json(self, messages: list[dict[str, str]], **kwargs) -> dict[str, Any]:
        content = await self.chat_completion(messages, **kwargs)
        clean = _FENCE_RE.sub("", (content or "").strip()).strip()
        try:
            data = json.loads(clean)
        except json.JSONDecodeError as e:
            logger.warning(f"[LLM] Unparseable reply: {e}; raw={clean[:200]!r}")
            raise ExternalServiceError("Failed to parse AI response")
        if not isinstance(data, dict):
            raise ExternalServiceError("AI response is not a JSON object")
        return data
