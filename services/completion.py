"""OpenAI-compatible text completion client used for language-model forecasts."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from services.errors import CompletionFailure
from settings import get_settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant specialized in time series extrapolation."


class OpenAICompletionClient:
    """Calls a ``/chat/completions`` endpoint and returns the first message text."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-3.5-turbo",
        max_tokens: int = 400,
        temperature: float = 0.2,
        timeout: float = 20.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise ValueError("An API key is required for completions.")
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout, connect=5.0),
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def __call__(self, prompt: str) -> str:
        return self.complete(prompt)

    def complete(self, prompt: str) -> str:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        try:
            response = self._client.post("/chat/completions", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text.strip()
            logger.warning(
                "Completion request rejected",
                extra={"status_code": exc.response.status_code},
            )
            raise CompletionFailure(
                f"Completion call failed: {exc.response.status_code} {detail}".rstrip()
            ) from exc
        except httpx.HTTPError as exc:
            raise CompletionFailure(f"Completion call failed: {exc}") from exc

        try:
            payload = response.json()
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise CompletionFailure("Completion response has no message content.") from exc

        if not isinstance(content, str):
            raise CompletionFailure("Completion response has no message content.")
        return content

    def close(self) -> None:
        self._client.close()


@lru_cache
def build_default_completion() -> Optional[OpenAICompletionClient]:
    """Return a configured client, or ``None`` when no API key is set."""
    settings = get_settings()
    if not settings.openai_api_key:
        return None
    return OpenAICompletionClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        max_tokens=settings.completion_max_tokens,
        timeout=settings.completion_timeout_seconds,
    )
