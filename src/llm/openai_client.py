"""OpenAI/Azure OpenAI client wrapper."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from openai import AsyncOpenAI, OpenAIError

from calls.errors import CompletionError
from config.settings import Settings
from llm.base import BaseLLMClient

LOGGER = logging.getLogger(__name__)


def build_async_openai(settings: Settings, *, api_key: str | None = None) -> AsyncOpenAI:
    """Create an AsyncOpenAI client without retries or request timeouts."""

    key = api_key or settings.openai_api_key
    if not key:
        raise ValueError("OPENAI_API_KEY must be configured.")
    return AsyncOpenAI(
        api_key=key,
        base_url=settings.openai_base_url or None,
        max_retries=0,
        timeout=None,
    )


class OpenAIClient(BaseLLMClient):
    """Wrapper for the OpenAI Chat Completion API."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        self._client = client or build_async_openai(settings, api_key=settings.llm_api_key)
        self._model = settings.llm_model

    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.7,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=list(messages),
                temperature=temperature,
            )
        except OpenAIError as exc:
            raise CompletionError(f"OpenAI chat completion failed: {exc}") from exc

        if not response.choices:
            raise CompletionError("LLM response contains no choices.")
        return response.choices[0].message.content or ""
