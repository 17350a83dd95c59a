"""Ollama streaming LLM provider adapter.

Wraps a local Ollama server via its OpenAI-compatible ``/v1`` endpoint, so
the same ``openai`` client and streaming loop as the OpenAI adapter apply.
Works fully offline with no API costs.

Setup: install Ollama (https://ollama.ai), run ``ollama pull llama3.1`` and
set ``OLLAMA_BASE_URL=http://localhost:11434``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing

import openai
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.providers.llm.openai_provider import stream_openai_chat

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server (``llama3.1`` by default)."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            api_key="ollama",
        )
        self._model = settings.ollama_chat_model or "llama3.1"

    async def stream_chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> AsyncIterator[str]:
        logger.info("ollama_stream_started", model=self._model, messages=len(messages))
        fragments = stream_openai_chat(
            self._client,
            model=self._model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            provider_name=self.get_provider_name(),
        )
        async with aclosing(fragments):
            async for fragment in fragments:
                yield fragment

    def is_available(self) -> bool:
        """Return ``True`` when a base URL is configured; reachability is checked lazily."""
        return bool(self._base_url)

    def get_provider_name(self) -> str:
        return "ollama"
