"""OpenAI-compatible streaming LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.  When a
custom ``openai_base_url`` is configured (e.g. TogetherAI, Anyscale,
Fireworks), the client points at that URL instead of the default OpenAI
endpoint.  The Ollama adapter reuses :func:`stream_openai_chat` because
Ollama speaks the same protocol.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing

import openai
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.utils.errors import ConfigurationError, GenerationError

logger = structlog.get_logger(logger_name=__name__)


async def stream_openai_chat(
    client: openai.AsyncOpenAI,
    *,
    model: str,
    messages: list[dict[str, str]],
    temperature: float,
    max_tokens: int,
    provider_name: str,
) -> AsyncIterator[str]:
    """Yield non-empty content deltas from a streaming chat completion.

    The underlying HTTP stream is closed when the generator finishes, fails,
    or is closed early by the consumer.
    """
    try:
        stream = await client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
        )
    except openai.APIError as exc:
        raise GenerationError(
            message=f"{provider_name} API error: {exc}",
            provider_name=provider_name,
        ) from exc

    fragments = 0
    try:
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                fragments += 1
                yield delta
    except openai.APIError as exc:
        raise GenerationError(
            message=f"{provider_name} stream interrupted: {exc}",
            provider_name=provider_name,
        ) from exc
    finally:
        await stream.close()
        logger.debug("llm_stream_closed", provider=provider_name, model=model, fragments=fragments)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    Uses ``gpt-4o`` by default; ``openai_chat_model`` overrides it for
    OpenAI-compatible providers.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        # Read timeout applies between streamed chunks, not to the whole answer.
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(60.0, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        # The SDK rejects an empty key at construction time.
        self._client = openai.AsyncOpenAI(**client_kwargs) if self._api_key else None
        self._model = settings.openai_chat_model or "gpt-4o"
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def stream_chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> AsyncIterator[str]:
        if self._client is None:
            raise ConfigurationError(
                message="OPENAI_API_KEY is not set",
                provider_name=self._provider_label,
            )
        logger.info(
            "openai_stream_started",
            model=self._model,
            provider=self._provider_label,
            messages=len(messages),
        )
        fragments = stream_openai_chat(
            self._client,
            model=self._model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            provider_name=self._provider_label,
        )
        async with aclosing(fragments):
            async for fragment in fragments:
                yield fragment

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return self._client is not None

    def get_provider_name(self) -> str:
        return self._provider_label
