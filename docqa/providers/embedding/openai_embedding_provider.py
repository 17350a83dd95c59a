"""Embeddings through the OpenAI ``/embeddings`` API.

:func:`embed_openai_batches` holds the request loop shared by every
OpenAI-shaped endpoint (OpenAI itself, hosted compatibles such as TogetherAI,
and Ollama's ``/v1`` shim); the provider classes only differ in how they
build the client and which model they ask for.
"""

from __future__ import annotations

import openai
import structlog

from docqa.config.settings import Settings
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.utils.errors import ConfigurationError, EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

# Known output widths; unknown models are assumed to match the default.
_DIMENSIONS_BY_MODEL: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}


async def embed_openai_batches(
    client: openai.AsyncOpenAI,
    *,
    model: str,
    texts: list[str],
    max_inputs: int,
    provider_name: str,
) -> list[list[float]]:
    """Embed *texts* with at most *max_inputs* per request.

    Vectors come back in input order.  API failures and short responses
    both surface as :class:`EmbeddingError` tagged with *provider_name*.
    """
    vectors: list[list[float]] = []
    for offset in range(0, len(texts), max_inputs):
        window = texts[offset : offset + max_inputs]
        try:
            response = await client.embeddings.create(input=window, model=model)
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"embedding request to {provider_name} failed: {exc}",
                provider_name=provider_name,
            ) from exc
        vectors.extend(item.embedding for item in response.data)
        logger.debug(
            "embedding_request",
            provider=provider_name,
            model=model,
            inputs=len(window),
            tokens=response.usage.total_tokens if response.usage else None,
        )

    if len(vectors) != len(texts):
        raise EmbeddingError(
            message=f"{provider_name} returned {len(vectors)} vectors for {len(texts)} inputs",
            provider_name=provider_name,
        )
    return vectors


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """OpenAI embeddings, or any hosted endpoint that speaks the same API.

    Setting ``openai_base_url`` re-points the client and relabels the
    provider ``openai-compatible_embedding``; ``openai_embedding_model``
    overrides the model in either case.
    """

    _MAX_INPUTS = 2048

    def __init__(self, settings: Settings) -> None:
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._name = "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        self._client: openai.AsyncOpenAI | None = None
        # The SDK rejects an empty key at construction time.
        if settings.openai_api_key:
            self._client = openai.AsyncOpenAI(
                api_key=settings.openai_api_key, base_url=settings.openai_base_url or None
            )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if self._client is None:
            raise ConfigurationError(message="OPENAI_API_KEY is not set", provider_name=self._name)
        return await embed_openai_batches(
            self._client,
            model=self._model,
            texts=texts,
            max_inputs=self._MAX_INPUTS,
            provider_name=self._name,
        )

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    def get_dimension(self) -> int:
        return _DIMENSIONS_BY_MODEL.get(self._model, _DIMENSIONS_BY_MODEL[_DEFAULT_MODEL])

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._client is not None
