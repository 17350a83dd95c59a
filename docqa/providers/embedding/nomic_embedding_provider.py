"""``nomic-embed-text`` served by a local Ollama, through its ``/v1`` API.

No key is needed; availability means the Ollama server answers.
"""

from __future__ import annotations

import httpx
import openai

from docqa.config.settings import Settings
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.providers.embedding.openai_embedding_provider import embed_openai_batches


class NomicEmbeddingProvider(IEmbeddingProvider):
    """768-dimensional local embeddings."""

    _MODEL = "nomic-embed-text"
    _MAX_INPUTS = 512

    def __init__(self, settings: Settings) -> None:
        self._ollama_url = settings.ollama_base_url.rstrip("/")
        # The SDK insists on a key; Ollama never checks it.
        self._client = openai.AsyncOpenAI(base_url=f"{self._ollama_url}/v1", api_key="ollama")

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await embed_openai_batches(
            self._client,
            model=self._MODEL,
            texts=texts,
            max_inputs=self._MAX_INPUTS,
            provider_name=self.get_provider_name(),
        )

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    def get_dimension(self) -> int:
        return 768

    def get_provider_name(self) -> str:
        return "nomic_embedding"

    def is_available(self) -> bool:
        if not self._ollama_url:
            return False
        try:
            return httpx.get(f"{self._ollama_url}/api/tags", timeout=3.0).status_code == 200
        except httpx.HTTPError:
            return False
