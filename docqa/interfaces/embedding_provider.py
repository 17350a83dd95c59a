"""Abstract base class for text-embedding service providers.

Implementations may wrap OpenAI ``text-embedding-3-small``, Nomic
``nomic-embed-text`` (local via Ollama), or any other embedding backend.
Ingestion calls :meth:`IEmbeddingProvider.embed_single` concurrently for
every chunk of a batch, so implementations must tolerate overlapping calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider: text-embedding-3-small (requires API key)
#   NomicEmbeddingProvider:  nomic-embed-text via Ollama (local)
# Located in: docqa/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and chat.

    The same provider must embed both chunks and questions so that stored
    vectors and query vectors share one space.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        docqa.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Raises
        ------
        docqa.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``),
        ``768`` (Nomic ``nomic-embed-text``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
