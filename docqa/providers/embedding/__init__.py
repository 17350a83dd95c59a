"""Embedding provider adapters.

Two concrete implementations of IEmbeddingProvider
(docqa/interfaces/embedding_provider.py):
    - OpenAIEmbeddingProvider — text-embedding-3-small (or an OpenAI-compatible API)
    - NomicEmbeddingProvider  — nomic-embed-text via a local Ollama server
"""

from docqa.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from docqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["NomicEmbeddingProvider", "OpenAIEmbeddingProvider"]
