"""Public interface definitions for every external collaborator.

The ingestion and chat pipelines reach text extraction, embedding, streaming
generation and storage only through the abstract base classes defined here.
Concrete adapters live in ``docqa/providers/`` and are injected by
``docqa/main.py`` (or by tests, which inject fakes).

CONCRETE PROVIDER MAP:
    Interface              →  Concrete implementations (in docqa/providers/)
    ─────────────────────────────────────────────────────────────────────
    ITextExtractor         →  PyMuPDFTextExtractor
    IEmbeddingProvider     →  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    ILLMProvider           →  OpenAILLMProvider, AnthropicLLMProvider,
                              OllamaLLMProvider
    IRecordStore           →  SQLiteDocumentStore
    IVectorStoreProvider   →  SQLiteDocumentStore
    IFileStore             →  LocalFileStore
"""

from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.file_store import IFileStore
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.interfaces.record_store import IRecordStore
from docqa.interfaces.text_extractor import ITextExtractor
from docqa.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "IFileStore",
    "ILLMProvider",
    "IRecordStore",
    "ITextExtractor",
    "IVectorStoreProvider",
]
