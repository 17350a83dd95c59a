"""Exception hierarchy for docqa.

Every application error derives from :class:`DocQAError`, which carries a
``message`` and an optional ``provider_name`` naming the external service
involved ("openai", "pymupdf", "sqlite", ...).

    DocQAError
    +-- ValidationError          rejected caller input
    +-- DocumentNotFoundError    unknown document id
    +-- ExtractionError          PDF text extraction
    |   +-- EmptyContentError    no usable text (scanned PDF)
    +-- EmbeddingError           embedding API
    +-- PersistenceError         record store
    +-- SearchError              similarity search
    +-- GenerationError          streaming LLM
    +-- ConfigurationError       missing provider or setting

Ingestion records any of these as document status ``error``, chat turns them
into a terminal ``error`` event, and the HTTP layer maps them onto status
codes (see :func:`docqa.api.middleware.status_code_for`).
"""

from __future__ import annotations


class DocQAError(Exception):
    """Base class.  ``str()`` prefixes the provider, e.g. ``[openai] Rate limit``."""

    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, provider_name: str | None = None) -> None:
        self.message = message or self.default_message
        self.provider_name = provider_name
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class ValidationError(DocQAError):
    default_message = "Invalid request"


class DocumentNotFoundError(DocQAError):
    default_message = "Document not found"


class ExtractionError(DocQAError):
    default_message = "Text extraction failed"


class EmptyContentError(ExtractionError):
    default_message = "No text content could be extracted from the document"


class EmbeddingError(DocQAError):
    default_message = "Embedding generation failed"


class PersistenceError(DocQAError):
    default_message = "Persistence operation failed"


class SearchError(DocQAError):
    default_message = "Similarity search failed"


class GenerationError(DocQAError):
    default_message = "Answer generation failed"


class ConfigurationError(DocQAError):
    default_message = "Invalid or missing configuration"
