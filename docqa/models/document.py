"""Document and chunk models for the docqa knowledge base.

Defines Pydantic v2 models for uploaded documents, their embedded chunks,
query-time chunk matches, and ingestion run statistics.  All models use
frozen config; status changes produce a new :class:`Document` via
``model_copy`` rather than mutating in place.

Lifecycle overview:

    1. UPLOAD: a :class:`Document` row is created with status ``processing``.
    2. INGESTION: extracted text is split, embedded in batches, and stored
       as :class:`DocumentChunk` rows with contiguous ``chunk_index`` values.
    3. STATUS: the document ends as ``ready`` or ``error``.
    4. RETRIEVAL: chat queries receive :class:`ChunkMatch` projections,
       ordered by descending similarity.  Matches are never persisted.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Processing state of an uploaded document."""

    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Document: one uploaded PDF.
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """An uploaded PDF and its processing status.

    Created on upload with status ``processing``; mutated only by the
    ingestion pipeline.  Deleting a document removes all its chunks.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for the document.")
    name: str = Field(description="Original file name of the upload.")
    size: int | None = Field(default=None, ge=0, description="Upload size in bytes.")
    status: DocumentStatus = Field(
        default=DocumentStatus.PROCESSING,
        description="Current processing state.",
    )
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# DocumentChunk: the unit of retrieval.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A contiguous, non-empty span of a document's text with its embedding."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for this chunk.")
    document_id: str = Field(description="Identifier of the parent document.")
    content: str = Field(min_length=1, description="Trimmed chunk text.")
    embedding: list[float] = Field(description="Embedding vector for the content.")
    chunk_index: int = Field(ge=0, description="0-based position within the document.")
    created_at: datetime = Field(default_factory=_utcnow)


class ChunkMatch(BaseModel):
    """A chunk returned by similarity search, with its relevance score."""

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    content: str
    similarity: float = Field(description="Cosine similarity; higher is more relevant.")


class IngestionResult(BaseModel):
    """Statistics from one ingestion run."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunks_created: int = Field(default=0, ge=0)
    batches: int = Field(default=0, ge=0)
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")
