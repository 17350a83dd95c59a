"""Pydantic request/response schemas for the docqa API.

Request schemas end with ``Request`` and response schemas with ``Response``.
FastAPI validates incoming JSON against them, serializes responses through
them, and generates the OpenAPI docs (``/docs``) from them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from docqa.models.chat import ChatTurn
from docqa.models.document import Document, DocumentStatus


class DocumentResponse(BaseModel):
    """A document and its processing status."""

    id: str
    name: str
    size: int | None = None
    status: DocumentStatus
    created_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> DocumentResponse:
        return cls(**document.model_dump())


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse] = Field(default_factory=list)


class UploadResponse(BaseModel):
    """Returned as soon as the upload is accepted; ingestion continues in the background."""

    document_id: str
    status: DocumentStatus = DocumentStatus.PROCESSING


class DocumentStatusResponse(BaseModel):
    document_id: str
    status: DocumentStatus
    message: str = ""
    updated_at: str | None = None


class DeleteResponse(BaseModel):
    success: bool = True


class ChatRequest(BaseModel):
    """A question, optionally scoped to one document, with prior turns.

    ``message`` is not length-constrained here so an empty question gets the
    same 400 response as any other validation failure.
    """

    message: str = ""
    document_id: str | None = None
    conversation_history: list[ChatTurn] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
