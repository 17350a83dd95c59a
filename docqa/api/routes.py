"""FastAPI API routes for docqa.

REST endpoints for document upload, listing, status and deletion, the
streaming chat endpoint, and a health check.  Services are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/documents                     POST    Upload PDF → background ingestion
# /api/v1/documents                     GET     List documents, newest first
# /api/v1/documents/{id}                GET     One document with its status
# /api/v1/documents/{id}/status         GET     Live processing status
# /api/v1/documents/{id}                DELETE  Delete document + chunks
# /api/v1/chat                          POST    Server-sent event answer stream
# /api/v1/health                        GET     Health check + provider status
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse

from docqa import __version__
from docqa.api.schemas import (
    ChatRequest,
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentStatusResponse,
    ErrorResponse,
    HealthResponse,
    UploadResponse,
)
from docqa.models.chat import ChatEvent
from docqa.services.chat_service import ChatService
from docqa.services.document_service import DocumentService
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_UPLOAD_CHUNK_SIZE = 64 * 1024

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_document_service(request: Request) -> DocumentService:
    """Return the document service from application state."""
    return request.app.state.document_service


def _get_chat_service(request: Request) -> ChatService:
    """Return the chat service, or 503 when no embedding provider is configured."""
    chat_service = getattr(request.app.state, "chat_service", None)
    if chat_service is None:
        raise HTTPException(status_code=503, detail="Chat service not configured")
    return chat_service


DocumentServiceDep = Annotated[DocumentService, Depends(_get_document_service)]
ChatServiceDep = Annotated[ChatService, Depends(_get_chat_service)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_upload(file: UploadFile, limit: int) -> bytes:
    """Read an upload in 64 KB chunks, stopping one chunk past *limit*.

    An oversized upload is therefore rejected after buffering little more
    than the limit, and the returned length still exceeds the limit so
    validation reports it.
    """
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        chunks.append(chunk)
        if total_size > limit:
            break
    return b"".join(chunks)


def format_sse(event: ChatEvent) -> str:
    """Encode one event as a server-sent event frame."""
    return f"data: {event.model_dump_json()}\n\n"


async def _sse_stream(events: AsyncIterator[ChatEvent]) -> AsyncIterator[str]:
    try:
        async for event in events:
            yield format_sse(event)
    finally:
        # Client disconnects close this generator; pass that on to the pipeline.
        await events.aclose()


# ---------------------------------------------------------------------------
# Document endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Upload a PDF for background ingestion",
)
async def upload_document(
    document_service: DocumentServiceDep,
    file: Annotated[UploadFile | None, File()] = None,
) -> UploadResponse:
    """Accept a PDF, create its document record, and start ingestion."""
    if file is None:
        document_service.validate_upload(None, None, 0)
    data = await _read_upload(file, document_service.max_upload_bytes)
    document = await document_service.upload(file.filename, file.content_type, data)
    return UploadResponse(document_id=document.id, status=document.status)


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    summary="List documents, newest first",
)
async def list_documents(document_service: DocumentServiceDep) -> DocumentListResponse:
    documents = await document_service.list_documents()
    return DocumentListResponse(documents=[DocumentResponse.from_document(d) for d in documents])


@router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get one document",
)
async def get_document(document_id: str, document_service: DocumentServiceDep) -> DocumentResponse:
    document = await document_service.get_document(document_id)
    return DocumentResponse.from_document(document)


@router.get(
    "/documents/{document_id}/status",
    response_model=DocumentStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Poll a document's processing status",
)
async def get_document_status(
    document_id: str,
    document_service: DocumentServiceDep,
) -> DocumentStatusResponse:
    status = await document_service.get_status(document_id)
    return DocumentStatusResponse(**status)


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a document and its chunks",
)
async def delete_document(document_id: str, document_service: DocumentServiceDep) -> DeleteResponse:
    await document_service.delete_document(document_id)
    return DeleteResponse(success=True)


# ---------------------------------------------------------------------------
# Chat endpoint
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    responses={
        200: {"content": {"text/event-stream": {}}},
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Ask a question and stream the cited answer",
)
async def chat(body: ChatRequest, chat_service: ChatServiceDep) -> StreamingResponse:
    """Stream ``sources``, ``text``..., then ``done`` (or ``error``) as SSE frames.

    An empty message is rejected with 400 before any stream is opened.
    """
    events = chat_service.stream_answer(
        body.message,
        document_id=body.document_id,
        history=body.conversation_history,
    )
    return StreamingResponse(
        _sse_stream(events),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    runner = getattr(request.app.state, "ingestion_runner", None)
    providers["ingestions_running"] = runner.running_count if runner is not None else 0

    record_store = getattr(request.app.state, "record_store", None)
    if record_store is not None:
        try:
            providers["chunks"] = await record_store.count_chunks()
            providers["store"] = True
        except Exception as exc:
            _logger.warning("health_store_check_failed", error=str(exc))
            providers["store"] = False
            providers["chunks"] = 0

    critical_ok = providers.get("store", False) and providers.get("embedding", False)
    if critical_ok and providers.get("llm", False):
        status = "healthy"
    elif providers.get("store", False):
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=__version__, providers=providers)
