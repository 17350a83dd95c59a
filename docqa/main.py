"""docqa FastAPI application entry point.

Wires together all providers and services via dependency injection, loads
configuration from ``.env``, configures structured logging, and exposes the
REST, SSE and WebSocket surfaces.

Also provides :func:`build_components` so the CLI assembles exactly the same
object graph as the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

from docqa import __version__
from docqa.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from docqa.api.routes import router as api_router
from docqa.api.websocket import websocket_document_status
from docqa.config.settings import Settings
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.pipeline.status_tracker import DocumentStatusTracker
from docqa.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from docqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from docqa.providers.extraction.pymupdf_extractor import PyMuPDFTextExtractor
from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider
from docqa.providers.llm.ollama_provider import OllamaLLMProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider
from docqa.providers.storage.local_file_store import LocalFileStore
from docqa.providers.store.sqlite_document_store import SQLiteDocumentStore
from docqa.services.chat_service import ChatService
from docqa.services.document_service import DocumentService
from docqa.services.ingestion.ingestion_runner import IngestionRunner
from docqa.services.ingestion.ingestion_service import IngestionService
from docqa.services.text_splitter import RecursiveTextSplitter
from docqa.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first available LLM provider based on configured API keys.

    Priority order: Anthropic -> OpenAI -> Ollama (always available).
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    """Select the first available embedding provider.

    Priority: OpenAI/OpenAI-compatible (if API key set) -> Nomic/Ollama (if
    reachable).  Returns ``None`` when neither is available; uploads and
    chat then answer 503 while listing and deletion keep working.
    """
    if app_settings.openai_api_key:
        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    provider = NomicEmbeddingProvider(settings=app_settings)
    if provider.is_available():
        return provider

    return None


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    record_store = SQLiteDocumentStore(db_path=app_settings.database_path)
    status_tracker = DocumentStatusTracker()
    embedding_provider = _build_embedding_provider(app_settings)
    llm_provider = _build_llm_provider(app_settings)

    ingestion_runner: IngestionRunner | None = None
    chat_service: ChatService | None = None
    if embedding_provider is not None:
        ingestion_service = IngestionService(
            text_extractor=PyMuPDFTextExtractor(),
            splitter=RecursiveTextSplitter(
                chunk_size=app_settings.chunk_size,
                chunk_overlap=app_settings.chunk_overlap,
            ),
            embedding_provider=embedding_provider,
            record_store=record_store,
            status_tracker=status_tracker,
            batch_size=app_settings.embed_batch_size,
        )
        ingestion_runner = IngestionRunner(ingestion_service)
        chat_service = ChatService(
            embedding_provider=embedding_provider,
            vector_store=record_store,
            llm_provider=llm_provider,
            match_threshold=app_settings.match_threshold,
            match_count=app_settings.match_count,
            history_turns=app_settings.history_turns,
            temperature=app_settings.chat_temperature,
            max_tokens=app_settings.chat_max_tokens,
        )
    else:
        _logger.warning("embedding_provider_unavailable", message="Uploads and chat disabled")

    document_service = DocumentService(
        record_store=record_store,
        ingestion_runner=ingestion_runner,
        status_tracker=status_tracker,
        max_upload_bytes=app_settings.max_upload_bytes,
        file_store=LocalFileStore(app_settings.upload_dir) if app_settings.upload_dir else None,
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, Any] = {
        "llm": llm_provider.is_available(),
        "llm_provider": llm_provider.get_provider_name(),
        "embedding": embedding_provider is not None,
        "embedding_provider": (
            embedding_provider.get_provider_name() if embedding_provider is not None else None
        ),
    }

    return {
        "record_store": record_store,
        "status_tracker": status_tracker,
        "ingestion_runner": ingestion_runner,
        "document_service": document_service,
        "chat_service": chat_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, drain ingestion on shutdown."""
    components = build_components(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["record_store"].initialize()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        llm=components["provider_registry"]["llm_provider"],
        embedding=components["provider_registry"]["embedding_provider"],
        configured_llms=settings.get_available_llm_providers(),
    )

    yield

    runner: IngestionRunner | None = components["ingestion_runner"]
    if runner is not None:
        await runner.shutdown()
    _logger.info("app_shutdown", message="Ingestion runs drained")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="docqa API",
        version=__version__,
        description=(
            "Upload PDF documents and ask questions about them. Answers are "
            "streamed as server-sent events and cite the retrieved passages."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)

    @application.websocket("/ws/documents/{document_id}/status")
    async def ws_document_status(websocket: WebSocket, document_id: str) -> None:
        await websocket_document_status(websocket, document_id)

    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "docqa.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
