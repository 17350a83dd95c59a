"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **extract -> split -> embed (batched) -> store -> status**.

The :class:`IngestionService` coordinates four injected collaborators (text
extractor, splitter, embedding provider, record store) without any of them
knowing about each other.  For one document:

    1. Status is (re-)asserted as ``processing``
    2. ITextExtractor -- raw PDF bytes to plain text
    3. RecursiveTextSplitter -- text to bounded, overlapping chunks
    4. IEmbeddingProvider -- every chunk of a batch embedded concurrently
    5. IRecordStore -- one insert per batch, batches strictly in order
    6. Status becomes ``ready``

Any failure sets status ``error`` and is re-raised to the caller.  Batches
already stored stay stored; nothing is retried.  A document deleted mid-run
stops the run at its next status write and is never published again.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING

import structlog

from docqa.models.document import DocumentChunk, DocumentStatus, IngestionResult
from docqa.services.text_splitter import RecursiveTextSplitter
from docqa.utils.errors import (
    DocQAError,
    DocumentNotFoundError,
    EmbeddingError,
    EmptyContentError,
    ExtractionError,
    PersistenceError,
)
from docqa.utils.logging import document_context

if TYPE_CHECKING:
    from docqa.interfaces.embedding_provider import IEmbeddingProvider
    from docqa.interfaces.record_store import IRecordStore
    from docqa.interfaces.text_extractor import ITextExtractor
    from docqa.pipeline.status_tracker import DocumentStatusTracker

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_EMBED_BATCH_SIZE = 10


class IngestionService:
    """Turns one uploaded PDF into stored, embedded chunks.

    Parameters
    ----------
    text_extractor:
        Extracts plain text from the document bytes.
    splitter:
        Splits text into chunks (1000 chars / 200 overlap by default).
    embedding_provider:
        Embeds each chunk; called concurrently within a batch.
    record_store:
        Persists chunk rows and document status.
    status_tracker:
        Optional publisher for live status subscribers.
    batch_size:
        Chunks embedded and stored per batch (default 10).
    """

    def __init__(
        self,
        text_extractor: ITextExtractor,
        splitter: RecursiveTextSplitter,
        embedding_provider: IEmbeddingProvider,
        record_store: IRecordStore,
        status_tracker: DocumentStatusTracker | None = None,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._text_extractor = text_extractor
        self._splitter = splitter
        self._embedding_provider = embedding_provider
        self._record_store = record_store
        self._status_tracker = status_tracker
        self._batch_size = batch_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(self, document_bytes: bytes, document_id: str) -> IngestionResult:
        """Run the full pipeline for one document.

        Returns
        -------
        IngestionResult
            Chunk and batch counts plus elapsed time.

        Raises
        ------
        ExtractionError
            Extraction failed; :class:`EmptyContentError` when it found no text.
        EmbeddingError
            Any chunk in a batch failed to embed.
        PersistenceError
            A batch insert or status write failed.
        DocumentNotFoundError
            The document was deleted while the run was in progress.
        """
        with document_context(document_id):
            return await self._run(document_bytes, document_id)

    async def _run(self, document_bytes: bytes, document_id: str) -> IngestionResult:
        start = time.monotonic()
        await self._set_status(document_id, DocumentStatus.PROCESSING)
        logger.info("ingestion_started", size=len(document_bytes))

        try:
            text = await self._extract(document_bytes)
            chunks = self._splitter.split(text)
            if not chunks:
                raise EmptyContentError(provider_name=self._text_extractor.get_provider_name())
            logger.info("document_split", chunks=len(chunks), chars=len(text))

            stored = 0
            batches = 0
            for batch_start in range(0, len(chunks), self._batch_size):
                batch = chunks[batch_start : batch_start + self._batch_size]
                embeddings = await self._embed_batch(batch)
                rows = [
                    DocumentChunk(
                        id=str(uuid.uuid4()),
                        document_id=document_id,
                        content=content,
                        embedding=embedding,
                        chunk_index=batch_start + offset,
                    )
                    for offset, (content, embedding) in enumerate(zip(batch, embeddings))
                ]
                stored += await self._store_batch(rows)
                batches += 1
                logger.debug(
                    "embedding_batch_complete",
                    batch=batches,
                    chunk_range=(batch_start, batch_start + len(batch) - 1),
                )

            await self._set_status(document_id, DocumentStatus.READY)
        except Exception as exc:
            await self._mark_failed(document_id, exc)
            raise

        elapsed = round(time.monotonic() - start, 3)
        logger.info("ingestion_complete", chunks=stored, batches=batches, elapsed_s=elapsed)
        return IngestionResult(
            document_id=document_id,
            chunks_created=stored,
            batches=batches,
            ingestion_time=elapsed,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _extract(self, document_bytes: bytes) -> str:
        try:
            text = await self._text_extractor.extract(document_bytes)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(
                message=f"Text extraction failed: {exc}",
                provider_name=self._text_extractor.get_provider_name(),
            ) from exc

        if not text or not text.strip():
            raise EmptyContentError(provider_name=self._text_extractor.get_provider_name())
        return text

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        """Embed every chunk of *batch* concurrently and wait for all of them.

        Waiting for every call (``return_exceptions=True``) means no embedding
        request is left running once the batch has failed.
        """
        results = await asyncio.gather(
            *(self._embedding_provider.embed_single(content) for content in batch),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, EmbeddingError):
                raise result
            if isinstance(result, Exception):
                raise EmbeddingError(
                    message=f"Embedding failed: {result}",
                    provider_name=self._embedding_provider.get_provider_name(),
                ) from result
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def _store_batch(self, rows: list[DocumentChunk]) -> int:
        try:
            return await self._record_store.add_chunks(rows)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(message=f"Failed to store chunk batch: {exc}") from exc

    async def _set_status(self, document_id: str, status: DocumentStatus, message: str = "") -> None:
        """Write *status* to the store, then publish it.

        Raises
        ------
        DocumentNotFoundError
            The document row is gone (deleted mid-run); nothing is published.
        """
        try:
            updated = await self._record_store.update_status(document_id, status)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(message=f"Failed to update document status: {exc}") from exc
        if not updated:
            raise DocumentNotFoundError(message=f"Document {document_id} was deleted during ingestion")
        if self._status_tracker is not None:
            await self._status_tracker.update(document_id, status, message)

    async def _mark_failed(self, document_id: str, exc: BaseException) -> None:
        """Record status ``error``; the original failure is what the caller sees."""
        message = exc.message if isinstance(exc, DocQAError) else str(exc)
        logger.error(
            "ingestion_failed",
            error_type=type(exc).__name__,
            error=message,
        )
        try:
            await self._set_status(document_id, DocumentStatus.ERROR, message)
        except DocumentNotFoundError:
            logger.warning("ingestion_document_deleted")
        except PersistenceError as status_exc:
            logger.error(
                "ingestion_status_write_failed",
                error=str(status_exc),
            )
