"""Document management: upload validation, listing, lookup and deletion.

Upload is the entry point of the ingestion flow.  It validates the file,
creates the document row with status ``processing``, keeps a copy of the
original PDF when a file store is configured, hands the bytes to the
:class:`IngestionRunner`, and returns without waiting for ingestion.

The stored copy is secondary: failing to write or remove it is logged and
does not fail the upload or the delete.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog

from docqa.models.document import Document, DocumentStatus
from docqa.utils.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    PersistenceError,
    ValidationError,
)

if TYPE_CHECKING:
    from docqa.interfaces.file_store import IFileStore
    from docqa.interfaces.record_store import IRecordStore
    from docqa.pipeline.status_tracker import DocumentStatusTracker
    from docqa.services.ingestion.ingestion_runner import IngestionRunner

logger = structlog.get_logger(logger_name=__name__)

PDF_CONTENT_TYPE = "application/pdf"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class DocumentService:
    """Coordinates the record store, ingestion runner and status tracker."""

    def __init__(
        self,
        record_store: IRecordStore,
        ingestion_runner: IngestionRunner | None,
        status_tracker: DocumentStatusTracker | None = None,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        file_store: IFileStore | None = None,
    ) -> None:
        self._record_store = record_store
        self._ingestion_runner = ingestion_runner
        self._status_tracker = status_tracker
        self._max_upload_bytes = max_upload_bytes
        self._file_store = file_store

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    @property
    def file_store(self) -> IFileStore | None:
        return self._file_store

    def validate_upload(self, filename: str | None, content_type: str | None, size: int) -> None:
        """Reject uploads that are missing, not PDFs, empty, or too large.

        Raises
        ------
        ValidationError
            With a message suitable for showing to the user.
        """
        if not filename:
            raise ValidationError(message="No file provided")
        media_type = (content_type or "").split(";")[0].strip().lower()
        if media_type != PDF_CONTENT_TYPE:
            raise ValidationError(message="Only PDF files are supported")
        if size == 0:
            raise ValidationError(message="File is empty")
        if size > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes // (1024 * 1024)
            raise ValidationError(message=f"File size must be under {limit_mb}MB")

    async def upload(self, filename: str | None, content_type: str | None, data: bytes) -> Document:
        """Create a document for *data* and start ingesting it in the background."""
        if self._ingestion_runner is None:
            raise ConfigurationError(message="Document ingestion is not configured")
        self.validate_upload(filename, content_type, len(data))

        document = Document(
            id=str(uuid.uuid4()),
            name=filename or "document.pdf",
            size=len(data),
            status=DocumentStatus.PROCESSING,
        )
        await self._record_store.create_document(document)
        await self._store_original(document, data)
        if self._status_tracker is not None:
            await self._status_tracker.update(document.id, DocumentStatus.PROCESSING)

        self._ingestion_runner.begin_ingestion(data, document.id)
        logger.info("document_uploaded", document_id=document.id, name=document.name, size=len(data))
        return document

    async def list_documents(self) -> list[Document]:
        return await self._record_store.list_documents()

    async def get_document(self, document_id: str) -> Document:
        document = await self._record_store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(message=f"Document not found: {document_id}")
        return document

    async def get_status(self, document_id: str) -> dict:
        """Return the live status snapshot, falling back to the stored status."""
        if self._status_tracker is not None:
            snapshot = self._status_tracker.get_status(document_id)
            if snapshot is not None:
                return snapshot
        document = await self.get_document(document_id)
        return {
            "document_id": document.id,
            "status": document.status.value,
            "message": "",
            "updated_at": None,
        }

    async def delete_document(self, document_id: str) -> None:
        """Delete a document and, through the store's cascade, all its chunks."""
        deleted = await self._record_store.delete_document(document_id)
        if not deleted:
            raise DocumentNotFoundError(message=f"Document not found: {document_id}")
        if self._status_tracker is not None:
            self._status_tracker.forget(document_id)
        if self._ingestion_runner is not None and self._ingestion_runner.is_running(document_id):
            # The run will fail on its next batch insert and finish on its own.
            logger.warning("document_deleted_during_ingestion", document_id=document_id)
        if self._file_store is not None:
            try:
                await self._file_store.delete(document_id)
            except PersistenceError as exc:
                logger.warning("stored_upload_delete_failed", document_id=document_id, error=str(exc))

    async def _store_original(self, document: Document, data: bytes) -> None:
        if self._file_store is None:
            return
        try:
            await self._file_store.save(document.id, document.name, data)
        except PersistenceError as exc:
            logger.warning("stored_upload_write_failed", document_id=document.id, error=str(exc))
