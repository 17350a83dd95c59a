"""Unit tests for DocumentService — upload validation, lookup, status, deletion."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from docqa.models.document import Document, DocumentStatus
from docqa.pipeline.status_tracker import DocumentStatusTracker
from docqa.providers.storage.local_file_store import LocalFileStore
from docqa.services.document_service import DocumentService
from docqa.utils.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    PersistenceError,
    ValidationError,
)


def _store(document: Document | None = None, deleted: bool = True) -> MagicMock:
    store = MagicMock()
    store.create_document = AsyncMock(side_effect=lambda d: d)
    store.get_document = AsyncMock(return_value=document)
    store.list_documents = AsyncMock(return_value=[document] if document else [])
    store.delete_document = AsyncMock(return_value=deleted)
    return store


def _runner(running: bool = False) -> MagicMock:
    runner = MagicMock()
    runner.begin_ingestion = MagicMock()
    runner.is_running = MagicMock(return_value=running)
    return runner


class TestValidateUpload:
    @pytest.fixture()
    def service(self) -> DocumentService:
        return DocumentService(record_store=_store(), ingestion_runner=_runner())

    @pytest.mark.parametrize(
        ("filename", "content_type", "size", "message"),
        [
            (None, "application/pdf", 10, "No file provided"),
            ("", "application/pdf", 10, "No file provided"),
            ("notes.txt", "text/plain", 10, "Only PDF files are supported"),
            ("scan.pdf", None, 10, "Only PDF files are supported"),
            ("empty.pdf", "application/pdf", 0, "File is empty"),
            ("huge.pdf", "application/pdf", 10 * 1024 * 1024 + 1, "File size must be under 10MB"),
        ],
    )
    def test_rejections(
        self,
        service: DocumentService,
        filename: str | None,
        content_type: str | None,
        size: int,
        message: str,
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            service.validate_upload(filename, content_type, size)
        assert exc_info.value.message == message

    def test_exactly_at_limit_accepted(self, service: DocumentService) -> None:
        service.validate_upload("big.pdf", "application/pdf", 10 * 1024 * 1024)

    def test_content_type_parameters_ignored(self, service: DocumentService) -> None:
        service.validate_upload("a.pdf", "Application/PDF; charset=binary", 10)


class TestUpload:
    @pytest.mark.asyncio
    async def test_creates_processing_document_and_schedules_ingestion(self) -> None:
        store = _store()
        runner = _runner()
        tracker = DocumentStatusTracker()
        service = DocumentService(record_store=store, ingestion_runner=runner, status_tracker=tracker)

        document = await service.upload("report.pdf", "application/pdf", b"%PDF-1.7 data")

        assert document.name == "report.pdf"
        assert document.size == len(b"%PDF-1.7 data")
        assert document.status == DocumentStatus.PROCESSING
        store.create_document.assert_awaited_once_with(document)
        runner.begin_ingestion.assert_called_once_with(b"%PDF-1.7 data", document.id)
        assert tracker.get_status(document.id)["status"] == "processing"

    @pytest.mark.asyncio
    async def test_invalid_upload_creates_nothing(self) -> None:
        store = _store()
        runner = _runner()
        service = DocumentService(record_store=store, ingestion_runner=runner)

        with pytest.raises(ValidationError):
            await service.upload("notes.txt", "text/plain", b"hello")

        store.create_document.assert_not_called()
        runner.begin_ingestion.assert_not_called()

    @pytest.mark.asyncio
    async def test_without_runner_is_configuration_error(self) -> None:
        service = DocumentService(record_store=_store(), ingestion_runner=None)
        with pytest.raises(ConfigurationError):
            await service.upload("report.pdf", "application/pdf", b"%PDF")

    @pytest.mark.asyncio
    async def test_ids_are_unique(self) -> None:
        service = DocumentService(record_store=_store(), ingestion_runner=_runner())
        a = await service.upload("a.pdf", "application/pdf", b"%PDF")
        b = await service.upload("a.pdf", "application/pdf", b"%PDF")
        assert a.id != b.id


class TestLookupAndDelete:
    @pytest.fixture()
    def document(self) -> Document:
        return Document(id="doc-1", name="report.pdf", size=100, status=DocumentStatus.READY)

    @pytest.mark.asyncio
    async def test_get_document(self, document: Document) -> None:
        service = DocumentService(record_store=_store(document), ingestion_runner=_runner())
        assert await service.get_document("doc-1") == document

    @pytest.mark.asyncio
    async def test_get_missing_document(self) -> None:
        service = DocumentService(record_store=_store(None), ingestion_runner=_runner())
        with pytest.raises(DocumentNotFoundError):
            await service.get_document("ghost")

    @pytest.mark.asyncio
    async def test_list_documents(self, document: Document) -> None:
        service = DocumentService(record_store=_store(document), ingestion_runner=_runner())
        assert await service.list_documents() == [document]

    @pytest.mark.asyncio
    async def test_status_prefers_tracker(self, document: Document) -> None:
        tracker = DocumentStatusTracker()
        await tracker.update("doc-1", DocumentStatus.ERROR, "No text content")
        service = DocumentService(
            record_store=_store(document), ingestion_runner=_runner(), status_tracker=tracker
        )
        status = await service.get_status("doc-1")
        assert status["status"] == "error"
        assert status["message"] == "No text content"

    @pytest.mark.asyncio
    async def test_status_falls_back_to_store(self, document: Document) -> None:
        service = DocumentService(
            record_store=_store(document),
            ingestion_runner=_runner(),
            status_tracker=DocumentStatusTracker(),
        )
        status = await service.get_status("doc-1")
        assert status == {"document_id": "doc-1", "status": "ready", "message": "", "updated_at": None}

    @pytest.mark.asyncio
    async def test_status_of_unknown_document(self) -> None:
        service = DocumentService(record_store=_store(None), ingestion_runner=_runner())
        with pytest.raises(DocumentNotFoundError):
            await service.get_status("ghost")

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        store = _store(deleted=True)
        tracker = DocumentStatusTracker()
        await tracker.update("doc-1", DocumentStatus.READY)
        service = DocumentService(record_store=store, ingestion_runner=_runner(), status_tracker=tracker)

        await service.delete_document("doc-1")

        store.delete_document.assert_awaited_once_with("doc-1")
        assert tracker.get_status("doc-1") is None

    @pytest.mark.asyncio
    async def test_delete_missing(self) -> None:
        service = DocumentService(record_store=_store(deleted=False), ingestion_runner=_runner())
        with pytest.raises(DocumentNotFoundError):
            await service.delete_document("ghost")

    @pytest.mark.asyncio
    async def test_delete_while_ingesting_succeeds(self) -> None:
        runner = _runner(running=True)
        service = DocumentService(record_store=_store(deleted=True), ingestion_runner=runner)
        await service.delete_document("doc-1")
        runner.is_running.assert_called_once_with("doc-1")


class TestStoredUpload:
    @pytest.mark.asyncio
    async def test_upload_keeps_original_file(self, tmp_path: Path) -> None:
        file_store = LocalFileStore(tmp_path)
        service = DocumentService(record_store=_store(), ingestion_runner=_runner(), file_store=file_store)

        document = await service.upload("report.pdf", "application/pdf", b"%PDF-1.7 data")

        assert (tmp_path / document.id / "report.pdf").read_bytes() == b"%PDF-1.7 data"

    @pytest.mark.asyncio
    async def test_write_failure_does_not_block_upload(self) -> None:
        file_store = MagicMock()
        file_store.save = AsyncMock(side_effect=PersistenceError(message="disk full"))
        runner = _runner()
        service = DocumentService(record_store=_store(), ingestion_runner=runner, file_store=file_store)

        document = await service.upload("report.pdf", "application/pdf", b"%PDF")

        file_store.save.assert_awaited_once_with(document.id, "report.pdf", b"%PDF")
        runner.begin_ingestion.assert_called_once_with(b"%PDF", document.id)

    @pytest.mark.asyncio
    async def test_delete_removes_stored_file(self, tmp_path: Path) -> None:
        file_store = LocalFileStore(tmp_path)
        store = _store(deleted=True)
        service = DocumentService(record_store=store, ingestion_runner=_runner(), file_store=file_store)
        document = await service.upload("report.pdf", "application/pdf", b"%PDF")

        await service.delete_document(document.id)

        assert not (tmp_path / document.id).exists()

    @pytest.mark.asyncio
    async def test_missing_document_keeps_files(self) -> None:
        file_store = MagicMock()
        file_store.delete = AsyncMock(return_value=True)
        service = DocumentService(
            record_store=_store(deleted=False), ingestion_runner=_runner(), file_store=file_store
        )

        with pytest.raises(DocumentNotFoundError):
            await service.delete_document("ghost")
        file_store.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_file_removal_failure_does_not_fail_delete(self) -> None:
        file_store = MagicMock()
        file_store.delete = AsyncMock(side_effect=PersistenceError(message="busy"))
        store = _store(deleted=True)
        service = DocumentService(record_store=store, ingestion_runner=_runner(), file_store=file_store)

        await service.delete_document("doc-1")

        store.delete_document.assert_awaited_once_with("doc-1")
        file_store.delete.assert_awaited_once_with("doc-1")
