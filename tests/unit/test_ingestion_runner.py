"""Unit tests for IngestionRunner background scheduling."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from docqa.models.document import IngestionResult
from docqa.services.ingestion.ingestion_runner import IngestionRunner
from docqa.utils.errors import EmbeddingError, ValidationError


def _service(gate: asyncio.Event | None = None, error: Exception | None = None) -> MagicMock:
    """Fake IngestionService whose runs block on *gate* until released."""

    async def ingest(document_bytes: bytes, document_id: str) -> IngestionResult:
        if gate is not None:
            await gate.wait()
        if error is not None:
            raise error
        return IngestionResult(document_id=document_id, chunks_created=3, batches=1, ingestion_time=0.1)

    service = MagicMock()
    service.ingest = MagicMock(side_effect=ingest)
    return service


class TestIngestionRunner:
    @pytest.mark.asyncio
    async def test_begin_returns_before_ingestion_finishes(self) -> None:
        gate = asyncio.Event()
        runner = IngestionRunner(_service(gate))

        runner.begin_ingestion(b"%PDF", "doc-1")

        assert runner.is_running("doc-1") is True
        assert runner.running_count == 1
        gate.set()
        result = await runner.wait("doc-1")
        assert result is not None and result.chunks_created == 3
        assert runner.is_running("doc-1") is False

    @pytest.mark.asyncio
    async def test_duplicate_run_rejected(self) -> None:
        gate = asyncio.Event()
        runner = IngestionRunner(_service(gate))
        runner.begin_ingestion(b"%PDF", "doc-1")

        with pytest.raises(ValidationError):
            runner.begin_ingestion(b"%PDF", "doc-1")

        gate.set()
        await runner.shutdown()

    @pytest.mark.asyncio
    async def test_wait_unknown_document_returns_none(self) -> None:
        runner = IngestionRunner(_service())
        assert await runner.wait("nothing") is None

    @pytest.mark.asyncio
    async def test_wait_reraises_failure(self) -> None:
        runner = IngestionRunner(_service(error=EmbeddingError(message="quota")))
        runner.begin_ingestion(b"%PDF", "doc-1")
        with pytest.raises(EmbeddingError):
            await runner.wait("doc-1")

    @pytest.mark.asyncio
    async def test_failed_run_is_removed_from_registry(self) -> None:
        runner = IngestionRunner(_service(error=EmbeddingError(message="quota")))
        runner.begin_ingestion(b"%PDF", "doc-1")
        await runner.shutdown()
        await asyncio.sleep(0)
        assert runner.running_count == 0
        assert await runner.wait("doc-1") is None

    @pytest.mark.asyncio
    async def test_shutdown_drains_all_runs(self) -> None:
        gate = asyncio.Event()
        service = _service(gate)
        runner = IngestionRunner(service)
        runner.begin_ingestion(b"a", "doc-1")
        runner.begin_ingestion(b"b", "doc-2")
        assert runner.running_count == 2

        asyncio.get_running_loop().call_later(0.01, gate.set)
        await runner.shutdown()

        assert runner.running_count == 0
        assert service.ingest.call_count == 2

    @pytest.mark.asyncio
    async def test_shutdown_with_nothing_running(self) -> None:
        runner = IngestionRunner(_service())
        await runner.shutdown()
        assert runner.running_count == 0
