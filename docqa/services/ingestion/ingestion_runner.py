"""Fire-and-forget scheduling of ingestion runs.

The upload path must return as soon as the document row exists, while
ingestion keeps going in the background.  :class:`IngestionRunner` makes
that explicit: every run is an ``asyncio.Task`` held in a registry, its
outcome is always observed and logged, and shutdown drains the registry so
no run is silently dropped.  The uploader learns the outcome only through
the document status.
"""

from __future__ import annotations

import asyncio
from functools import partial

import structlog

from docqa.models.document import IngestionResult
from docqa.services.ingestion.ingestion_service import IngestionService
from docqa.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)


class IngestionRunner:
    """Runs :meth:`IngestionService.ingest` as background tasks."""

    def __init__(self, ingestion_service: IngestionService) -> None:
        self._ingestion_service = ingestion_service
        self._tasks: dict[str, asyncio.Task[IngestionResult]] = {}

    def begin_ingestion(self, document_bytes: bytes, document_id: str) -> None:
        """Schedule ingestion of *document_id* and return immediately.

        Must be called from within a running event loop.

        Raises
        ------
        ValidationError
            If the document is already being ingested.
        """
        if self.is_running(document_id):
            raise ValidationError(message=f"Document {document_id} is already being processed")

        task = asyncio.get_running_loop().create_task(
            self._ingestion_service.ingest(document_bytes, document_id),
            name=f"ingest-{document_id}",
        )
        self._tasks[document_id] = task
        task.add_done_callback(partial(self._on_task_done, document_id))
        logger.info("ingestion_scheduled", document_id=document_id, running=len(self._tasks))

    def is_running(self, document_id: str) -> bool:
        task = self._tasks.get(document_id)
        return task is not None and not task.done()

    @property
    def running_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def wait(self, document_id: str) -> IngestionResult | None:
        """Wait for a scheduled run to finish and return its result.

        Returns ``None`` when no run is in flight for the document.  The
        run's failure, if any, is re-raised.
        """
        task = self._tasks.get(document_id)
        if task is None:
            return None
        return await asyncio.shield(task)

    async def shutdown(self) -> None:
        """Wait for every in-flight run to finish."""
        pending = [task for task in self._tasks.values() if not task.done()]
        if not pending:
            return
        logger.info("ingestion_runner_draining", pending=len(pending))
        await asyncio.gather(*pending, return_exceptions=True)

    def _on_task_done(self, document_id: str, task: asyncio.Task[IngestionResult]) -> None:
        if self._tasks.get(document_id) is task:
            del self._tasks[document_id]

        if task.cancelled():
            logger.warning("ingestion_cancelled", document_id=document_id)
            return

        exc = task.exception()
        if exc is not None:
            # Status is already ``error``; this only keeps the failure visible in logs.
            logger.warning(
                "ingestion_task_failed",
                document_id=document_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return

        result = task.result()
        logger.info(
            "ingestion_task_finished",
            document_id=document_id,
            chunks=result.chunks_created,
            elapsed_s=result.ingestion_time,
        )
