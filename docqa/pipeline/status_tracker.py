"""Document status tracking with callback-based listener notification.

Keeps the latest processing status for each document and broadcasts every
change to listeners registered for that document.  The ingestion pipeline
publishes here; the WebSocket status feed subscribes.

    IngestionService ──update()──→ DocumentStatusTracker ──callback()──→ WebSocket handler

Listeners are keyed by document id so concurrent ingestions never cross
talk.  Sync callbacks run inline; coroutine callbacks are scheduled as tasks
so a slow subscriber never holds up the publisher.  Listener errors are
logged and skipped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from docqa.models.document import DocumentStatus
from docqa.utils.logging import get_logger


@dataclass
class _DocumentStatusSnapshot:
    """Internal record of a document's latest status (never serialized directly)."""

    status: DocumentStatus = DocumentStatus.PROCESSING
    message: str = ""
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DocumentStatusTracker:
    """Tracks and broadcasts document processing status via callbacks."""

    def __init__(self) -> None:
        self._statuses: dict[str, _DocumentStatusSnapshot] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._pending: set[asyncio.Task] = set()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        document_id: str,
        status: DocumentStatus,
        message: str = "",
    ) -> None:
        """Record a status change and notify all listeners for the document.

        Returns once the snapshot is stored; coroutine listeners finish in
        the background (see :meth:`drain`).

        Parameters
        ----------
        document_id:
            The document whose status changed.
        status:
            The new processing status.
        message:
            Human-readable detail, e.g. the failure reason for ``error``.
        """
        self._statuses[document_id] = _DocumentStatusSnapshot(status=status, message=message)

        self._logger.debug(
            "document_status_update",
            document_id=document_id,
            status=status.value,
            message=message,
        )

        self._notify_listeners(document_id, status, message)

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register a callback accepting ``(document_id, status, message)``."""
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                document_id=document_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                document_id=document_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(document_id, None)

    def get_status(self, document_id: str) -> dict | None:
        """Return ``{"document_id", "status", "message", "updated_at"}`` or ``None``.

        ``None`` means the tracker has not seen the document in this process;
        callers fall back to the record store.
        """
        snapshot = self._statuses.get(document_id)
        if snapshot is None:
            return None
        return {
            "document_id": document_id,
            "status": snapshot.status.value,
            "message": snapshot.message,
            "updated_at": snapshot.updated_at.isoformat(),
        }

    def forget(self, document_id: str) -> None:
        """Drop the cached status of a deleted document."""
        self._statuses.pop(document_id, None)

    async def drain(self) -> None:
        """Wait until every scheduled listener notification has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _notify_listeners(
        self,
        document_id: str,
        status: DocumentStatus,
        message: str,
    ) -> None:
        # Copy so a listener may unregister itself while being notified.
        for callback in list(self._listeners.get(document_id, [])):
            name = getattr(callback, "__name__", repr(callback))
            try:
                result = callback(document_id, status, message)
            except Exception as exc:
                self._log_listener_error(document_id, name, exc)
                continue
            if asyncio.iscoroutine(result):
                task = asyncio.create_task(result)
                self._pending.add(task)
                task.add_done_callback(
                    lambda t, doc_id=document_id, cb_name=name: self._on_listener_done(t, doc_id, cb_name)
                )

    def _on_listener_done(self, task: asyncio.Task, document_id: str, callback_name: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._log_listener_error(document_id, callback_name, exc)

    def _log_listener_error(self, document_id: str, callback_name: str, exc: BaseException) -> None:
        self._logger.warning(
            "listener_callback_error",
            document_id=document_id,
            error=str(exc),
            callback=callback_name,
        )
