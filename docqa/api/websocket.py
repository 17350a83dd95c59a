"""WebSocket endpoint for live document status updates.

Instead of polling ``/documents/{id}/status``, a client can subscribe:

    client                                 server
    ws = new WebSocket(url)   ──────→     accept(), register listener
                              ←──────     current status snapshot
                              ←──────     {"status": "processing", ...} on change
                              ←──────     {"status": "ready"|"error", ...}
                              ←──────     close(1000)

Messages carry ``document_id``, ``status``, ``message`` and ``updated_at``.
The server closes the socket once a terminal status has been sent; a client
may also disconnect at any time.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from docqa.models.document import DocumentStatus
from docqa.pipeline.status_tracker import DocumentStatusTracker
from docqa.services.document_service import DocumentService
from docqa.utils.errors import DocumentNotFoundError
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_TERMINAL_STATUSES = frozenset({DocumentStatus.READY.value, DocumentStatus.ERROR.value})


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


async def websocket_document_status(websocket: WebSocket, document_id: str) -> None:
    """Push status changes for *document_id* until it reaches ``ready`` or ``error``."""
    status_tracker: DocumentStatusTracker = websocket.app.state.status_tracker
    document_service: DocumentService = websocket.app.state.document_service

    await websocket.accept()
    _logger.info("websocket_connected", document_id=document_id)

    # The listener only enqueues; this handler does the sending, in order.
    updates: asyncio.Queue[dict] = asyncio.Queue()

    def _on_status(doc_id: str, status: DocumentStatus, message: str) -> None:
        updates.put_nowait(
            {
                "document_id": doc_id,
                "status": status.value,
                "message": message,
                "updated_at": (status_tracker.get_status(doc_id) or {}).get("updated_at"),
            }
        )

    status_tracker.register_listener(document_id, _on_status)
    disconnect = asyncio.create_task(_wait_for_disconnect(websocket))

    try:
        try:
            snapshot = await document_service.get_status(document_id)
        except DocumentNotFoundError:
            await websocket.send_json({"document_id": document_id, "error": "Document not found"})
            await websocket.close(code=4404)
            return

        while True:
            await websocket.send_json(snapshot)
            if snapshot["status"] in _TERMINAL_STATUSES:
                await websocket.close(code=1000)
                _logger.info("websocket_closed_terminal", document_id=document_id, status=snapshot["status"])
                return

            next_update = asyncio.create_task(updates.get())
            done, _ = await asyncio.wait({next_update, disconnect}, return_when=asyncio.FIRST_COMPLETED)
            if next_update not in done:
                next_update.cancel()
                _logger.info("websocket_disconnected", document_id=document_id)
                return
            snapshot = next_update.result()

    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", document_id=document_id)

    finally:
        disconnect.cancel()
        status_tracker.unregister_listener(document_id, _on_status)
        _logger.debug("websocket_listener_cleaned_up", document_id=document_id)
