"""docqa domain models — re-exports all public model classes.

    - document.py — documents, chunks, similarity matches, ingestion stats
    - chat.py     — conversation turns and streaming chat events
"""

from __future__ import annotations

from docqa.models.chat import (
    ChatEvent,
    ChatEventAdapter,
    ChatMessage,
    ChatRole,
    ChatTurn,
    DoneEvent,
    ErrorEvent,
    SourcesEvent,
    TextEvent,
)
from docqa.models.document import (
    ChunkMatch,
    Document,
    DocumentChunk,
    DocumentStatus,
    IngestionResult,
)

__all__ = [
    "ChatEvent",
    "ChatEventAdapter",
    "ChatMessage",
    "ChatRole",
    "ChatTurn",
    "ChunkMatch",
    "DoneEvent",
    "Document",
    "DocumentChunk",
    "DocumentStatus",
    "ErrorEvent",
    "IngestionResult",
    "SourcesEvent",
    "TextEvent",
]
