"""Conversation and streaming-event models.

A chat answer is delivered as an ordered stream of typed events, a
discriminated union on the ``type`` field:

    sources  ->  text*  ->  done
                 ...or a single terminal ``error`` in place of ``done``

``ChatEventAdapter`` parses any event dict back into the right class, which
the CLI and tests use to read an SSE stream.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from docqa.models.document import ChunkMatch


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One prior conversation turn supplied as history."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str


class ChatMessage(BaseModel):
    """A message in a conversation session, with the sources it cited."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: ChatRole
    content: str
    sources: list[ChunkMatch] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_turn(self) -> ChatTurn:
        return ChatTurn(role=self.role, content=self.content)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------

class SourcesEvent(BaseModel):
    """First event of every successful stream: the retrieved chunks, in citation order."""

    model_config = ConfigDict(frozen=True)

    type: Literal["sources"] = "sources"
    sources: list[ChunkMatch] = Field(default_factory=list)


class TextEvent(BaseModel):
    """A fragment of generated answer text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    content: str


class DoneEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["done"] = "done"


class ErrorEvent(BaseModel):
    """Terminal failure event; nothing follows it."""

    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    error: str = Field(description="Error class name, e.g. EmbeddingError.")
    message: str


ChatEvent = Annotated[
    Union[SourcesEvent, TextEvent, DoneEvent, ErrorEvent],
    Field(discriminator="type"),
]

ChatEventAdapter: TypeAdapter[ChatEvent] = TypeAdapter(ChatEvent)
