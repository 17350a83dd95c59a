"""Retrieval-augmented, streaming question answering over uploaded documents.

For each question the service:

    1. rejects empty input before touching any collaborator
    2. embeds the question
    3. retrieves the most similar chunks (threshold 0.5, top 5 by default)
    4. builds a grounded prompt with numbered context blocks ``[1]``, ``[2]``...
    5. streams typed events: ``sources``, then ``text`` fragments, then ``done``

A failure after validation ends the stream with exactly one ``error`` event
in place of ``done``.  The citation numbers the model is told to use match
the order of the ``sources`` event, so a client can resolve ``[n]`` to
``sources[n-1]``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING

import structlog

from docqa.models.chat import (
    ChatEvent,
    ChatTurn,
    DoneEvent,
    ErrorEvent,
    SourcesEvent,
    TextEvent,
)
from docqa.models.document import ChunkMatch
from docqa.utils.errors import (
    DocQAError,
    EmbeddingError,
    GenerationError,
    SearchError,
    ValidationError,
)

if TYPE_CHECKING:
    from docqa.interfaces.embedding_provider import IEmbeddingProvider
    from docqa.interfaces.llm_provider import ILLMProvider
    from docqa.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

_SYSTEM_PROMPT_HEADER = (
    "You are an intelligent document assistant. Answer questions based on the "
    "provided document context. If the context doesn't contain enough information "
    "to answer, say so clearly.\n\n"
    "When referencing information from the context, cite your sources using "
    "[1], [2], etc. corresponding to the context chunk numbers.\n\n"
    "Be concise, accurate, and helpful."
)

_NO_CONTEXT_NOTICE = (
    "No relevant document context was found for this query. Let the user know "
    "and try to help based on general knowledge."
)


def build_context(matches: Sequence[ChunkMatch]) -> str:
    """Render matches as numbered blocks, ``[1] ...`` in match order."""
    return "\n\n".join(f"[{i}] {match.content}" for i, match in enumerate(matches, start=1))


def build_system_prompt(matches: Sequence[ChunkMatch]) -> str:
    if matches:
        context_section = f"## Document Context\n\n{build_context(matches)}"
    else:
        context_section = _NO_CONTEXT_NOTICE
    return f"{_SYSTEM_PROMPT_HEADER}\n\n{context_section}"


def build_messages(
    question: str,
    matches: Sequence[ChunkMatch],
    history: Sequence[ChatTurn] = (),
    history_turns: int = 10,
) -> list[dict[str, str]]:
    """Assemble the system prompt, recent history, and the new question."""
    recent = list(history)[-history_turns:] if history_turns > 0 else []
    messages = [{"role": "system", "content": build_system_prompt(matches)}]
    messages.extend({"role": turn.role.value, "content": turn.content} for turn in recent)
    messages.append({"role": "user", "content": question})
    return messages


class ChatService:
    """Answers questions from retrieved document chunks as an event stream.

    Parameters
    ----------
    embedding_provider:
        Must be the provider used at ingestion time.
    vector_store:
        Similarity search over stored chunks.
    llm_provider:
        Streaming chat model.
    match_threshold, match_count:
        Retrieval cut-off and top-k.
    history_turns:
        How many trailing history turns reach the model.
    temperature, max_tokens:
        Generation parameters.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        llm_provider: ILLMProvider,
        match_threshold: float = 0.5,
        match_count: int = 5,
        history_turns: int = 10,
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._llm_provider = llm_provider
        self._match_threshold = match_threshold
        self._match_count = match_count
        self._history_turns = history_turns
        self._temperature = temperature
        self._max_tokens = max_tokens

    def stream_answer(
        self,
        question: str,
        document_id: str | None = None,
        history: Sequence[ChatTurn] = (),
    ) -> AsyncIterator[ChatEvent]:
        """Validate *question* and return the event stream for it.

        Validation happens here, synchronously, so a caller (e.g. the HTTP
        route) can reject a bad request before committing to a stream.

        Raises
        ------
        ValidationError
            If the question is empty or whitespace.
        """
        if not question or not question.strip():
            raise ValidationError(message="Message is required")
        return self._stream(question.strip(), document_id, tuple(history))

    async def _stream(
        self,
        question: str,
        document_id: str | None,
        history: tuple[ChatTurn, ...],
    ) -> AsyncIterator[ChatEvent]:
        log = logger.bind(document_id=document_id)
        try:
            query_embedding = await self._embed_question(question)
            matches = await self._search(query_embedding, document_id)
        except DocQAError as exc:
            log.error("chat_retrieval_failed", error_type=type(exc).__name__, error=str(exc))
            yield ErrorEvent(error=type(exc).__name__, message=exc.message)
            return

        log.info(
            "chat_sources_retrieved",
            matches=len(matches),
            top_similarity=round(matches[0].similarity, 4) if matches else None,
        )
        yield SourcesEvent(sources=matches)

        messages = build_messages(question, matches, history, self._history_turns)
        fragments = self._llm_provider.stream_chat(
            messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        emitted = 0
        try:
            async for fragment in fragments:
                if not fragment:
                    continue
                emitted += 1
                yield TextEvent(content=fragment)
        except DocQAError as exc:
            log.error("chat_generation_failed", error_type=type(exc).__name__, error=str(exc))
            yield ErrorEvent(error=type(exc).__name__, message=exc.message)
            return
        except Exception as exc:
            wrapped = GenerationError(
                message=f"Generation failed: {exc}",
                provider_name=self._llm_provider.get_provider_name(),
            )
            log.error("chat_generation_failed", error_type=type(exc).__name__, error=str(exc))
            yield ErrorEvent(error=type(wrapped).__name__, message=wrapped.message)
            return
        finally:
            # Also runs when the consumer stops iterating early: abandon the
            # provider stream so no further output is produced.
            aclose = getattr(fragments, "aclose", None)
            if aclose is not None:
                await aclose()

        log.info("chat_answer_complete", fragments=emitted)
        yield DoneEvent()

    async def _embed_question(self, question: str) -> list[float]:
        try:
            return await self._embedding_provider.embed_single(question)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(
                message=f"Failed to embed question: {exc}",
                provider_name=self._embedding_provider.get_provider_name(),
            ) from exc

    async def _search(self, query_embedding: list[float], document_id: str | None) -> list[ChunkMatch]:
        try:
            matches = await self._vector_store.match_chunks(
                query_embedding,
                match_threshold=self._match_threshold,
                match_count=self._match_count,
                document_id=document_id,
            )
        except SearchError:
            raise
        except Exception as exc:
            raise SearchError(
                message=f"Chunk search failed: {exc}",
                provider_name=self._vector_store.get_provider_name(),
            ) from exc
        # Stable sort: equal scores keep the store's order.
        return sorted(matches, key=lambda m: m.similarity, reverse=True)
