"""Shared pytest fixtures for the docqa test suite.

Provides deterministic in-memory stand-ins for the external providers
(embeddings, LLM, PDF extraction) plus a real SQLite store on a temporary
path, so pipelines can be exercised end to end without network access.
"""

from __future__ import annotations

import hashlib
import math
import re
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.interfaces.text_extractor import ITextExtractor
from docqa.pipeline.status_tracker import DocumentStatusTracker
from docqa.providers.store.sqlite_document_store import SQLiteDocumentStore

_WORD_RE = re.compile(r"[a-z0-9]+")


# ---------------------------------------------------------------------------
# Mock providers
# ---------------------------------------------------------------------------


class MockEmbeddingProvider(IEmbeddingProvider):
    """Bag-of-words hashing embedder.

    Texts that share words get a high cosine similarity, texts with no words
    in common score 0.0, and the same text always maps to the same vector.
    """

    def __init__(self, dimension: int = 256) -> None:
        self._dimension = dimension
        self.calls: list[str] = []

    def vector_for(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in _WORD_RE.findall(text.lower()):
            digest = hashlib.md5(word.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "big") % self._dimension] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector] if norm else vector

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.vector_for(text)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock_embedding"

    def is_available(self) -> bool:
        return True


class MockLLMProvider(ILLMProvider):
    """Streams a scripted list of fragments and records what it was sent.

    Set ``fail_after`` to raise ``error`` once that many fragments have been
    yielded.  ``closed`` becomes ``True`` when the stream is finished or
    abandoned.
    """

    def __init__(
        self,
        fragments: list[str] | None = None,
        fail_after: int | None = None,
        error: Exception | None = None,
    ) -> None:
        self.fragments = fragments if fragments is not None else ["The answer ", "is 42 ", "[1]."]
        self.fail_after = fail_after
        self.error = error or RuntimeError("model exploded")
        self.calls: list[dict] = []
        self.closed = False

    async def stream_chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> AsyncIterator[str]:
        self.calls.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        try:
            for i, fragment in enumerate(self.fragments):
                if self.fail_after is not None and i >= self.fail_after:
                    raise self.error
                yield fragment
            if self.fail_after is not None and self.fail_after >= len(self.fragments):
                raise self.error
        finally:
            self.closed = True

    def is_available(self) -> bool:
        return True

    def get_provider_name(self) -> str:
        return "mock_llm"


class FakeTextExtractor(ITextExtractor):
    """Returns fixed text for any input, or raises a configured error."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls = 0

    async def extract(self, data: bytes) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text

    def get_provider_name(self) -> str:
        return "fake_extractor"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture()
def mock_llm_provider() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture()
def status_tracker() -> DocumentStatusTracker:
    return DocumentStatusTracker()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "docqa_test.db"


@pytest_asyncio.fixture
async def sqlite_store(db_path: Path) -> SQLiteDocumentStore:
    """An initialized SQLite store on a throwaway database file."""
    store = SQLiteDocumentStore(db_path=db_path)
    await store.initialize()
    return store


@pytest.fixture()
def sample_document_text() -> str:
    """Three paragraphs on distinct topics for retrieval tests."""
    return (
        "Photosynthesis converts sunlight, water and carbon dioxide into glucose "
        "and oxygen inside the chloroplasts of plant cells.\n\n"
        "The quarterly revenue grew by twelve percent, driven mainly by strong "
        "subscription sales in the European market.\n\n"
        "Volcanic eruptions release ash and sulfur dioxide high into the "
        "stratosphere, which can cool the global climate for several years."
    )


def make_pdf_bytes(pages: list[str]) -> bytes:
    """Build a small real PDF with one text page per entry."""
    import fitz

    doc = fitz.open()
    try:
        for text in pages:
            page = doc.new_page()
            if text:
                page.insert_text((72, 72), text)
        return doc.tobytes()
    finally:
        doc.close()
