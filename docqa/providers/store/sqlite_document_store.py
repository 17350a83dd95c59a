"""SQLite-backed document, chunk, and similarity-search store.

Persists documents and their embedded chunks to a local SQLite database at
``data/docqa.db`` using ``aiosqlite`` for async I/O.  Embeddings are stored
as JSON arrays; similarity search loads candidate vectors and scores them
with numpy cosine similarity, which is plenty for a single-user corpus of a
few thousand chunks.

Foreign keys are switched on for every connection so deleting a document
cascades to its chunks.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import aiosqlite
import numpy as np
import structlog

from docqa.interfaces.record_store import IRecordStore
from docqa.interfaces.vector_store_provider import IVectorStoreProvider
from docqa.models.document import ChunkMatch, Document, DocumentChunk, DocumentStatus
from docqa.utils.errors import PersistenceError, SearchError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docqa.db")

_CREATE_DOCUMENTS_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id          TEXT    PRIMARY KEY,
    name        TEXT    NOT NULL,
    size        INTEGER,
    status      TEXT    NOT NULL DEFAULT 'processing'
                        CHECK (status IN ('processing', 'ready', 'error')),
    created_at  TEXT    NOT NULL
);
"""

_CREATE_CHUNKS_SQL = """\
CREATE TABLE IF NOT EXISTS document_chunks (
    id           TEXT    PRIMARY KEY,
    document_id  TEXT    NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    content      TEXT    NOT NULL,
    embedding    TEXT    NOT NULL,
    chunk_index  INTEGER NOT NULL,
    created_at   TEXT    NOT NULL,
    UNIQUE(document_id, chunk_index)
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON document_chunks(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_created ON documents(created_at);",
]

_INSERT_DOCUMENT_SQL = """\
INSERT INTO documents (id, name, size, status, created_at)
VALUES (?, ?, ?, ?, ?);
"""

_INSERT_CHUNK_SQL = """\
INSERT INTO document_chunks (id, document_id, content, embedding, chunk_index, created_at)
VALUES (?, ?, ?, ?, ?, ?);
"""

_SELECT_DOCUMENT_COLUMNS = "SELECT id, name, size, status, created_at FROM documents"

# Natural order for similarity ties: oldest document first, then position.
_SELECT_CANDIDATES_SQL = """\
SELECT c.id, c.document_id, c.content, c.embedding
FROM document_chunks AS c
JOIN documents AS d ON d.id = c.document_id
WHERE d.status != 'error' {document_filter}
ORDER BY d.created_at, d.rowid, c.chunk_index;
"""


def _row_to_document(row: aiosqlite.Row) -> Document:
    return Document(
        id=row["id"],
        name=row["name"],
        size=row["size"],
        status=DocumentStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of each row of *matrix* against *query*.

    Zero-length vectors score 0.0 instead of producing NaN.
    """
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


class SQLiteDocumentStore(IRecordStore, IVectorStoreProvider):
    """SQLite persistence for documents and chunks, with cosine search."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys = ON;")
            yield db

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute(_CREATE_DOCUMENTS_SQL)
            await db.execute(_CREATE_CHUNKS_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(self, document: Document) -> Document:
        try:
            async with self._connect() as db:
                await db.execute(
                    _INSERT_DOCUMENT_SQL,
                    (
                        document.id,
                        document.name,
                        document.size,
                        document.status.value,
                        document.created_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to create document: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("document_created", document_id=document.id, name=document.name)
        return document

    async def get_document(self, document_id: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(f"{_SELECT_DOCUMENT_COLUMNS} WHERE id = ?", (document_id,))
            row = await cursor.fetchone()
        return _row_to_document(row) if row is not None else None

    async def list_documents(self) -> list[Document]:
        """Return every document, newest first."""
        async with self._connect() as db:
            cursor = await db.execute(
                f"{_SELECT_DOCUMENT_COLUMNS} ORDER BY created_at DESC, rowid DESC"
            )
            rows = await cursor.fetchall()
        return [_row_to_document(r) for r in rows]

    async def update_status(self, document_id: str, status: DocumentStatus) -> bool:
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    "UPDATE documents SET status = ? WHERE id = ?",
                    (status.value, document_id),
                )
                await db.commit()
                updated = cursor.rowcount > 0
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to update status of {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug(
            "document_status_updated",
            document_id=document_id,
            status=status.value,
            updated=updated,
        )
        return updated

    async def delete_document(self, document_id: str) -> bool:
        try:
            async with self._connect() as db:
                cursor = await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
                await db.commit()
                deleted = cursor.rowcount > 0
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to delete document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if deleted:
            logger.info("document_deleted", document_id=document_id)
        return deleted

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def add_chunks(self, chunks: list[DocumentChunk]) -> int:
        """Insert a batch of chunks in a single transaction."""
        if not chunks:
            return 0

        rows = [
            (
                chunk.id,
                chunk.document_id,
                chunk.content,
                json.dumps(chunk.embedding),
                chunk.chunk_index,
                chunk.created_at.isoformat(),
            )
            for chunk in chunks
        ]
        try:
            async with self._connect() as db:
                await db.executemany(_INSERT_CHUNK_SQL, rows)
                await db.commit()
        except aiosqlite.Error as exc:
            # Leaving the connection without commit discards the partial batch.
            raise PersistenceError(
                message=f"Failed to insert {len(rows)} chunks: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return len(rows)

    async def count_chunks(self, document_id: str | None = None) -> int:
        async with self._connect() as db:
            if document_id is None:
                cursor = await db.execute("SELECT COUNT(*) FROM document_chunks")
            else:
                cursor = await db.execute(
                    "SELECT COUNT(*) FROM document_chunks WHERE document_id = ?",
                    (document_id,),
                )
            row = await cursor.fetchone()
        return int(row[0])

    async def get_chunks(self, document_id: str) -> list[DocumentChunk]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, document_id, content, embedding, chunk_index, created_at "
                "FROM document_chunks WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [
            DocumentChunk(
                id=r["id"],
                document_id=r["document_id"],
                content=r["content"],
                embedding=json.loads(r["embedding"]),
                chunk_index=r["chunk_index"],
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def match_chunks(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        document_id: str | None = None,
    ) -> list[ChunkMatch]:
        if match_count <= 0:
            return []

        document_filter = "AND c.document_id = ?" if document_id else ""
        params: tuple = (document_id,) if document_id else ()
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    _SELECT_CANDIDATES_SQL.format(document_filter=document_filter),
                    params,
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise SearchError(
                message=f"Chunk search query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        query = np.asarray(query_embedding, dtype=np.float64)
        candidates: list[aiosqlite.Row] = []
        vectors: list[list[float]] = []
        skipped = 0
        for row in rows:
            vector = json.loads(row["embedding"])
            # Vectors from a different embedding model cannot be compared.
            if len(vector) != query.shape[0]:
                skipped += 1
                continue
            candidates.append(row)
            vectors.append(vector)

        if skipped:
            logger.warning("chunk_search_dimension_mismatch", skipped=skipped, dimension=query.shape[0])
        if not candidates:
            return []

        similarities = cosine_similarities(np.asarray(vectors, dtype=np.float64), query)
        order = np.argsort(-similarities, kind="stable")

        matches: list[ChunkMatch] = []
        for idx in order:
            score = float(similarities[idx])
            if score <= match_threshold:
                break
            row = candidates[idx]
            matches.append(
                ChunkMatch(
                    id=row["id"],
                    document_id=row["document_id"],
                    content=row["content"],
                    similarity=score,
                )
            )
            if len(matches) >= match_count:
                break

        logger.debug(
            "chunk_search_complete",
            candidates=len(candidates),
            matches=len(matches),
            document_id=document_id,
        )
        return matches

    def get_provider_name(self) -> str:
        return "sqlite"
