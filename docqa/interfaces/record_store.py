"""Abstract base class for document and chunk persistence.

The record store owns the two tables the pipelines touch: documents (with
their status) and chunks (with their embeddings).  Deleting a document must
remove its chunks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docqa.models.document import Document, DocumentChunk, DocumentStatus


# Concrete implementation: SQLiteDocumentStore (docqa/providers/store/)
class IRecordStore(ABC):
    """Contract for document and chunk rows."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""

    @abstractmethod
    async def create_document(self, document: Document) -> Document:
        """Insert a new document row and return it."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document, or ``None`` if it does not exist."""

    @abstractmethod
    async def list_documents(self) -> list[Document]:
        """Return every document, newest first."""

    @abstractmethod
    async def update_status(self, document_id: str, status: DocumentStatus) -> bool:
        """Set the processing status of a document.

        Returns ``False`` when the document no longer exists.

        Raises
        ------
        docqa.utils.errors.PersistenceError
            If the write fails.
        """

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """Delete a document and all of its chunks.

        Returns ``False`` when the document did not exist.
        """

    @abstractmethod
    async def add_chunks(self, chunks: list[DocumentChunk]) -> int:
        """Append a batch of chunk rows in one write.

        Either the whole batch is stored or none of it is.

        Returns
        -------
        int
            Number of rows written.

        Raises
        ------
        docqa.utils.errors.PersistenceError
            If the write fails.
        """

    @abstractmethod
    async def count_chunks(self, document_id: str | None = None) -> int:
        """Return the number of stored chunks, optionally for one document."""

    @abstractmethod
    async def get_chunks(self, document_id: str) -> list[DocumentChunk]:
        """Return a document's chunks ordered by ``chunk_index``."""
