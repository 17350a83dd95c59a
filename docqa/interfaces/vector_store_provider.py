"""Abstract base class for nearest-neighbour chunk search."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docqa.models.document import ChunkMatch


# Concrete implementation: SQLiteDocumentStore (docqa/providers/store/)
class IVectorStoreProvider(ABC):
    """Contract for similarity search over stored chunk embeddings."""

    @abstractmethod
    async def match_chunks(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        document_id: str | None = None,
    ) -> list[ChunkMatch]:
        """Return up to *match_count* chunks scoring above *match_threshold*.

        Parameters
        ----------
        query_embedding:
            Vector produced by the same embedding provider used at ingestion.
        match_threshold:
            Minimum similarity a chunk must exceed to be returned.
        match_count:
            Maximum number of matches.
        document_id:
            When given, restrict the search to this document's chunks.

        Returns
        -------
        list[ChunkMatch]
            Ordered by descending similarity; ties keep the store's natural
            order.  Empty when nothing clears the threshold.

        Raises
        ------
        docqa.utils.errors.SearchError
            If the search cannot be performed.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
