"""Abstract base class for keeping the original uploaded files."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalFileStore (docqa/providers/storage/)
class IFileStore(ABC):
    """Stores the raw bytes of each uploaded document under its id."""

    @abstractmethod
    async def save(self, document_id: str, filename: str, data: bytes) -> str:
        """Persist *data* and return the key it was stored under.

        Raises
        ------
        docqa.utils.errors.PersistenceError
            If the file cannot be written.
        """

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        """Remove every file stored for *document_id*; ``False`` if there were none."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
