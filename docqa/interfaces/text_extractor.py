"""Abstract base class for document text extraction."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: PyMuPDFTextExtractor (docqa/providers/extraction/)
class ITextExtractor(ABC):
    """Turns raw document bytes into plain text."""

    @abstractmethod
    async def extract(self, data: bytes) -> str:
        """Return the full text of the document.

        May return an empty string when the document has no text layer; the
        ingestion pipeline decides what to do with that.

        Raises
        ------
        docqa.utils.errors.ExtractionError
            If the bytes cannot be parsed as a document.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this extractor."""
