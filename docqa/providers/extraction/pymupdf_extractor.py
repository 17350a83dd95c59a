"""PDF text extraction using PyMuPDF (fitz).

Reads the uploaded bytes directly from memory, extracts text page-by-page
and joins non-empty pages with a blank line so the splitter sees page
breaks as paragraph boundaries.  Parsing is CPU bound, so it runs in a
worker thread to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from docqa.interfaces.text_extractor import ITextExtractor
from docqa.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class PyMuPDFTextExtractor(ITextExtractor):
    """Extracts the text layer of a PDF held in memory."""

    async def extract(self, data: bytes) -> str:
        if not data:
            raise ExtractionError(
                message="Cannot extract text from an empty file",
                provider_name=self.get_provider_name(),
            )
        return await asyncio.to_thread(self._extract_sync, data)

    def get_provider_name(self) -> str:
        return "pymupdf"

    def _extract_sync(self, data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            # PyMuPDF raises several unrelated exception types for corrupt input.
            raise ExtractionError(
                message=f"Could not open PDF: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        page_count = doc.page_count
        pages: list[str] = []
        try:
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    pages.append(text)
        finally:
            doc.close()

        logger.info(
            "pdf_text_extracted",
            pages=page_count,
            pages_with_text=len(pages),
            chars=sum(len(p) for p in pages),
        )
        return "\n\n".join(pages)
