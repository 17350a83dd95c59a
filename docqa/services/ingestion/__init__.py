"""Document ingestion: the extract/split/embed/store pipeline and its background runner."""

from docqa.services.ingestion.ingestion_runner import IngestionRunner
from docqa.services.ingestion.ingestion_service import IngestionService

__all__ = ["IngestionRunner", "IngestionService"]
