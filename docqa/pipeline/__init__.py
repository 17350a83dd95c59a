"""Cross-cutting pipeline state: document status tracking and subscription."""

from docqa.pipeline.status_tracker import DocumentStatusTracker

__all__ = ["DocumentStatusTracker"]
