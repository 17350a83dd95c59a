"""Original-file storage adapters (IFileStore implementations)."""

from docqa.providers.storage.local_file_store import LocalFileStore

__all__ = ["LocalFileStore"]
