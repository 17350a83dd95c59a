"""Keeps uploaded PDFs on the local filesystem.

Layout is ``<root>/<document_id>/<filename>``, one directory per document,
so deleting a document removes its directory.  Disk I/O runs in a worker
thread.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import structlog

from docqa.interfaces.file_store import IFileStore
from docqa.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)


class LocalFileStore(IFileStore):
    """Filesystem-backed :class:`IFileStore` rooted at *root_dir*."""

    def __init__(self, root_dir: str | Path) -> None:
        self._root = Path(root_dir)

    @property
    def root_dir(self) -> Path:
        return self._root

    async def save(self, document_id: str, filename: str, data: bytes) -> str:
        # Only the final path component is kept; upload names are untrusted.
        name = Path(filename).name or "document.pdf"
        target = self._document_dir(document_id) / name
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise PersistenceError(
                message=f"Failed to store upload {name}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        key = f"{document_id}/{name}"
        logger.debug("upload_file_stored", key=key, size=len(data))
        return key

    async def delete(self, document_id: str) -> bool:
        directory = self._document_dir(document_id)
        if not directory.is_dir():
            return False
        try:
            await asyncio.to_thread(shutil.rmtree, directory)
        except OSError as exc:
            raise PersistenceError(
                message=f"Failed to remove stored upload for {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("upload_file_removed", document_id=document_id)
        return True

    def get_provider_name(self) -> str:
        return "local_files"

    def _document_dir(self, document_id: str) -> Path:
        if document_id in ("", ".", "..") or Path(document_id).name != document_id:
            raise PersistenceError(
                message=f"Invalid document id for file storage: {document_id!r}",
                provider_name=self.get_provider_name(),
            )
        return self._root / document_id

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
