"""Record store adapters (IRecordStore + IVectorStoreProvider implementations)."""

from docqa.providers.store.sqlite_document_store import SQLiteDocumentStore

__all__ = ["SQLiteDocumentStore"]
