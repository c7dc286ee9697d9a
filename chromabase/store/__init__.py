"""Document store backends."""

from chromabase.store.base import DocumentStore
from chromabase.store.sqlite import SQLiteDocumentStore

__all__ = [
    "DocumentStore",
    "SQLiteDocumentStore",
]
