"""Document store implementations.

    SQLiteDocumentStore — durable, single-file store via aiosqlite.
    MemoryDocumentStore — dict-backed, for tests and ephemeral corpora.
"""

from ragcore.providers.store.memory_store import MemoryDocumentStore
from ragcore.providers.store.sqlite_store import SQLiteDocumentStore

__all__ = ["MemoryDocumentStore", "SQLiteDocumentStore"]
