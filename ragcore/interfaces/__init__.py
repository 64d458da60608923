"""Public interface definitions for the RAG core's external collaborators.

The embedding service and the persistence layer are accessed exclusively
through the abstract base classes defined here.  Concrete adapters live in
``ragcore/providers/`` and are wired together in ``ragcore/main.py``; tests
inject deterministic fakes instead.

    Interface            →  Concrete implementations (in ragcore/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider   →  OpenAIEmbeddingProvider, OllamaEmbeddingProvider
    IDocumentStore       →  SQLiteDocumentStore, MemoryDocumentStore
"""

from ragcore.interfaces.document_store import IDocumentStore
from ragcore.interfaces.embedding_provider import IEmbeddingProvider

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
]
