"""Abstract base class for the document/chunk persistence layer.

Defines the contract for storing documents and their embedded chunks and for
the two scoped candidate queries used by hybrid search.  Implementations may
wrap SQLite, Postgres + pgvector, or plain memory; the ingestion and
retrieval services only ever see this interface.

Access control lives here: every read and delete takes the caller's
``user_id``, and searches only ever consider chunks of *processed*
documents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ragcore.models.rag import Chunk, ChunkHit, Document, RetrievalStats


# Concrete implementations: SQLiteDocumentStore, MemoryDocumentStore
# Located in: ragcore/providers/store/
class IDocumentStore(ABC):
    """Contract for the document store used by the RAG core.

    All methods are async so network-backed stores never block the event
    loop.
    """

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    async def find_document(self, user_id: str, content_hash: str) -> Document | None:
        """Return the user's document with this content fingerprint, if any."""

    @abstractmethod
    async def create_document(self, document: Document) -> Document:
        """Insert a new, unprocessed document.

        Raises
        ------
        ragcore.utils.errors.DuplicateDocumentError
            If ``(user_id, content_hash)`` already exists.
        ragcore.utils.errors.RAGError
            If the write fails.
        """

    @abstractmethod
    async def reset_document(self, document_id: str) -> None:
        """Return a failed document to the unprocessed state.

        Clears ``processing_error`` and deletes any chunks already stored
        for the document so ingestion can run again from scratch.
        """

    @abstractmethod
    async def mark_processed(self, document_id: str) -> None:
        """Flag the document as processed (all chunks stored)."""

    @abstractmethod
    async def mark_failed(self, document_id: str, error: str) -> None:
        """Record *error* on the document and leave it unprocessed."""

    @abstractmethod
    async def get_document(self, user_id: str, document_id: str) -> Document | None:
        """Return the document if it exists *and* belongs to *user_id*."""

    @abstractmethod
    async def list_documents(self, user_id: str) -> list[Document]:
        """Return all of the user's documents, newest first."""

    @abstractmethod
    async def delete_document(self, user_id: str, document_id: str) -> int:
        """Delete the document's chunks, then the document itself.

        Both deletes are scoped to *user_id*.

        Returns
        -------
        int
            The number of chunks deleted.

        Raises
        ------
        ragcore.utils.errors.DocumentNotFoundError
            If no such document belongs to *user_id*.
        """

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    @abstractmethod
    async def add_chunks(self, chunks: list[Chunk]) -> int:
        """Persist *chunks* in a single batch write.

        Returns
        -------
        int
            The number of chunks stored.

        Raises
        ------
        ragcore.utils.errors.RAGError
            If the batch write fails; nothing is stored in that case.
        """

    @abstractmethod
    async def vector_search(
        self,
        embedding: list[float],
        user_id: str,
        limit: int,
        enforce_acl: bool = True,
    ) -> list[ChunkHit]:
        """Return the top *limit* chunks by cosine similarity, best first.

        With *enforce_acl* set only the user's processed documents are
        searched; otherwise every processed document is.
        """

    @abstractmethod
    async def keyword_search(
        self,
        query: str,
        user_id: str,
        limit: int,
        enforce_acl: bool = True,
    ) -> list[ChunkHit]:
        """Return the top *limit* chunks by lexical relevance, best first.

        Chunks that match none of the query terms are not returned.
        """

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_stats(self, user_id: str) -> RetrievalStats:
        """Return document/chunk counts for *user_id*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite"``."""
