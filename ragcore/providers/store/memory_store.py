"""In-memory document store.

Plain dicts keyed by id, suitable for tests, notebooks and single-process
deployments that rebuild their corpus on start.  Scoring uses the same
helpers as the SQLite store, so results are identical across backends.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from ragcore.interfaces.document_store import IDocumentStore
from ragcore.models.rag import Chunk, ChunkHit, Document, RetrievalStats
from ragcore.utils.errors import DocumentNotFoundError, DuplicateDocumentError, RAGError
from ragcore.utils.scoring import cosine_similarity, keyword_scores

logger = structlog.get_logger(logger_name=__name__)


class MemoryDocumentStore(IDocumentStore):
    """Dict-backed :class:`IDocumentStore`."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._chunks: dict[str, Chunk] = {}

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def find_document(self, user_id: str, content_hash: str) -> Document | None:
        return self._by_hash(user_id, content_hash)

    async def create_document(self, document: Document) -> Document:
        if self._by_hash(document.user_id, document.content_hash) is not None:
            raise DuplicateDocumentError(
                message=f"Document with hash {document.content_hash[:12]} already exists",
                provider_name=self.get_provider_name(),
            )
        self._documents[document.id] = document
        return document

    async def reset_document(self, document_id: str) -> None:
        self._update(document_id, processed=False, processing_error=None)
        self._drop_chunks(document_id)

    async def mark_processed(self, document_id: str) -> None:
        self._update(document_id, processed=True, processing_error=None)

    async def mark_failed(self, document_id: str, error: str) -> None:
        self._update(document_id, processed=False, processing_error=error)

    async def get_document(self, user_id: str, document_id: str) -> Document | None:
        doc = self._documents.get(document_id)
        if doc is None or doc.user_id != user_id:
            return None
        return doc

    async def list_documents(self, user_id: str) -> list[Document]:
        docs = [d for d in self._documents.values() if d.user_id == user_id]
        return sorted(docs, key=lambda d: d.created_at, reverse=True)

    async def delete_document(self, user_id: str, document_id: str) -> int:
        if await self.get_document(user_id, document_id) is None:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found for user",
                provider_name=self.get_provider_name(),
            )
        deleted = self._drop_chunks(document_id, user_id=user_id)
        del self._documents[document_id]
        logger.debug("memory_store_delete", document_id=document_id, chunks=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def add_chunks(self, chunks: list[Chunk]) -> int:
        # Validate the whole batch before touching state: all or nothing.
        for chunk in chunks:
            doc = self._documents.get(chunk.document_id)
            if doc is None:
                raise RAGError(
                    message=f"Chunk {chunk.id} references unknown document {chunk.document_id}",
                    provider_name=self.get_provider_name(),
                )
            if doc.user_id != chunk.user_id:
                raise RAGError(
                    message=f"Chunk {chunk.id} owner does not match its document owner",
                    provider_name=self.get_provider_name(),
                )
        for chunk in chunks:
            self._chunks[chunk.id] = chunk
        return len(chunks)

    async def vector_search(
        self,
        embedding: list[float],
        user_id: str,
        limit: int,
        enforce_acl: bool = True,
    ) -> list[ChunkHit]:
        scored = [
            (cosine_similarity(embedding, chunk.embedding), chunk, doc)
            for chunk, doc in self._searchable(user_id, enforce_acl)
        ]
        return self._top_hits(scored, limit)

    async def keyword_search(
        self,
        query: str,
        user_id: str,
        limit: int,
        enforce_acl: bool = True,
    ) -> list[ChunkHit]:
        pairs = self._searchable(user_id, enforce_acl)
        scores = keyword_scores(query, [chunk.content for chunk, _ in pairs])
        scored = [(score, chunk, doc) for score, (chunk, doc) in zip(scores, pairs)]
        return self._top_hits([s for s in scored if s[0] > 0.0], limit)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def get_stats(self, user_id: str) -> RetrievalStats:
        docs = [d for d in self._documents.values() if d.user_id == user_id]
        processed = sum(1 for d in docs if d.processed)
        total_chunks = sum(1 for c in self._chunks.values() if c.user_id == user_id)
        return RetrievalStats(
            total_documents=len(docs),
            processed_documents=processed,
            total_chunks=total_chunks,
            avg_chunks_per_doc=total_chunks / processed if processed else 0.0,
        )

    def get_provider_name(self) -> str:
        return "memory"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _by_hash(self, user_id: str, content_hash: str) -> Document | None:
        for doc in self._documents.values():
            if doc.user_id == user_id and doc.content_hash == content_hash:
                return doc
        return None

    def _update(self, document_id: str, **changes: object) -> None:
        doc = self._documents.get(document_id)
        if doc is None:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                provider_name=self.get_provider_name(),
            )
        changes["updated_at"] = datetime.now(timezone.utc)
        self._documents[document_id] = doc.model_copy(update=changes)

    def _drop_chunks(self, document_id: str, user_id: str | None = None) -> int:
        doomed = [
            cid
            for cid, c in self._chunks.items()
            if c.document_id == document_id and (user_id is None or c.user_id == user_id)
        ]
        for cid in doomed:
            del self._chunks[cid]
        return len(doomed)

    def _searchable(self, user_id: str, enforce_acl: bool) -> list[tuple[Chunk, Document]]:
        pairs: list[tuple[Chunk, Document]] = []
        for chunk in self._chunks.values():
            doc = self._documents.get(chunk.document_id)
            if doc is None or not doc.processed:
                continue
            if enforce_acl and chunk.user_id != user_id:
                continue
            pairs.append((chunk, doc))
        return pairs

    @staticmethod
    def _top_hits(scored: list[tuple[float, Chunk, Document]], limit: int) -> list[ChunkHit]:
        ranked = sorted(scored, key=lambda s: s[0], reverse=True)[:limit]
        return [
            ChunkHit(
                chunk_id=chunk.id,
                document_id=doc.id,
                document_name=doc.original_name,
                content=chunk.content,
                summary=chunk.summary,
                heading_path=chunk.heading_path,
                page_from=chunk.page_from,
                page_to=chunk.page_to,
                score=score,
            )
            for score, chunk, doc in ranked
        ]
