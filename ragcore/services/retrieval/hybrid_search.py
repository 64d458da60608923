"""Hybrid (vector + keyword) candidate search.

Embeds the query once, then runs the store's vector and keyword queries
concurrently and merges both result lists into one candidate per chunk.
Each candidate keeps the two scores separate; weighting them is the
reranker's job.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from ragcore.models.rag import ChunkHit, RetrievalSettings, SearchCandidate

if TYPE_CHECKING:
    from ragcore.interfaces.document_store import IDocumentStore
    from ragcore.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)


class HybridSearchEngine:
    """Produces :class:`SearchCandidate` values for a query."""

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._store = document_store

    async def search(
        self,
        query: str,
        user_id: str,
        settings: RetrievalSettings,
    ) -> list[SearchCandidate]:
        """Return merged vector and keyword candidates for *query*.

        Vector hits come first in their ranked order, followed by chunks
        found only by the keyword query.  Returns ``[]`` without touching
        the provider when retrieval is disabled.
        """
        if not settings.enabled:
            return []

        embedding = await self._embedding_provider.embed_single(query)
        vector_hits, keyword_hits = await asyncio.gather(
            self._store.vector_search(
                embedding,
                user_id,
                limit=settings.rerank_top_n,
                enforce_acl=settings.enforce_acl,
            ),
            self._store.keyword_search(
                query,
                user_id,
                limit=settings.rerank_top_n,
                enforce_acl=settings.enforce_acl,
            ),
        )

        candidates = self.merge(vector_hits, keyword_hits)
        logger.debug(
            "hybrid_search_complete",
            user_id=user_id,
            vector_hits=len(vector_hits),
            keyword_hits=len(keyword_hits),
            candidates=len(candidates),
        )
        return candidates

    @staticmethod
    def merge(
        vector_hits: list[ChunkHit],
        keyword_hits: list[ChunkHit],
    ) -> list[SearchCandidate]:
        """Combine both hit lists into one candidate per chunk id."""
        merged: dict[str, SearchCandidate] = {}

        for hit in vector_hits:
            if hit.chunk_id not in merged:
                merged[hit.chunk_id] = SearchCandidate(hit=hit, vector_score=hit.score)

        for hit in keyword_hits:
            existing = merged.get(hit.chunk_id)
            if existing is None:
                merged[hit.chunk_id] = SearchCandidate(hit=hit, keyword_score=hit.score)
            else:
                merged[hit.chunk_id] = existing.model_copy(update={"keyword_score": hit.score})

        return list(merged.values())
