"""Retrieval facade: search -> rerank -> assemble.

This is the inbound interface conversation services call once per user
turn.  It never raises: disabled retrieval, an empty corpus and any
internal failure all come back as :meth:`RAGContext.empty`, so the
conversation can always proceed without context.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from ragcore.models.rag import RAGContext, RetrievalSettings, RetrievalStats
from ragcore.services.retrieval.context_assembler import ContextAssembler
from ragcore.services.retrieval.hybrid_search import HybridSearchEngine
from ragcore.services.retrieval.reranker import Reranker
from ragcore.utils.logging import bind_request_context

if TYPE_CHECKING:
    from ragcore.interfaces.document_store import IDocumentStore

logger = structlog.get_logger(logger_name=__name__)


class RetrievalService:
    """Runs the full retrieval pipeline for one query."""

    def __init__(
        self,
        search_engine: HybridSearchEngine,
        reranker: Reranker,
        assembler: ContextAssembler,
        document_store: IDocumentStore,
    ) -> None:
        self._search_engine = search_engine
        self._reranker = reranker
        self._assembler = assembler
        self._store = document_store

    async def retrieve_context(
        self,
        query: str,
        user_id: str,
        settings: RetrievalSettings,
    ) -> RAGContext:
        """Return cited, budgeted context for *query*, or an empty context."""
        if not settings.enabled:
            return RAGContext.empty()

        start = time.monotonic()
        with bind_request_context(user_id=user_id):
            try:
                candidates = await self._search_engine.search(query, user_id, settings)
                ranked = self._reranker.rerank(query, candidates, settings)
                context = self._assembler.assemble(ranked, settings)
            except Exception as exc:
                logger.error(
                    "retrieval_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return RAGContext.empty()

            logger.info(
                "retrieval_complete",
                candidates=len(candidates),
                chunks=len(context.chunks),
                included=context.included_count,
                tokens=context.total_tokens,
                sources=context.source_count,
                duration_ms=round((time.monotonic() - start) * 1000),
            )
        return context

    async def get_retrieval_stats(self, user_id: str) -> RetrievalStats:
        """Return per-user corpus statistics."""
        return await self._store.get_stats(user_id)
