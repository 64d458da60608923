"""Hybrid-score reranking with a per-document diversity cap.

Candidates are scored as ``vector * w + keyword * (1 - w)``, filtered by
``min_score``, sorted best-first, capped at ``max_per_doc`` per source
document and truncated to ``k``.  Each survivor gets a human-readable
citation.
"""

from __future__ import annotations

from collections import defaultdict

import structlog

from ragcore.models.rag import RetrievalSettings, RetrievedChunk, SearchCandidate

logger = structlog.get_logger(logger_name=__name__)

_CITATION_SEPARATOR = " — "


def format_citation(
    document_name: str,
    heading_path: str | None = None,
    page_from: int | None = None,
    page_to: int | None = None,
) -> str:
    """Render ``name[ — heading][ — p.N[-M]]``.

    >>> format_citation("guide.pdf", "Intro", 2, 3)
    'guide.pdf — Intro — p.2-3'
    """
    parts = [document_name]
    if heading_path:
        parts.append(heading_path)
    if page_from is not None:
        if page_to is not None and page_to != page_from:
            parts.append(f"p.{page_from}-{page_to}")
        else:
            parts.append(f"p.{page_from}")
    return _CITATION_SEPARATOR.join(parts)


class Reranker:
    """Turns search candidates into the final, cited chunk list."""

    @staticmethod
    def hybrid_score(candidate: SearchCandidate, hybrid_weight: float) -> float:
        score = (
            candidate.vector_score * hybrid_weight
            + candidate.keyword_score * (1.0 - hybrid_weight)
        )
        return min(1.0, max(0.0, score))

    def rerank(
        self,
        query: str,
        candidates: list[SearchCandidate],
        settings: RetrievalSettings,
    ) -> list[RetrievedChunk]:
        """Score, filter, sort, diversify and cite *candidates*.

        Parameters
        ----------
        query:
            The user query; only used for logging.
        candidates:
            Output of :class:`~ragcore.services.retrieval.hybrid_search.HybridSearchEngine`.
        settings:
            Supplies ``hybrid_weight``, ``min_score``, ``max_per_doc`` and ``k``.

        Returns
        -------
        list[RetrievedChunk]
            At most ``k`` chunks in non-increasing score order, no more than
            ``max_per_doc`` from any one document.  Ties keep candidate order.
        """
        scored = [
            (self.hybrid_score(c, settings.hybrid_weight), c) for c in candidates
        ]
        passing = [(score, c) for score, c in scored if score >= settings.min_score]
        # sorted() is stable, so equal scores keep their candidate order.
        passing = sorted(passing, key=lambda pair: pair[0], reverse=True)

        per_doc: defaultdict[str, int] = defaultdict(int)
        selected: list[RetrievedChunk] = []
        for score, candidate in passing:
            hit = candidate.hit
            if per_doc[hit.document_id] >= settings.max_per_doc:
                continue
            per_doc[hit.document_id] += 1
            selected.append(
                RetrievedChunk(
                    id=hit.chunk_id,
                    document_id=hit.document_id,
                    document_name=hit.document_name,
                    content=hit.content,
                    summary=hit.summary,
                    score=score,
                    heading_path=hit.heading_path,
                    page_from=hit.page_from,
                    page_to=hit.page_to,
                    citation=format_citation(
                        hit.document_name, hit.heading_path, hit.page_from, hit.page_to
                    ),
                )
            )
            if len(selected) >= settings.k:
                break

        logger.debug(
            "rerank_complete",
            query_length=len(query),
            candidates=len(candidates),
            above_threshold=len(passing),
            selected=len(selected),
        )
        return selected
