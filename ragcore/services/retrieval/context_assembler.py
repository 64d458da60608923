"""Packs reranked chunks into a token-budgeted, cited context block."""

from __future__ import annotations

import structlog

from ragcore.models.rag import RAGContext, RetrievalSettings, RetrievedChunk
from ragcore.utils.scoring import estimate_tokens

logger = structlog.get_logger(logger_name=__name__)

CONTEXT_HEADER = "## Retrieved Context\n\n"
# Fixed budget charge for the header line.
HEADER_TOKENS = 20


class ContextAssembler:
    """Builds the :class:`RAGContext` handed back to the caller.

    Chunks are appended in rank order while the running token estimate
    stays within ``settings.max_tokens``.  The first chunk that would
    overflow the budget ends assembly; later, smaller chunks are not
    tried.  The returned context still lists every ranked chunk so callers
    can show all citations.
    """

    @staticmethod
    def render_chunk(chunk: RetrievedChunk) -> str:
        return f"**[{chunk.citation}]**\n{chunk.content}\n\n"

    def assemble(self, chunks: list[RetrievedChunk], settings: RetrievalSettings) -> RAGContext:
        if not chunks:
            return RAGContext.empty()

        parts = [CONTEXT_HEADER]
        total_tokens = HEADER_TOKENS
        sources: set[str] = set()
        included = 0

        for chunk in chunks:
            block = self.render_chunk(chunk)
            cost = estimate_tokens(block)
            if total_tokens + cost > settings.max_tokens:
                break
            parts.append(block)
            total_tokens += cost
            sources.add(chunk.document_name)
            included += 1

        if not included:
            logger.debug(
                "context_budget_exhausted",
                max_tokens=settings.max_tokens,
                first_chunk_tokens=estimate_tokens(self.render_chunk(chunks[0])),
            )
            return RAGContext(chunks=list(chunks))

        context = RAGContext(
            chunks=list(chunks),
            context_text="".join(parts).strip(),
            total_tokens=total_tokens,
            source_count=len(sources),
            included_count=included,
        )
        logger.debug(
            "context_assembled",
            chunks=len(chunks),
            included=included,
            tokens=total_tokens,
            sources=context.source_count,
        )
        return context
