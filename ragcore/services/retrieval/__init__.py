"""Query-time retrieval: hybrid search, reranking and context assembly."""

from ragcore.services.retrieval.context_assembler import ContextAssembler
from ragcore.services.retrieval.hybrid_search import HybridSearchEngine
from ragcore.services.retrieval.reranker import Reranker, format_citation
from ragcore.services.retrieval.retrieval_service import RetrievalService

__all__ = [
    "ContextAssembler",
    "HybridSearchEngine",
    "Reranker",
    "RetrievalService",
    "format_citation",
]
