"""Pydantic data models for the ragcore ingestion and retrieval pipeline."""

from ragcore.models.rag import (
    Chunk,
    ChunkHit,
    Document,
    IngestionResult,
    RAGContext,
    RetrievalSettings,
    RetrievalStats,
    RetrievedChunk,
    SearchCandidate,
    TextSegment,
)

__all__ = [
    "Chunk",
    "ChunkHit",
    "Document",
    "IngestionResult",
    "RAGContext",
    "RetrievalSettings",
    "RetrievalStats",
    "RetrievedChunk",
    "SearchCandidate",
    "TextSegment",
]
