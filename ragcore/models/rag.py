"""RAG data models: documents, chunks, retrieval settings and results.

Defines Pydantic v2 models for the two persisted entities (:class:`Document`,
:class:`Chunk`), the per-call :class:`RetrievalSettings`, and the ephemeral
per-query values (:class:`SearchCandidate`, :class:`RetrievedChunk`,
:class:`RAGContext`).  All models are frozen; "updates" produce new
instances via ``model_copy(update=...)``.

Lifecycle overview:

    1. INGESTION: extracted text becomes a :class:`Document` plus a batch of
       :class:`Chunk` rows (text, heading breadcrumb, page estimate, summary,
       embedding).
    2. SEARCH: the store returns :class:`ChunkHit` rows from a vector query
       and a keyword query; they are merged into :class:`SearchCandidate`.
    3. RERANK: candidates become cited :class:`RetrievedChunk` values.
    4. ASSEMBLY: retrieved chunks are packed into a token-budgeted
       :class:`RAGContext` for the calling conversation service.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

logger = structlog.get_logger(logger_name=__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """An ingested source document owned by exactly one user.

    ``(user_id, content_hash)`` is unique: re-ingesting identical text for
    the same user resolves to the existing document.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque document identifier (UUID).")
    user_id: str = Field(description="Owning user.")
    original_name: str = Field(description="Original filename as uploaded.")
    media_type: str = Field(default="text/plain", description="Declared media type.")
    byte_size: int = Field(default=0, ge=0, description="Size of the uploaded file in bytes.")
    content_hash: str = Field(description="SHA-256 hex digest of the extracted text.")
    extracted_text: str = Field(default="", description="Raw extracted text.")
    tags: list[str] = Field(default_factory=list)
    processed: bool = Field(default=False, description="True once all chunks are stored.")
    processing_error: str | None = Field(
        default=None,
        description="Human-readable error recorded when ingestion failed.",
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def failed(self) -> bool:
        """True when ingestion stopped with an error."""
        return not self.processed and self.processing_error is not None


class Chunk(BaseModel):
    """One embedded, searchable segment of a :class:`Document`."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque chunk identifier (UUID).")
    document_id: str = Field(description="Owning document.")
    # Denormalized from the document for access-control scoping.
    user_id: str = Field(description="Owning user; always equals the document's owner.")
    chunk_index: int = Field(ge=0, description="Zero-based segment position within the document.")
    content: str
    heading_path: str | None = Field(
        default=None, description='Heading breadcrumb, e.g. "Section 2 > Boundaries".'
    )
    page_from: int | None = Field(default=None, ge=1)
    page_to: int | None = Field(default=None, ge=1)
    token_count: int = Field(default=0, ge=0, description="Approximate token count.")
    summary: str = Field(default="")
    embedding: list[float] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Embedding model identifier and generation timestamp.",
    )


# ---------------------------------------------------------------------------
# Chunker output
# ---------------------------------------------------------------------------
class TextSegment(BaseModel):
    """A chunker window over the source text, before embedding."""

    model_config = ConfigDict(frozen=True)

    content: str
    heading_path: str | None = None
    page_from: int | None = None
    page_to: int | None = None
    # Half-open word range [word_start, word_end) within the source text.
    word_start: int = Field(default=0, ge=0)
    word_end: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Retrieval configuration
# ---------------------------------------------------------------------------
class RetrievalSettings(BaseModel):
    """Per-call retrieval configuration.

    Field names are snake_case; the camelCase names used by stored assistant
    tuning settings (``minScore``, ``hybridWeight``...) are accepted as
    aliases.  Defaults match the product's shipped tuning.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = False
    k: int = Field(default=8, ge=1, description="Chunks to return.")
    min_score: float = Field(
        default=0.30,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("min_score", "minScore"),
        description="Hybrid relevance floor.",
    )
    hybrid_weight: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("hybrid_weight", "hybridWeight"),
        description="0 = pure keyword, 1 = pure vector.",
    )
    max_per_doc: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices("max_per_doc", "maxPerDoc"),
        description="Diversity cap per source document.",
    )
    rerank_top_n: int = Field(
        default=50,
        ge=1,
        validation_alias=AliasChoices("rerank_top_n", "rerankTopN"),
        description="Candidate pool size per search leg.",
    )
    max_tokens: int = Field(
        default=2000,
        ge=0,
        validation_alias=AliasChoices("max_tokens", "maxTokens"),
        description="Context token budget.",
    )
    enforce_acl: bool = Field(
        default=True,
        validation_alias=AliasChoices("enforce_acl", "enforceACL"),
        description="Restrict search to the caller's own documents.",
    )

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> RetrievalSettings:
        """Return a copy with *overrides* merged on top.

        Unknown keys are ignored.  If the merged values fail validation the
        unchanged settings are returned and a warning is logged, so a bad
        stored tuning never breaks retrieval.
        """
        if not overrides:
            return self

        known: dict[str, str] = {}
        for name, field in type(self).model_fields.items():
            known[name] = name
            alias = field.validation_alias
            if isinstance(alias, AliasChoices):
                for choice in alias.choices:
                    if isinstance(choice, str):
                        known[choice] = name

        merged = self.model_dump()
        for key, value in overrides.items():
            if key in known:
                merged[known[key]] = value

        try:
            return type(self).model_validate(merged)
        except ValidationError as exc:
            logger.warning(
                "retrieval_settings_override_rejected",
                overrides=dict(overrides),
                error=str(exc),
            )
            return self


# ---------------------------------------------------------------------------
# Search results
# ---------------------------------------------------------------------------
class ChunkHit(BaseModel):
    """One row returned by a store's vector or keyword search."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    document_name: str
    content: str
    summary: str = ""
    heading_path: str | None = None
    page_from: int | None = None
    page_to: int | None = None
    score: float = Field(default=0.0, ge=0.0, le=1.0)


class SearchCandidate(BaseModel):
    """A chunk hit with its two independent relevance scores.

    A chunk found by only one search leg carries 0.0 for the other.
    """

    model_config = ConfigDict(frozen=True)

    hit: ChunkHit
    vector_score: float = Field(default=0.0, ge=0.0, le=1.0)
    keyword_score: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def chunk_id(self) -> str:
        return self.hit.chunk_id


class RetrievedChunk(BaseModel):
    """A reranked chunk with its hybrid score and rendered citation."""

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    document_name: str
    content: str
    summary: str = ""
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    heading_path: str | None = None
    page_from: int | None = None
    page_to: int | None = None
    citation: str = ""


class RAGContext(BaseModel):
    """The assembled, cited context block handed back to the caller.

    ``chunks`` is the full ranked list (for citation display); only the
    first ``included_count`` of them fit the token budget and appear in
    ``context_text``.  An empty context means "no relevant context", never
    an error.
    """

    model_config = ConfigDict(frozen=True)

    chunks: list[RetrievedChunk] = Field(default_factory=list)
    context_text: str = ""
    total_tokens: int = Field(default=0, ge=0)
    source_count: int = Field(
        default=0, ge=0, description="Distinct documents rendered into the text."
    )
    included_count: int = Field(
        default=0, ge=0, description="Leading chunks rendered into the text."
    )

    @property
    def included_chunks(self) -> list[RetrievedChunk]:
        return self.chunks[: self.included_count]

    @classmethod
    def empty(cls) -> RAGContext:
        return cls()


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of a single ingestion call."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunks_created: int = Field(default=0, ge=0)
    chunks_skipped: int = Field(
        default=0, ge=0, description="Segments dropped after an embedding/summary failure."
    )
    total_tokens: int = Field(default=0, ge=0)
    ingestion_time: float = Field(default=0.0, ge=0.0)
    duplicate: bool = Field(
        default=False, description="True when identical text was already ingested."
    )


class RetrievalStats(BaseModel):
    """Per-user corpus statistics."""

    model_config = ConfigDict(frozen=True)

    total_documents: int = Field(default=0, ge=0)
    processed_documents: int = Field(default=0, ge=0)
    total_chunks: int = Field(default=0, ge=0)
    avg_chunks_per_doc: float = Field(default=0.0, ge=0.0)
