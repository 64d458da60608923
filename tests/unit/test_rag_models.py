"""Unit tests for RAG Pydantic models and retrieval settings merging."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ragcore.models.rag import (
    Chunk,
    ChunkHit,
    Document,
    RAGContext,
    RetrievalSettings,
    SearchCandidate,
)


def _document(**overrides) -> Document:
    fields = {
        "id": "doc-1",
        "user_id": "user-a",
        "original_name": "guide.pdf",
        "content_hash": "abc123",
    }
    fields.update(overrides)
    return Document(**fields)


class TestDocument:
    def test_defaults(self) -> None:
        doc = _document()

        assert doc.processed is False
        assert doc.processing_error is None
        assert doc.media_type == "text/plain"
        assert doc.tags == []
        assert doc.failed is False

    def test_failed_state(self) -> None:
        assert _document(processing_error="boom").failed is True
        assert _document(processed=True, processing_error="stale").failed is False

    def test_frozen(self) -> None:
        doc = _document()
        with pytest.raises(ValidationError):
            doc.processed = True  # type: ignore[misc]

    def test_model_copy_update(self) -> None:
        doc = _document()
        updated = doc.model_copy(update={"processed": True})
        assert updated.processed is True
        assert doc.processed is False


class TestChunk:
    def test_page_bounds_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Chunk(
                id="c1",
                document_id="doc-1",
                user_id="user-a",
                chunk_index=0,
                content="text",
                page_from=0,
            )

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Chunk(id="c1", document_id="d", user_id="u", chunk_index=-1, content="x")


class TestRetrievalSettings:
    def test_defaults(self) -> None:
        s = RetrievalSettings()

        assert s.enabled is False
        assert s.k == 8
        assert s.min_score == pytest.approx(0.30)
        assert s.hybrid_weight == pytest.approx(0.5)
        assert s.max_per_doc == 3
        assert s.rerank_top_n == 50
        assert s.max_tokens == 2000
        assert s.enforce_acl is True

    def test_camel_case_aliases(self) -> None:
        s = RetrievalSettings.model_validate(
            {"minScore": 0.1, "hybridWeight": 0.8, "maxPerDoc": 1, "enforceACL": False}
        )
        assert s.min_score == pytest.approx(0.1)
        assert s.hybrid_weight == pytest.approx(0.8)
        assert s.max_per_doc == 1
        assert s.enforce_acl is False

    @pytest.mark.parametrize(
        "field,value",
        [("hybrid_weight", 1.5), ("min_score", -0.1), ("k", 0), ("max_per_doc", 0)],
    )
    def test_out_of_range_rejected(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            RetrievalSettings(**{field: value})

    def test_with_overrides_merges_over_defaults(self) -> None:
        merged = RetrievalSettings().with_overrides({"enabled": True, "hybridWeight": 0.7})

        assert merged.enabled is True
        assert merged.hybrid_weight == pytest.approx(0.7)
        assert merged.k == 8

    def test_with_overrides_ignores_unknown_keys(self) -> None:
        base = RetrievalSettings()
        merged = base.with_overrides({"temperature": 0.9, "k": 4})
        assert merged.k == 4

    def test_with_overrides_invalid_keeps_original(self) -> None:
        base = RetrievalSettings(k=5)
        assert base.with_overrides({"hybrid_weight": 3.0}) is base

    def test_with_overrides_empty(self) -> None:
        base = RetrievalSettings()
        assert base.with_overrides(None) is base
        assert base.with_overrides({}) is base


class TestSearchValues:
    def test_candidate_exposes_chunk_id(self) -> None:
        hit = ChunkHit(chunk_id="c9", document_id="d", document_name="n", content="x")
        candidate = SearchCandidate(hit=hit, vector_score=0.4)

        assert candidate.chunk_id == "c9"
        assert candidate.keyword_score == 0.0

    def test_hit_score_bounded(self) -> None:
        with pytest.raises(ValidationError):
            ChunkHit(chunk_id="c", document_id="d", document_name="n", content="x", score=1.2)

    def test_empty_context(self) -> None:
        ctx = RAGContext.empty()

        assert ctx.chunks == []
        assert ctx.context_text == ""
        assert ctx.total_tokens == 0
        assert ctx.source_count == 0
