"""Shared pytest fixtures for the ragcore test suite."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path

import pytest
import pytest_asyncio

from ragcore.interfaces.embedding_provider import IEmbeddingProvider
from ragcore.models.rag import ChunkHit, RetrievalSettings, SearchCandidate
from ragcore.providers.store.memory_store import MemoryDocumentStore
from ragcore.providers.store.sqlite_store import SQLiteDocumentStore
from ragcore.utils.errors import RAGError

# ---------------------------------------------------------------------------
# Mock embedding provider
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 128


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Uses SHA-256 to hash the text, then unpacks bytes into floats and
    normalises to unit length.  Deterministic — same text always produces
    the same vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    # Unpack as unsigned ints and centre them: arbitrary bytes reinterpreted
    # as IEEE floats can be NaN or inf.
    ints = struct.unpack(f"<{dim}I", raw)
    values = [(i / 0xFFFFFFFF) - 0.5 for i in ints]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    Any text containing *fail_marker* makes ``embed_single`` raise, which
    lets tests exercise the skip-on-failure path for individual chunks.
    """

    def __init__(self, fail_marker: str | None = None) -> None:
        self.fail_marker = fail_marker
        self.embedded: list[str] = []
        self.summarized: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        if self.fail_marker and self.fail_marker in text:
            raise RAGError(message="embedding rejected", provider_name="mock-embedding")
        self.embedded.append(text)
        return _hash_to_vector(text)

    async def summarize(self, text: str) -> str:
        self.summarized.append(text)
        return f"Summary of {len(text.split())} words."

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_model_name(self) -> str:
        return "mock-embed-v1"

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Sample data helpers
# ---------------------------------------------------------------------------


def make_words(count: int, prefix: str = "word") -> str:
    """Return *count* distinct space-separated words."""
    return " ".join(f"{prefix}{i}" for i in range(count))


def make_hit(
    chunk_id: str,
    document_id: str = "doc-1",
    document_name: str = "guide.pdf",
    content: str = "Some chunk content.",
    score: float = 0.5,
    heading_path: str | None = None,
    page_from: int | None = None,
    page_to: int | None = None,
) -> ChunkHit:
    return ChunkHit(
        chunk_id=chunk_id,
        document_id=document_id,
        document_name=document_name,
        content=content,
        summary="",
        heading_path=heading_path,
        page_from=page_from,
        page_to=page_to,
        score=score,
    )


def make_candidate(
    chunk_id: str,
    vector_score: float = 0.0,
    keyword_score: float = 0.0,
    **hit_fields,
) -> SearchCandidate:
    return SearchCandidate(
        hit=make_hit(chunk_id, **hit_fields),
        vector_score=vector_score,
        keyword_score=keyword_score,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    """Mock IEmbeddingProvider returning deterministic hash-based vectors."""
    return MockEmbeddingProvider()


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path: Path) -> SQLiteDocumentStore:
    """Initialized SQLite store backed by a temp file."""
    store = SQLiteDocumentStore(db_path=tmp_path / "ragcore-test.db")
    await store.initialize()
    return store


@pytest.fixture
def enabled_settings() -> RetrievalSettings:
    """Retrieval settings with retrieval switched on and no score floor."""
    return RetrievalSettings(enabled=True, min_score=0.0)


@pytest.fixture
def sample_guide_text() -> str:
    """A short document with markdown, colon and caps headings."""
    return (
        "# Co-Parenting Guide\n"
        "SECTION TWO OVERVIEW\n"
        "Boundaries:\n"
        "Healthy boundaries help both parents communicate about schedules, "
        "school events and holidays. Write agreements down and review them "
        "every few months.\n\n"
        "Conflict resolution works best when each parent describes the problem "
        "without blame and proposes one concrete change."
    )
