"""ragcore composition root.

Wires providers and services together via constructor injection and exposes
the result as a single :class:`RAGCore` facade -- the inbound interface used
by conversation services and by the CLI.

Provider selection:
    - Embedding: OpenAI / OpenAI-compatible (if an API key is set) ->
      Ollama (if reachable).  Neither available is a configuration error.
    - Store: SQLite (default) or in-memory, from ``STORE_BACKEND``.

Retrieval defaults are layered: built-in defaults <- the ``retrieval`` section
of ``config/config.yaml`` <- ``RAG_*`` values the environment sets <- per-call
overrides passed to :meth:`RAGCore.default_retrieval_settings`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog

from ragcore.config.loader import load_config
from ragcore.config.settings import Settings
from ragcore.interfaces.document_store import IDocumentStore
from ragcore.interfaces.embedding_provider import IEmbeddingProvider
from ragcore.models.rag import (
    Document,
    IngestionResult,
    RAGContext,
    RetrievalSettings,
    RetrievalStats,
)
from ragcore.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from ragcore.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ragcore.providers.store.memory_store import MemoryDocumentStore
from ragcore.providers.store.sqlite_store import SQLiteDocumentStore
from ragcore.services.ingestion.chunker import TextChunker
from ragcore.services.ingestion.ingestion_service import IngestionService
from ragcore.services.retrieval.context_assembler import ContextAssembler
from ragcore.services.retrieval.hybrid_search import HybridSearchEngine
from ragcore.services.retrieval.reranker import Reranker
from ragcore.services.retrieval.retrieval_service import RetrievalService
from ragcore.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_STORE_BACKENDS = ("sqlite", "memory")


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


async def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the first available embedding provider.

    Priority: OpenAI/OpenAI-compatible (if API key set) -> Ollama (if reachable).
    The Ollama reachability check is a blocking HTTP call, so it runs in a
    worker thread.

    Raises
    ------
    ConfigurationError
        If no provider is available.
    """
    if app_settings.openai_api_key:
        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    provider = OllamaEmbeddingProvider(settings=app_settings)
    if await asyncio.to_thread(provider.is_available):
        return provider

    raise ConfigurationError(
        message=(
            "No embedding provider available. Set OPENAI_API_KEY, or run Ollama at "
            f"{app_settings.ollama_base_url}"
        ),
        provider_name="embedding",
    )


async def _build_document_store(app_settings: Settings) -> IDocumentStore:
    """Create and initialize the configured document store."""
    backend = app_settings.store_backend.lower()
    if backend not in _STORE_BACKENDS:
        raise ConfigurationError(
            message=f"Unknown STORE_BACKEND {app_settings.store_backend!r}; "
            f"expected one of {', '.join(_STORE_BACKENDS)}",
            provider_name="store",
        )
    if backend == "memory":
        return MemoryDocumentStore()

    store = SQLiteDocumentStore(db_path=app_settings.document_db_path)
    await store.initialize()
    return store


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class RAGCore:
    """Inbound interface of the RAG core.

    Holds one ingestion service, one retrieval service and the
    deployment-wide retrieval defaults.  All state lives in the store, so a
    single instance can serve any number of concurrent queries.
    """

    def __init__(
        self,
        ingestion_service: IngestionService,
        retrieval_service: RetrievalService,
        default_settings: RetrievalSettings,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
    ) -> None:
        self._ingestion = ingestion_service
        self._retrieval = retrieval_service
        self._default_settings = default_settings
        self._embedding_provider = embedding_provider
        self._store = document_store

    @property
    def embedding_provider(self) -> IEmbeddingProvider:
        return self._embedding_provider

    @property
    def document_store(self) -> IDocumentStore:
        return self._store

    def default_retrieval_settings(
        self, overrides: Mapping[str, Any] | None = None
    ) -> RetrievalSettings:
        """Return the deployment defaults with *overrides* merged on top.

        *overrides* is typically a user's stored tuning, e.g.
        ``{"enabled": True, "hybridWeight": 0.7}``.
        """
        return self._default_settings.with_overrides(overrides)

    # -- Ingestion --------------------------------------------------------

    async def ingest(
        self,
        user_id: str,
        source_text: str,
        original_name: str,
        media_type: str = "text/plain",
        byte_size: int | None = None,
        tags: list[str] | None = None,
    ) -> IngestionResult:
        return await self._ingestion.ingest(
            user_id=user_id,
            source_text=source_text,
            original_name=original_name,
            media_type=media_type,
            byte_size=byte_size,
            tags=tags,
        )

    async def ingest_document(
        self,
        user_id: str,
        source_text: str,
        original_name: str,
        media_type: str = "text/plain",
        byte_size: int | None = None,
        tags: list[str] | None = None,
    ) -> str:
        """Ingest extracted text and return the document id."""
        result = await self.ingest(
            user_id=user_id,
            source_text=source_text,
            original_name=original_name,
            media_type=media_type,
            byte_size=byte_size,
            tags=tags,
        )
        return result.document_id

    async def delete_document(self, user_id: str, document_id: str) -> None:
        await self._ingestion.delete_document(user_id, document_id)

    async def get_document(self, user_id: str, document_id: str) -> Document | None:
        return await self._ingestion.get_document(user_id, document_id)

    async def list_documents(self, user_id: str) -> list[Document]:
        return await self._ingestion.list_documents(user_id)

    # -- Retrieval --------------------------------------------------------

    async def retrieve_context(
        self,
        query: str,
        user_id: str,
        settings: RetrievalSettings | Mapping[str, Any] | None = None,
    ) -> RAGContext:
        """Retrieve context for *query*.

        *settings* may be a full :class:`RetrievalSettings`, a mapping of
        overrides applied to the defaults, or ``None`` for the defaults.
        """
        if not isinstance(settings, RetrievalSettings):
            settings = self.default_retrieval_settings(settings)
        return await self._retrieval.retrieve_context(query, user_id, settings)

    async def get_retrieval_stats(self, user_id: str) -> RetrievalStats:
        return await self._retrieval.get_retrieval_stats(user_id)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


async def build_rag_core(
    custom_settings: Settings | None = None,
    config_path: str = "config/config.yaml",
    embedding_provider: IEmbeddingProvider | None = None,
    document_store: IDocumentStore | None = None,
) -> RAGCore:
    """Construct a fully wired :class:`RAGCore`.

    Parameters
    ----------
    custom_settings:
        Application settings.  A fresh ``Settings()`` is read if not provided.
    config_path:
        YAML config whose ``retrieval`` section tunes the built-in defaults.
        ``RAG_*`` values set in the environment take precedence over it.
    embedding_provider, document_store:
        Pre-built collaborators; selected from settings when omitted.

    Raises
    ------
    ConfigurationError
        If no embedding provider is available or the store backend is unknown.
    """
    s = custom_settings or Settings()
    config = load_config(config_path, settings=s)

    provider = embedding_provider or await _build_embedding_provider(s)
    store = document_store or await _build_document_store(s)

    chunker = TextChunker(
        chunk_size=s.chunk_size,
        overlap=s.chunk_overlap,
        words_per_page=s.words_per_page,
    )
    ingestion_service = IngestionService(
        chunker=chunker,
        embedding_provider=provider,
        document_store=store,
        delay_seconds=s.ingestion_delay_seconds,
    )
    retrieval_service = RetrievalService(
        search_engine=HybridSearchEngine(embedding_provider=provider, document_store=store),
        reranker=Reranker(),
        assembler=ContextAssembler(),
        document_store=store,
    )
    defaults = s.retrieval_defaults().with_overrides(config["retrieval"])

    logger.info(
        "rag_core_ready",
        embedding_provider=provider.get_provider_name(),
        embedding_model=provider.get_model_name(),
        store=store.get_provider_name(),
        retrieval_enabled=defaults.enabled,
    )
    return RAGCore(
        ingestion_service=ingestion_service,
        retrieval_service=retrieval_service,
        default_settings=defaults,
        embedding_provider=provider,
        document_store=store,
    )
