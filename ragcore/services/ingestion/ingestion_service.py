"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **fingerprint -> dedupe -> chunk -> embed + summarize -> store**.

:class:`IngestionService` coordinates three injected collaborators (chunker,
embedding provider, document store) without any of them knowing about each
other:

    1. SHA-256 fingerprint of the extracted text
    2. IDocumentStore.find_document -- identical text for the same user is a
       no-op returning the existing document id
    3. IDocumentStore.create_document -- unprocessed document row; losing a
       race to a concurrent ingest of the same text counts as a duplicate
    4. TextChunker -- overlapping word windows with heading breadcrumbs
    5. IEmbeddingProvider -- one embedding + one summary per window,
       sequentially, with a fixed pause between windows to stay under the
       provider's rate limit
    6. IDocumentStore.add_chunks -- one batch write
    7. IDocumentStore.mark_processed

A window whose embedding or summary fails is logged and skipped, unless the
provider is unreachable or unconfigured, which fails the whole document.  Any
other failure after step 3 is recorded on the document (so it stays inspectable)
and re-raised as :class:`IngestionError`.  Re-ingesting the same text for a
document in that error state runs the pipeline again on the same id.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from ragcore.models.rag import Chunk, Document, IngestionResult, TextSegment
from ragcore.services.ingestion.chunker import TextChunker
from ragcore.utils.errors import (
    ConfigurationError,
    DuplicateDocumentError,
    IngestionError,
    ProviderUnavailableError,
    RAGCoreError,
)
from ragcore.utils.scoring import estimate_tokens

if TYPE_CHECKING:
    from ragcore.interfaces.document_store import IDocumentStore
    from ragcore.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)

# Text shorter than this is summarized locally instead of via the provider.
_LOCAL_SUMMARY_MAX_CHARS = 200

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def content_fingerprint(text: str) -> str:
    """Return the SHA-256 hex digest identifying *text*."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def extractive_summary(text: str, max_sentences: int = 2) -> str:
    """Return the first *max_sentences* sentences of *text*."""
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    if not sentences:
        return ""
    return ". ".join(sentences[:max_sentences]) + "."


class IngestionService:
    """Turns extracted text into a processed document with embedded chunks.

    Parameters
    ----------
    chunker:
        Splits text into overlapping windows.
    embedding_provider:
        Embeds and summarizes each window.
    document_store:
        Persists documents and chunks.
    delay_seconds:
        Pause between consecutive embedding round-trips.  Set to 0 in tests.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
        delay_seconds: float = 0.1,
    ) -> None:
        self._chunker = chunker
        self._embedding_provider = embedding_provider
        self._store = document_store
        self._delay_seconds = max(0.0, delay_seconds)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        user_id: str,
        source_text: str,
        original_name: str,
        media_type: str = "text/plain",
        byte_size: int | None = None,
        tags: list[str] | None = None,
    ) -> IngestionResult:
        """Ingest *source_text* for *user_id* and report what happened.

        Returns
        -------
        IngestionResult
            ``duplicate=True`` (and zero counts) when the text was already
            ingested for this user.

        Raises
        ------
        IngestionError
            If chunking or persistence fails; the document records the error.
        """
        start = time.monotonic()
        content_hash = content_fingerprint(source_text)

        existing = await self._store.find_document(user_id, content_hash)
        if existing is not None and not existing.failed:
            logger.info(
                "document_already_ingested",
                user_id=user_id,
                document_id=existing.id,
                original_name=original_name,
            )
            return IngestionResult(document_id=existing.id, duplicate=True)

        if existing is not None:
            logger.info(
                "retrying_failed_document",
                document_id=existing.id,
                previous_error=existing.processing_error,
            )
            await self._store.reset_document(existing.id)
            document = existing
        else:
            new_document = Document(
                id=str(uuid.uuid4()),
                user_id=user_id,
                original_name=original_name,
                media_type=media_type,
                byte_size=(
                    byte_size if byte_size is not None else len(source_text.encode("utf-8"))
                ),
                content_hash=content_hash,
                extracted_text=source_text,
                tags=list(tags or []),
            )
            try:
                document = await self._store.create_document(new_document)
            except DuplicateDocumentError:
                # A concurrent ingest of the same text created the row first.
                winner = await self._store.find_document(user_id, content_hash)
                if winner is None:
                    raise
                logger.info(
                    "document_already_ingested",
                    user_id=user_id,
                    document_id=winner.id,
                    original_name=original_name,
                )
                return IngestionResult(document_id=winner.id, duplicate=True)

        try:
            segments = self._chunker.chunk(source_text, original_name)
            chunks, skipped = await self._process_segments(document, segments)
            stored = await self._store.add_chunks(chunks) if chunks else 0
            await self._store.mark_processed(document.id)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error(
                "ingestion_failed",
                document_id=document.id,
                original_name=original_name,
                error=message,
            )
            await self._record_failure(document.id, message)
            raise IngestionError(
                message=message,
                provider_name=exc.provider_name if isinstance(exc, RAGCoreError) else None,
                document_id=document.id,
            ) from exc

        result = IngestionResult(
            document_id=document.id,
            chunks_created=stored,
            chunks_skipped=skipped,
            total_tokens=sum(c.token_count for c in chunks),
            ingestion_time=round(time.monotonic() - start, 2),
        )
        logger.info(
            "ingestion_complete",
            document_id=document.id,
            original_name=original_name,
            chunks=result.chunks_created,
            skipped=result.chunks_skipped,
            tokens=result.total_tokens,
            time_s=result.ingestion_time,
        )
        return result

    async def ingest_document(
        self,
        user_id: str,
        source_text: str,
        original_name: str,
        media_type: str = "text/plain",
        byte_size: int | None = None,
        tags: list[str] | None = None,
    ) -> str:
        """Same as :meth:`ingest` but returns only the document id."""
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
        """Delete a document and its chunks.

        Raises
        ------
        ragcore.utils.errors.DocumentNotFoundError
            If the document does not exist or belongs to another user.
        """
        deleted = await self._store.delete_document(user_id, document_id)
        logger.info("document_deleted", user_id=user_id, document_id=document_id, chunks=deleted)

    async def get_document(self, user_id: str, document_id: str) -> Document | None:
        """Return the user's document, including any processing error."""
        return await self._store.get_document(user_id, document_id)

    async def list_documents(self, user_id: str) -> list[Document]:
        return await self._store.list_documents(user_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _process_segments(
        self, document: Document, segments: list[TextSegment]
    ) -> tuple[list[Chunk], int]:
        """Embed and summarize each segment, one at a time.

        Returns the built chunks and the number of segments skipped.
        """
        chunks: list[Chunk] = []
        skipped = 0
        model_name = self._embedding_provider.get_model_name()

        for index, segment in enumerate(segments):
            if index > 0 and self._delay_seconds:
                await asyncio.sleep(self._delay_seconds)
            try:
                embedding = await self._embedding_provider.embed_single(segment.content)
                summary = await self._summarize(segment.content)
            except (ConfigurationError, ProviderUnavailableError):
                # Every remaining segment would fail the same way.
                raise
            except Exception as exc:
                skipped += 1
                logger.warning(
                    "chunk_processing_failed",
                    document_id=document.id,
                    chunk_index=index,
                    error=str(exc),
                )
                continue

            chunks.append(
                Chunk(
                    id=str(uuid.uuid4()),
                    document_id=document.id,
                    user_id=document.user_id,
                    chunk_index=index,
                    content=segment.content,
                    heading_path=segment.heading_path,
                    page_from=segment.page_from,
                    page_to=segment.page_to,
                    token_count=estimate_tokens(segment.content),
                    summary=summary,
                    embedding=embedding,
                    metadata={
                        "model": model_name,
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    },
                )
            )
        return chunks, skipped

    async def _summarize(self, content: str) -> str:
        if len(content) < _LOCAL_SUMMARY_MAX_CHARS:
            return extractive_summary(content)
        return await self._embedding_provider.summarize(content)

    async def _record_failure(self, document_id: str, message: str) -> None:
        """Store *message* on the document; the original error still propagates."""
        try:
            await self._store.mark_failed(document_id, message)
        except Exception as exc:
            logger.error(
                "ingestion_failure_not_recorded",
                document_id=document_id,
                error=str(exc),
            )
