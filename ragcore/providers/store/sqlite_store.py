"""SQLite-backed document store.

Persists documents and chunks to a local SQLite database at
``data/ragcore.db``.  Uses ``aiosqlite`` for async I/O.  Embeddings are
stored as float32 blobs and scored with numpy at query time, which is
adequate for per-user corpora of a few thousand chunks; larger deployments
should put a real vector index behind :class:`IDocumentStore`.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np
import structlog

from ragcore.interfaces.document_store import IDocumentStore
from ragcore.models.rag import Chunk, ChunkHit, Document, RetrievalStats
from ragcore.utils.errors import DocumentNotFoundError, DuplicateDocumentError, RAGError
from ragcore.utils.scoring import cosine_similarity, keyword_scores

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/ragcore.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS rag_documents (
    id               TEXT    PRIMARY KEY,
    user_id          TEXT    NOT NULL,
    original_name    TEXT    NOT NULL,
    media_type       TEXT    NOT NULL,
    byte_size        INTEGER NOT NULL DEFAULT 0,
    content_hash     TEXT    NOT NULL,
    extracted_text   TEXT    NOT NULL,
    tags             TEXT    NOT NULL DEFAULT '[]',
    processed        INTEGER NOT NULL DEFAULT 0,
    processing_error TEXT,
    created_at       TEXT    NOT NULL,
    updated_at       TEXT    NOT NULL,
    UNIQUE(user_id, content_hash)
);
""",
    """\
CREATE TABLE IF NOT EXISTS rag_document_chunks (
    id           TEXT    PRIMARY KEY,
    document_id  TEXT    NOT NULL REFERENCES rag_documents(id) ON DELETE CASCADE,
    user_id      TEXT    NOT NULL,
    chunk_index  INTEGER NOT NULL,
    content      TEXT    NOT NULL,
    heading_path TEXT,
    page_from    INTEGER,
    page_to      INTEGER,
    token_count  INTEGER NOT NULL DEFAULT 0,
    summary      TEXT    NOT NULL DEFAULT '',
    embedding    BLOB    NOT NULL,
    metadata     TEXT    NOT NULL DEFAULT '{}'
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_user ON rag_documents(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_user ON rag_document_chunks(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON rag_document_chunks(document_id);",
]

_DOCUMENT_COLUMNS = (
    "id, user_id, original_name, media_type, byte_size, content_hash, extracted_text, "
    "tags, processed, processing_error, created_at, updated_at"
)

_INSERT_DOCUMENT_SQL = f"""\
INSERT INTO rag_documents ({_DOCUMENT_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_CHUNK_SQL = """\
INSERT INTO rag_document_chunks
    (id, document_id, user_id, chunk_index, content, heading_path, page_from, page_to,
     token_count, summary, embedding, metadata)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

# Candidate rows for both search legs: chunks of processed documents only.
# The keyword leg never needs the embedding blob.
_TEXT_COLUMNS = (
    "c.id, c.document_id, d.original_name, c.content, c.summary, c.heading_path, "
    "c.page_from, c.page_to"
)
_VECTOR_COLUMNS = f"{_TEXT_COLUMNS}, c.embedding"

_SEARCH_SQL = """\
SELECT {columns}
FROM rag_document_chunks c
JOIN rag_documents d ON c.document_id = d.id
WHERE d.processed = 1 {acl}
ORDER BY d.created_at, d.id, c.chunk_index;
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed :class:`IDocumentStore`."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def find_document(self, user_id: str, content_hash: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM rag_documents "
                "WHERE user_id = ? AND content_hash = ?",
                (user_id, content_hash),
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def create_document(self, document: Document) -> Document:
        try:
            async with self._connect() as db:
                await db.execute(
                    _INSERT_DOCUMENT_SQL,
                    (
                        document.id,
                        document.user_id,
                        document.original_name,
                        document.media_type,
                        document.byte_size,
                        document.content_hash,
                        document.extracted_text,
                        json.dumps(document.tags),
                        int(document.processed),
                        document.processing_error,
                        document.created_at.isoformat(),
                        document.updated_at.isoformat(),
                    ),
                )
                await db.commit()
        except sqlite3.IntegrityError as exc:
            raise DuplicateDocumentError(
                message=f"Document with hash {document.content_hash[:12]} already exists",
                provider_name=self.get_provider_name(),
            ) from exc
        except sqlite3.Error as exc:
            raise RAGError(
                message=f"Failed to create document record: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return document

    async def reset_document(self, document_id: str) -> None:
        async with self._connect() as db:
            await db.execute(
                "DELETE FROM rag_document_chunks WHERE document_id = ?", (document_id,)
            )
            await self._update(
                db, document_id, "processed = 0, processing_error = NULL", ()
            )
            await db.commit()

    async def mark_processed(self, document_id: str) -> None:
        async with self._connect() as db:
            await self._update(db, document_id, "processed = 1, processing_error = NULL", ())
            await db.commit()

    async def mark_failed(self, document_id: str, error: str) -> None:
        async with self._connect() as db:
            await self._update(db, document_id, "processed = 0, processing_error = ?", (error,))
            await db.commit()

    async def get_document(self, user_id: str, document_id: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM rag_documents WHERE id = ? AND user_id = ?",
                (document_id, user_id),
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def list_documents(self, user_id: str) -> list[Document]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM rag_documents "
                "WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_document(r) for r in rows]

    async def delete_document(self, user_id: str, document_id: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT 1 FROM rag_documents WHERE id = ? AND user_id = ?",
                (document_id, user_id),
            )
            if await cursor.fetchone() is None:
                raise DocumentNotFoundError(
                    message=f"Document {document_id} not found for user",
                    provider_name=self.get_provider_name(),
                )
            cursor = await db.execute(
                "DELETE FROM rag_document_chunks WHERE document_id = ? AND user_id = ?",
                (document_id, user_id),
            )
            deleted = cursor.rowcount
            await db.execute(
                "DELETE FROM rag_documents WHERE id = ? AND user_id = ?",
                (document_id, user_id),
            )
            await db.commit()
        logger.info("sqlite_delete_document", document_id=document_id, chunks=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def add_chunks(self, chunks: list[Chunk]) -> int:
        if not chunks:
            return 0
        rows = [
            (
                c.id,
                c.document_id,
                c.user_id,
                c.chunk_index,
                c.content,
                c.heading_path,
                c.page_from,
                c.page_to,
                c.token_count,
                c.summary,
                np.asarray(c.embedding, dtype=np.float32).tobytes(),
                json.dumps(c.metadata),
            )
            for c in chunks
        ]
        try:
            async with self._connect() as db:
                await db.executemany(_INSERT_CHUNK_SQL, rows)
                await db.commit()
        except sqlite3.Error as exc:
            raise RAGError(
                message=f"Failed to store chunks: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("sqlite_add_chunks", count=len(rows))
        return len(rows)

    async def vector_search(
        self,
        embedding: list[float],
        user_id: str,
        limit: int,
        enforce_acl: bool = True,
    ) -> list[ChunkHit]:
        query_vec = np.asarray(embedding, dtype=np.float32)
        scored = [
            (cosine_similarity(query_vec, np.frombuffer(row["embedding"], dtype=np.float32)), row)
            for row in await self._candidate_rows(_VECTOR_COLUMNS, user_id, enforce_acl)
        ]
        return self._top_hits(scored, limit)

    async def keyword_search(
        self,
        query: str,
        user_id: str,
        limit: int,
        enforce_acl: bool = True,
    ) -> list[ChunkHit]:
        rows = await self._candidate_rows(_TEXT_COLUMNS, user_id, enforce_acl)
        scores = keyword_scores(query, [row["content"] for row in rows])
        return self._top_hits([(s, row) for s, row in zip(scores, rows) if s > 0.0], limit)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def get_stats(self, user_id: str) -> RetrievalStats:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT COUNT(*) AS total, COALESCE(SUM(processed), 0) AS processed "
                "FROM rag_documents WHERE user_id = ?",
                (user_id,),
            )
            doc_row = await cursor.fetchone()
            cursor = await db.execute(
                "SELECT COUNT(*) AS total FROM rag_document_chunks WHERE user_id = ?",
                (user_id,),
            )
            chunk_row = await cursor.fetchone()

        processed = int(doc_row["processed"])
        total_chunks = int(chunk_row["total"])
        return RetrievalStats(
            total_documents=int(doc_row["total"]),
            processed_documents=processed,
            total_chunks=total_chunks,
            avg_chunks_per_doc=total_chunks / processed if processed else 0.0,
        )

    def get_provider_name(self) -> str:
        return "sqlite"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys = ON")
            yield db

    async def _update(
        self,
        db: aiosqlite.Connection,
        document_id: str,
        assignments: str,
        params: tuple[Any, ...],
    ) -> None:
        cursor = await db.execute(
            f"UPDATE rag_documents SET {assignments}, updated_at = ? WHERE id = ?",
            (*params, _now(), document_id),
        )
        if cursor.rowcount == 0:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                provider_name=self.get_provider_name(),
            )

    async def _candidate_rows(
        self, columns: str, user_id: str, enforce_acl: bool
    ) -> list[aiosqlite.Row]:
        try:
            async with self._connect() as db:
                if enforce_acl:
                    cursor = await db.execute(
                        _SEARCH_SQL.format(columns=columns, acl="AND c.user_id = ?"), (user_id,)
                    )
                else:
                    cursor = await db.execute(_SEARCH_SQL.format(columns=columns, acl=""))
                return list(await cursor.fetchall())
        except sqlite3.Error as exc:
            raise RAGError(
                message=f"Chunk search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    @staticmethod
    def _top_hits(scored: list[tuple[float, aiosqlite.Row]], limit: int) -> list[ChunkHit]:
        ranked = sorted(scored, key=lambda s: s[0], reverse=True)[:limit]
        return [
            ChunkHit(
                chunk_id=row["id"],
                document_id=row["document_id"],
                document_name=row["original_name"],
                content=row["content"],
                summary=row["summary"],
                heading_path=row["heading_path"],
                page_from=row["page_from"],
                page_to=row["page_to"],
                score=score,
            )
            for score, row in ranked
        ]

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        return Document(
            id=row["id"],
            user_id=row["user_id"],
            original_name=row["original_name"],
            media_type=row["media_type"],
            byte_size=row["byte_size"],
            content_hash=row["content_hash"],
            extracted_text=row["extracted_text"],
            tags=json.loads(row["tags"] or "[]"),
            processed=bool(row["processed"]),
            processing_error=row["processing_error"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
