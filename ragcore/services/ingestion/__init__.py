"""Document ingestion pipeline.

Orchestrates: **fingerprint -> chunk -> embed + summarize -> store**.

1. **Chunk** (chunker.py / TextChunker) -- Splits extracted text into
   800-word overlapping windows, each tagged with a heading breadcrumb and
   an estimated page range.

2. **Embed + summarize** (via IEmbeddingProvider) -- One embedding and one
   short summary per window, generated sequentially.

3. **Store** (via IDocumentStore) -- Persists the document row and its
   chunks; identical text for the same user is ingested only once.
"""

from ragcore.services.ingestion.chunker import TextChunker
from ragcore.services.ingestion.ingestion_service import IngestionService

__all__ = ["IngestionService", "TextChunker"]
