"""Abstract base class for embedding providers.

Defines the contract for turning text into fixed-length vectors and for
producing short abstractive summaries of chunk text.  Implementations may
wrap OpenAI ``text-embedding-3-small``, a local Ollama model, or a
deterministic fake in tests.  Providers are injected into the ingestion and
retrieval services at construction time; nothing in the pipeline builds its
own client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider  — text-embedding-3-small + gpt-4o-mini summaries
#   OllamaEmbeddingProvider  — nomic-embed-text + a local chat model via Ollama
# Located in: ragcore/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for the embedding/summarization service used by the RAG core."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*, each of length
            :meth:`get_dimension`.

        Raises
        ------
        ragcore.utils.errors.RAGError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for one text (e.g. a search query)."""

    @abstractmethod
    async def summarize(self, text: str) -> str:
        """Return a neutral one-to-two sentence summary of *text*.

        Raises
        ------
        ragcore.utils.errors.RAGError
            If the completion call fails or returns nothing.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the (constant) dimensionality of the embedding vectors."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the embedding model identifier recorded in chunk metadata."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
