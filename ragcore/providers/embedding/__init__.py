"""Embedding provider implementations.

    1. OpenAIEmbeddingProvider — text-embedding-3-small (1536 dims), needs a key.
    2. OllamaEmbeddingProvider — nomic-embed-text via a local Ollama server.
"""

from ragcore.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from ragcore.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OllamaEmbeddingProvider", "OpenAIEmbeddingProvider"]
