"""Ollama embedding provider adapter (local, no API key).

Talks to the OpenAI-compatible ``/v1`` endpoint that Ollama exposes, using
``nomic-embed-text`` (768 dimensions) for embeddings and a small local chat
model for chunk summaries.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from ragcore.config.settings import Settings
from ragcore.interfaces.embedding_provider import IEmbeddingProvider
from ragcore.utils.errors import ProviderUnavailableError, RAGError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 512

_MODEL_DIMENSIONS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
}


class OllamaEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider served by a local Ollama instance."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",  # Ollama doesn't require a real key
        )
        self._model = settings.ollama_embedding_model
        self._summary_model = settings.ollama_summary_model
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 768)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors in batches of 512."""
        if not texts:
            return []

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OLLAMA_BATCH_LIMIT):
                batch = texts[start : start + _OLLAMA_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.debug("ollama_embedding_batch", model=self._model, batch_size=len(batch))
            return all_embeddings
        except openai.APIConnectionError as exc:
            raise self._unreachable(exc) from exc
        except openai.APIError as exc:
            raise RAGError(
                message=f"Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    async def summarize(self, text: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._summary_model,
                messages=[
                    {
                        "role": "user",
                        "content": (
                            "Summarize this text in 1-2 neutral, informative sentences:\n\n"
                            f"{text[:1000]}"
                        ),
                    }
                ],
                max_tokens=100,
                temperature=0.3,
            )
        except openai.APIConnectionError as exc:
            raise self._unreachable(exc) from exc
        except openai.APIError as exc:
            raise RAGError(
                message=f"Ollama summary error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise RAGError(
                message="Ollama returned an empty summary",
                provider_name=self.get_provider_name(),
            )
        return content.strip()

    def get_dimension(self) -> int:
        return self._dimension

    def get_model_name(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return "ollama_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server answers.

        Blocks for up to three seconds; async callers run it in a thread.
        """
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

    def _unreachable(self, exc: Exception) -> ProviderUnavailableError:
        return ProviderUnavailableError(
            message=f"Ollama not reachable at {self._base_url}: {exc}",
            provider_name=self.get_provider_name(),
        )
