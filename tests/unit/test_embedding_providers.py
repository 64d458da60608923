"""Unit tests for embedding provider adapters — OpenAI, Ollama."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from ragcore.config.settings import Settings
from ragcore.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from ragcore.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ragcore.utils.errors import ConfigurationError, ProviderUnavailableError, RAGError

_OPENAI_CLIENT = "ragcore.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
_OLLAMA_CLIENT = "ragcore.providers.embedding.ollama_embedding_provider.openai.AsyncOpenAI"


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "openai_summary_model": "",
        "ollama_base_url": "http://localhost:11434",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _embedding_response(*vectors: list[float]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=10)
    return response


def _chat_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def _api_error(message: str = "Rate limit") -> openai.APIError:
    return openai.APIError(message=message, request=MagicMock(), body=None)


def _connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(
        request=httpx.Request("POST", "http://localhost:11434/v1/embeddings")
    )


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_metadata(self, settings: Settings) -> None:
        provider = OpenAIEmbeddingProvider(settings)

        assert provider.get_provider_name() == "openai_embedding"
        assert provider.get_model_name() == "text-embedding-3-small"
        assert provider.get_dimension() == 1536

    def test_compatible_host_label(self) -> None:
        provider = OpenAIEmbeddingProvider(
            _settings(
                openai_base_url="https://api.together.xyz/v1",
                openai_embedding_model="BAAI/bge-base-en-v1.5",
            )
        )
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert provider.get_dimension() == 768

    def test_is_available(self, settings: Settings) -> None:
        assert OpenAIEmbeddingProvider(settings).is_available() is True
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_missing_key_builds_no_client(self) -> None:
        with patch(_OPENAI_CLIENT) as client_cls:
            provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""))
            with pytest.raises(ConfigurationError):
                await provider.embed(["hello"])

        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_connection_failure_is_unavailable(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=_connection_error())

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(ProviderUnavailableError) as exc_info:
                await provider.embed(["test"])

        assert exc_info.value.provider_name == "openai_embedding"

    @pytest.mark.asyncio
    async def test_embed_success(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            return_value=_embedding_response([0.1] * 1536, [0.2] * 1536)
        )

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            result = await provider.embed(["hello", "world"])

        assert len(result) == 2
        assert result[1][0] == pytest.approx(0.2)
        mock_client.embeddings.create.assert_awaited_once_with(
            input=["hello", "world"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_embed_empty_makes_no_call(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            assert await provider.embed([]) == []
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_single(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response([0.5] * 1536))

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            result = await provider.embed_single("hello")

        assert len(result) == 1536

    @pytest.mark.asyncio
    async def test_embed_error_wrapped(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=_api_error())

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(RAGError) as exc_info:
                await provider.embed(["test"])

        assert exc_info.value.provider_name == "openai_embedding"

    @pytest.mark.asyncio
    async def test_summarize_sends_head_of_text(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_chat_response("  A short neutral summary.  ")
        )

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            summary = await provider.summarize("x" * 5000)

        assert summary == "A short neutral summary."
        kwargs = mock_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 100
        assert kwargs["temperature"] == pytest.approx(0.3)
        assert kwargs["messages"][0]["content"].endswith("\n\n" + "x" * 1000)

    @pytest.mark.asyncio
    async def test_summarize_empty_response(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response(""))

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(RAGError):
                await provider.summarize("some text")

    @pytest.mark.asyncio
    async def test_summarize_api_error(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=_api_error("overloaded"))

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(RAGError):
                await provider.summarize("some text")


# ======================================================================
# Ollama Embedding Provider
# ======================================================================


class TestOllamaEmbeddingProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings(openai_api_key="")

    def test_metadata(self, settings: Settings) -> None:
        provider = OllamaEmbeddingProvider(settings)

        assert provider.get_provider_name() == "ollama_embedding"
        assert provider.get_model_name() == "nomic-embed-text"
        assert provider.get_dimension() == 768

    def test_is_available_success(self, settings: Settings) -> None:
        mock_response = MagicMock(status_code=200)
        with patch(
            "ragcore.providers.embedding.ollama_embedding_provider.httpx.get",
            return_value=mock_response,
        ) as mock_get:
            assert OllamaEmbeddingProvider(settings).is_available() is True
        mock_get.assert_called_once_with("http://localhost:11434/api/tags", timeout=3.0)

    def test_is_available_failure(self, settings: Settings) -> None:
        with patch(
            "ragcore.providers.embedding.ollama_embedding_provider.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            assert OllamaEmbeddingProvider(settings).is_available() is False

    @pytest.mark.asyncio
    async def test_embed_success(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response([0.3] * 768))

        with patch(_OLLAMA_CLIENT, return_value=mock_client) as client_cls:
            provider = OllamaEmbeddingProvider(settings)
            result = await provider.embed(["test text"])

        assert len(result) == 1
        assert len(result[0]) == 768
        assert client_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"

    @pytest.mark.asyncio
    async def test_embed_error_wrapped(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=_api_error())

        with patch(_OLLAMA_CLIENT, return_value=mock_client):
            provider = OllamaEmbeddingProvider(settings)
            with pytest.raises(RAGError):
                await provider.embed_single("test")

    @pytest.mark.asyncio
    async def test_server_down_is_unavailable(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=_connection_error())

        with patch(_OLLAMA_CLIENT, return_value=mock_client):
            provider = OllamaEmbeddingProvider(settings)
            with pytest.raises(ProviderUnavailableError) as exc_info:
                await provider.embed_single("test")

        assert exc_info.value.provider_name == "ollama_embedding"
        assert "localhost:11434" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_summarize(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_chat_response("Local summary.")
        )

        with patch(_OLLAMA_CLIENT, return_value=mock_client):
            provider = OllamaEmbeddingProvider(settings)
            assert await provider.summarize("long text " * 50) == "Local summary."

        kwargs = mock_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "llama3.2"
