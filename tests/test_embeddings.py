"""Tests for embeddings generation with mocked OpenAI API."""

from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from app.core.cache import TTLCache
from app.core.config import get_settings
from app.core.embeddings import (
    OpenAIEmbeddingProvider,
    get_embedding_provider,
    reset_embedding_provider,
)
from app.core.errors import ProviderError, RateLimitError


@pytest.fixture
def mock_openai_response():
    """Create a mock OpenAI embeddings response."""

    def _create_response(num_embeddings: int, dimension: int = 1536, reverse: bool = False):
        mock_response = MagicMock()
        mock_response.data = []

        for i in range(num_embeddings):
            mock_embedding = MagicMock()
            mock_embedding.index = i
            mock_embedding.embedding = [float(i)] * dimension
            mock_response.data.append(mock_embedding)

        if reverse:
            mock_response.data.reverse()
        return mock_response

    return _create_response


@pytest.fixture
def provider():
    return OpenAIEmbeddingProvider(api_key="test-openai-key", cache=TTLCache(ttl_seconds=60))


def test_embed_texts_single(provider, mock_openai_response):
    """Test embedding a single text."""
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(1)
        mock_get_client.return_value = mock_client

        embeddings = provider.embed_texts(["Hello world"])

        assert len(embeddings) == 1
        assert len(embeddings[0]) == 1536
        mock_client.embeddings.create.assert_called_once()


def test_embed_texts_preserves_input_order(provider, mock_openai_response):
    """Response items are re-ordered by their index."""
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(3, reverse=True)
        mock_get_client.return_value = mock_client

        embeddings = provider.embed_texts(["Text one", "Text two", "Text three"])

        assert [e[0] for e in embeddings] == [0.0, 1.0, 2.0]


def test_embed_texts_empty(provider):
    """Test embedding empty list."""
    assert provider.embed_texts([]) == []


def test_embed_texts_dimension_validation(provider, mock_openai_response):
    """Test that dimension mismatch raises ValueError."""
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        # Mock response with wrong dimension
        mock_client.embeddings.create.return_value = mock_openai_response(1, dimension=512)
        mock_get_client.return_value = mock_client

        with pytest.raises(ValueError, match="Embedding dimension mismatch"):
            provider.embed_texts(["Test text"])


def test_embed_texts_count_mismatch(provider, mock_openai_response):
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(1)
        mock_get_client.return_value = mock_client

        with pytest.raises(ValueError, match="count mismatch"):
            provider.embed_texts(["one", "two"])


def test_embed_texts_api_failure(provider):
    """Test handling of API failures."""
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.side_effect = Exception("API Error")
        mock_get_client.return_value = mock_client

        with pytest.raises(Exception, match="API Error"):
            provider.embed_texts(["Test text"])


def test_embed_texts_rate_limit(provider):
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    error = openai.RateLimitError(
        "Rate limit exceeded", response=httpx.Response(429, request=request), body=None
    )
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.side_effect = error
        mock_get_client.return_value = mock_client

        with pytest.raises(RateLimitError) as exc_info:
            provider.embed_texts(["Test text"])

    assert exc_info.value.provider == "openai"
    assert exc_info.value.code == "RATE_LIMIT"


def test_embed_texts_uses_correct_model_and_truncates(mock_openai_response):
    """Test that the configured model is used and inputs are truncated."""
    provider = OpenAIEmbeddingProvider(
        api_key="test-openai-key", model="text-embedding-3-large", max_chars=5, cache=None
    )
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(1)
        mock_get_client.return_value = mock_client

        provider.embed_texts(["Testing truncation"])

        call_args = mock_client.embeddings.create.call_args
        assert call_args[1]["model"] == "text-embedding-3-large"
        assert call_args[1]["input"] == ["Testi"]


def test_embed_texts_reuses_cached_vectors(provider, mock_openai_response):
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.side_effect = [
            mock_openai_response(1),
            mock_openai_response(1),
        ]
        mock_get_client.return_value = mock_client

        provider.embed_texts(["cached text"])
        embeddings = provider.embed_texts(["cached text", "new text"])

        assert len(embeddings) == 2
        second_call = mock_client.embeddings.create.call_args_list[1]
        assert second_call[1]["input"] == ["new text"]


@pytest.mark.asyncio
async def test_embed_async_wrapper(provider, mock_openai_response):
    with patch.object(OpenAIEmbeddingProvider, "_get_client") as mock_get_client:
        mock_client = MagicMock()
        mock_client.embeddings.create.return_value = mock_openai_response(2)
        mock_get_client.return_value = mock_client

        embeddings = await provider.embed(["a", "b"])

        assert len(embeddings) == 2


# =============================================================================
# Factory
# =============================================================================


def _configure(monkeypatch, **env):
    for key, value in env.items():
        if value is None:
            monkeypatch.delenv(key, raising=False)
        else:
            monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    reset_embedding_provider()


def test_factory_disabled(monkeypatch):
    _configure(monkeypatch, EMBEDDING_PROVIDER="none", OPENAI_API_KEY="test-openai-key")
    assert get_embedding_provider() is None


def test_factory_missing_key_disables_vector_path(monkeypatch):
    _configure(monkeypatch, EMBEDDING_PROVIDER="openai", OPENAI_API_KEY=None)
    assert get_embedding_provider() is None


def test_factory_creates_openai_provider_once(monkeypatch):
    _configure(monkeypatch, EMBEDDING_PROVIDER="openai", OPENAI_API_KEY="test-openai-key")

    first = get_embedding_provider()
    assert isinstance(first, OpenAIEmbeddingProvider)
    assert first.dimension == 1536
    assert get_embedding_provider() is first


def test_factory_unknown_provider(monkeypatch):
    _configure(monkeypatch, EMBEDDING_PROVIDER="word2vec")
    with pytest.raises(ProviderError, match="Unknown embedding provider"):
        get_embedding_provider()
