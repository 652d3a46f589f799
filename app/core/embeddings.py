"""Embedding providers with validation, caching and a process-wide factory."""

import asyncio
from typing import Protocol

import openai
from openai import OpenAI

from app.core.cache import TTLCache, embedding_cache, make_cache_key
from app.core.config import get_settings
from app.core.errors import ProviderError, RateLimitError
from app.core.logging import get_logger

logger = get_logger(__name__)


class EmbeddingProvider(Protocol):
    """Turns texts into fixed-dimension vectors, one per input, order preserved."""

    name: str

    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class OpenAIEmbeddingProvider:
    """OpenAI embeddings API backend."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        timeout: float = 8.0,
        max_chars: int = 4000,
        cache: TTLCache | None = embedding_cache,
    ):
        self.api_key = api_key
        self.model = model
        self.dimension = dimension
        self.timeout = timeout
        self.max_chars = max_chars
        self.cache = cache

    def _get_client(self) -> OpenAI:
        """Get OpenAI client instance."""
        return OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=1)

    def _cache_key(self, text: str) -> str:
        return make_cache_key(f"embedding:{self.model}", text)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for a list of texts using OpenAI.

        Texts are truncated to max_chars. Cached vectors are reused and only
        the misses are sent to the API.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors (each vector is list of floats)

        Raises:
            ValueError: If embedding dimension doesn't match expected dimension
            RateLimitError: If OpenAI rate limits the request
            Exception: If OpenAI API call fails
        """
        if not texts:
            return []

        inputs = [t[: self.max_chars] for t in texts]
        results: list[list[float] | None] = [None] * len(inputs)
        missing: list[int] = []

        for i, text in enumerate(inputs):
            cached = self.cache.get(self._cache_key(text)) if self.cache is not None else None
            if cached is not None:
                results[i] = cached
            else:
                missing.append(i)

        if missing:
            client = self._get_client()
            try:
                response = client.embeddings.create(
                    model=self.model,
                    input=[inputs[i] for i in missing],
                )
            except openai.RateLimitError as e:
                logger.warning(f"OpenAI embeddings rate limited: {e}")
                raise RateLimitError("openai") from e
            except Exception as e:
                logger.error(f"Failed to generate embeddings: {e}")
                raise

            data = sorted(response.data, key=lambda item: item.index)
            if len(data) != len(missing):
                raise ValueError(
                    f"Embedding count mismatch: expected {len(missing)}, got {len(data)}"
                )

            for slot, embedding_obj in zip(missing, data):
                embedding = list(embedding_obj.embedding)

                # Validate dimension
                if len(embedding) != self.dimension:
                    raise ValueError(
                        f"Embedding dimension mismatch for text {slot}: "
                        f"expected {self.dimension}, got {len(embedding)}"
                    )

                results[slot] = embedding
                if self.cache is not None:
                    self.cache.set(self._cache_key(inputs[slot]), embedding)

        logger.debug(
            f"Embedded {len(inputs)} texts using {self.model} ({len(missing)} uncached)",
            extra={"model": self.model, "count": len(inputs)},
        )

        return results

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Async wrapper around embed_texts using thread pool."""
        return await asyncio.to_thread(self.embed_texts, texts)


_provider: EmbeddingProvider | None = None
_provider_checked = False


def _create_embedding_provider() -> EmbeddingProvider | None:
    settings = get_settings()
    name = settings.EMBEDDING_PROVIDER.lower()

    if name == "none":
        return None

    if name == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not set - relevance scoring will use lexical matching")
            return None
        return OpenAIEmbeddingProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.EMBEDDING_MODEL,
            dimension=settings.EMBEDDING_DIM,
            timeout=settings.EMBEDDING_TIMEOUT_SECONDS,
            max_chars=settings.MAX_CHARS_PER_DOCUMENT,
        )

    raise ProviderError("factory", "INIT_ERROR", f"Unknown embedding provider: {name}")


def get_embedding_provider() -> EmbeddingProvider | None:
    """
    Get the configured embedding provider, created once per process.

    Returns:
        Provider instance, or None when embeddings are disabled or unconfigured

    Raises:
        ProviderError: If EMBEDDING_PROVIDER names an unknown backend
    """
    global _provider, _provider_checked
    if _provider_checked:
        return _provider

    _provider = _create_embedding_provider()
    _provider_checked = True
    if _provider:
        logger.info(f"Using embedding provider: {_provider.name}")
    return _provider


def reset_embedding_provider() -> None:
    """Forget the cached provider so the next call re-reads settings."""
    global _provider, _provider_checked
    _provider = None
    _provider_checked = False
