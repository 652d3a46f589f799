"""Pytest configuration and fixtures."""

import os

import pytest

# Loggers read settings when first configured, so the test environment
# must be in place before any app module is imported.
os.environ["DOCS_ENGINE_ENV"] = "test"
os.environ["EMBEDDING_PROVIDER"] = "none"
os.environ["LLM_PROVIDER"] = "claude"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("ANTHROPIC_API_KEY", None)
os.environ.pop("ZENDESK_SUBDOMAIN", None)

from app.core.cache import clear_all_caches  # noqa: E402
from app.core.config import get_settings  # noqa: E402
from app.core.embeddings import reset_embedding_provider  # noqa: E402
from app.core.llm import reset_llm_provider  # noqa: E402
from app.core.topic_extraction import configured_stop_words  # noqa: E402
from app.services.zendesk_service import reset_zendesk_service  # noqa: E402
from tests.fakes.fake_embeddings import KeywordEmbeddingProvider  # noqa: E402
from tests.fakes.fake_llm import FakeGenerativeProvider  # noqa: E402
from tests.fakes.sample_articles import SAMPLE_ARTICLES  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["DOCS_ENGINE_ENV"] = "test"
    os.environ["EMBEDDING_PROVIDER"] = "none"


@pytest.fixture(autouse=True)
def reset_process_state():
    """Each test starts with fresh settings, provider singletons and caches."""
    get_settings.cache_clear()
    configured_stop_words.cache_clear()
    reset_embedding_provider()
    reset_llm_provider()
    reset_zendesk_service()
    clear_all_caches()
    yield
    get_settings.cache_clear()
    configured_stop_words.cache_clear()
    clear_all_caches()


@pytest.fixture
def sample_articles():
    return list(SAMPLE_ARTICLES)


@pytest.fixture
def embedding_provider():
    return KeywordEmbeddingProvider()


@pytest.fixture
def fake_llm():
    return FakeGenerativeProvider()
