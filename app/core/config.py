"""Configuration management for the Docs Gap Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    DOCS_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    LOG_LEVEL: str | None = Field(default=None, description="Override log level (DEBUG, INFO, ...)")

    # Provider credentials (optional: a missing key disables that provider)
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key (embeddings)")
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    PERPLEXITY_API_KEY: str | None = Field(default=None, description="Perplexity API key")

    # Zendesk help center
    ZENDESK_SUBDOMAIN: str | None = Field(default=None, description="Zendesk subdomain")
    ZENDESK_EMAIL: str | None = Field(default=None, description="Zendesk agent email")
    ZENDESK_API_KEY: str | None = Field(default=None, description="Zendesk API token")
    ZENDESK_LOCALE: str = Field(default="en-us", description="Help center locale")
    ZENDESK_TIMEOUT_SECONDS: float = Field(default=8.0, description="Timeout per Zendesk call")
    ZENDESK_PER_PAGE: int = Field(default=100, description="Articles per listing page")

    # Embedding configuration
    EMBEDDING_PROVIDER: str = Field(default="openai", description="Embedding backend: openai, none")
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")
    EMBEDDING_BATCH_SIZE: int = Field(default=20, description="Documents per embedding request")
    EMBEDDING_CONCURRENCY: int = Field(default=4, description="Embedding batches in flight")
    EMBEDDING_TIMEOUT_SECONDS: float = Field(default=8.0, description="Timeout per embedding call")
    MAX_CORPUS_DOCUMENTS: int = Field(default=500, description="Max articles considered per analysis")
    MAX_CHARS_PER_DOCUMENT: int = Field(
        default=4000, description="Article body prefix sent for embedding"
    )

    # Generative LLM configuration
    LLM_PROVIDER: str = Field(default="claude", description="LLM backend: claude, perplexity")
    CLAUDE_MODEL: str = Field(default="claude-haiku-4-5-20251001", description="Claude model")
    PERPLEXITY_MODEL: str = Field(default="sonar-pro", description="Perplexity model")
    LLM_TIMEOUT_SECONDS: float = Field(default=9.0, description="Timeout per LLM call")

    # Analysis limits
    MAX_RELEASE_NOTES_CHARS: int = Field(default=200_000, description="Max release notes characters")
    TOP_N_ARTICLES: int = Field(default=5, description="Matched articles returned per analysis")
    MAX_GAPS: int = Field(default=5, description="Gaps returned per analysis")
    MAX_TOPICS: int = Field(default=15, description="Topics extracted from release notes")

    # Gap detection
    GAP_SEMANTIC_CHECK: bool = Field(
        default=True, description="Run embedding coverage check for each candidate gap"
    )
    GAP_COVERAGE_THRESHOLD: float = Field(
        default=0.6, description="Similarity above which a topic counts as covered"
    )
    GAP_FAIL_OPEN: bool = Field(
        default=True, description="Treat topics as uncovered when the semantic check fails"
    )

    # Topic extraction stop words (comma-separated additions, optional file)
    TOPIC_EXTRA_STOP_WORDS: str = Field(default="", description="Extra stop words, comma separated")
    TOPIC_STOP_WORDS_FILE: str | None = Field(
        default=None, description="Path to a stop-word file, one word per line"
    )

    # Release notes fetched from a URL
    FETCH_URL_TIMEOUT_SECONDS: float = Field(default=10.0, description="Timeout for page fetches")
    FETCH_URL_MIN_CHARS: int = Field(default=100, description="Minimum readable characters")
    FETCH_URL_MAX_CHARS: int = Field(default=10_000, description="Characters kept from a page")

    # Cache TTLs
    ANALYSIS_CACHE_TTL_SECONDS: int = Field(default=3600, description="Analysis result TTL")
    EMBEDDING_CACHE_TTL_SECONDS: int = Field(default=86400, description="Embedding TTL")
    ARTICLE_CACHE_TTL_SECONDS: int = Field(default=3600, description="Article listing TTL")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If an environment variable has an invalid value
    """
    return Settings()
