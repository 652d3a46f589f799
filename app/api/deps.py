"""FastAPI dependencies wiring providers into request handlers.

Override these through app.dependency_overrides in tests.
"""

from app.core.analysis import CorpusProvider
from app.core.embeddings import get_embedding_provider
from app.core.errors import ProviderError
from app.core.llm import GenerativeProvider, get_llm_provider
from app.core.logging import get_logger
from app.core.relevance import RelevanceAggregator
from app.services.page_fetcher import PageFetcher
from app.services.zendesk_service import ZendeskService, get_zendesk_service

logger = get_logger(__name__)


def get_content_service() -> ZendeskService:
    return get_zendesk_service()


def get_corpus_provider() -> CorpusProvider:
    """Lazy corpus fetch, so input validation runs before any network call."""

    async def _fetch():
        return await get_zendesk_service().fetch_corpus()

    return _fetch


def get_aggregator() -> RelevanceAggregator:
    """A fresh aggregator per request around the process-wide embedding provider."""
    return RelevanceAggregator.from_settings(get_embedding_provider())


def get_page_fetcher() -> PageFetcher:
    return PageFetcher.from_settings()


def get_generative_provider() -> GenerativeProvider:
    return get_llm_provider()


def get_optional_generative_provider() -> GenerativeProvider | None:
    """The generative provider, or None when it is not configured."""
    try:
        return get_llm_provider()
    except ProviderError as e:
        logger.info(f"Generative provider unavailable: {e}")
        return None
