"""Release-notes analysis pipeline.

One request runs:
1. Input validation (no external calls on failure)
2. Corpus fetch through the injected corpus provider
3. Relevance aggregation (vector path, lexical fallback)
4. Topic extraction and gap detection
5. Update-suggestion classification for each matched article
6. Summary

Results computed on the vector path are cached by release notes + corpus
identity; degraded (fallback) results are not cached.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from app.core.cache import TTLCache, analysis_cache, make_cache_key
from app.core.config import get_settings
from app.core.errors import AnalysisInputError, UpstreamUnavailableError
from app.core.gap_detector import detect_gaps
from app.core.logging import get_logger, log_with_context
from app.core.relevance import RelevanceAggregator
from app.core.schemas_analysis import AnalysisResult, Document
from app.core.topic_extraction import extract_topics
from app.core.update_classifier import classify

logger = get_logger(__name__)

CorpusProvider = Callable[[], Awaitable[Sequence[Document]]]


def coverage_label(matched_count: int) -> str:
    if matched_count >= 3:
        return "Good"
    if matched_count >= 1:
        return "Moderate"
    return "Low"


def build_summary(
    matched_count: int,
    gap_count: int,
    topic_count: int,
    version: str | None = None,
    date: str | None = None,
) -> str:
    """Human-readable summary computed from the result counts."""
    return (
        f"Version {version or 'Unknown'} ({date or 'Unknown'}): "
        f"{matched_count} articles matched, {gap_count} gaps identified, "
        f"{topic_count} key topics. Coverage: {coverage_label(matched_count)}"
    )


def corpus_identity(corpus: Sequence[Document]) -> list[str]:
    """Stable identity of a corpus snapshot: sorted id@updated_at pairs."""
    return sorted(f"{doc.id}@{doc.updated_at or ''}" for doc in corpus)


def validate_release_notes(release_notes: str | None) -> str:
    """Reject empty or oversized release notes before any network call."""
    if not release_notes or not release_notes.strip():
        raise AnalysisInputError("Release notes are required")

    max_chars = get_settings().MAX_RELEASE_NOTES_CHARS
    if len(release_notes) > max_chars:
        raise AnalysisInputError(f"Release notes exceed {max_chars} characters")

    return release_notes


async def analyze(
    release_notes: str,
    corpus_provider: CorpusProvider,
    aggregator: RelevanceAggregator,
    *,
    version: str | None = None,
    date: str | None = None,
    cache: TTLCache | None = analysis_cache,
    request_id: str | None = None,
) -> AnalysisResult:
    """
    Match release notes against the article corpus and detect gaps.

    Args:
        release_notes: Free-text release notes
        corpus_provider: Async callable returning the article corpus
        aggregator: Request-scoped relevance aggregator
        version: Release version, used in the summary
        date: Release date, used in the summary
        cache: Result cache (None disables caching)
        request_id: Correlation id for logs

    Returns:
        AnalysisResult

    Raises:
        AnalysisInputError: If release notes are empty or too long
        UpstreamUnavailableError: If the corpus cannot be fetched
    """
    validate_release_notes(release_notes)
    settings = get_settings()

    try:
        corpus = list(await corpus_provider())
    except UpstreamUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Corpus fetch failed: {e}")
        raise UpstreamUnavailableError("Help center articles are temporarily unavailable") from e

    cache_key = None
    if cache is not None:
        cache_key = make_cache_key(
            "analysis", release_notes, version or "", date or "", corpus_identity(corpus)
        )
        cached = cache.get(cache_key)
        if cached is not None:
            logger.info("Analysis cache hit")
            return cached

    log_with_context(
        logger,
        logging.INFO,
        "Starting release notes analysis",
        request_id=request_id,
        corpus_size=len(corpus),
        notes_chars=len(release_notes),
    )

    relevance = await aggregator.find_relevant_documents(
        release_notes, corpus, top_n=settings.TOP_N_ARTICLES
    )
    articles = [
        doc.model_copy(update={"suggested_action": classify(doc.relevance_score)})
        for doc in relevance.documents
    ]

    topics = extract_topics(release_notes, max_topics=settings.MAX_TOPICS)
    gaps = await detect_gaps(
        release_notes,
        topics,
        articles,
        corpus,
        aggregator=aggregator,
        max_gaps=settings.MAX_GAPS,
    )

    result = AnalysisResult(
        articles=articles,
        gaps=gaps,
        topics=topics,
        summary=build_summary(len(articles), len(gaps), len(topics), version, date),
        used_fallback=relevance.used_fallback,
        total_articles_searched=len(corpus),
    )

    log_with_context(
        logger,
        logging.INFO,
        "Analysis complete",
        request_id=request_id,
        articles=len(articles),
        gaps=len(gaps),
        fallback=relevance.used_fallback,
    )

    if cache is not None and cache_key and not relevance.used_fallback:
        cache.set(cache_key, result)

    return result
