"""Tests for the release-notes analysis pipeline."""

from unittest.mock import AsyncMock

import pytest

from app.core.analysis import analyze, build_summary, coverage_label, corpus_identity
from app.core.cache import TTLCache
from app.core.config import get_settings
from app.core.errors import AnalysisInputError, UpstreamUnavailableError
from app.core.gap_detector import REASON_CHECK_FAILED
from app.core.relevance import RelevanceAggregator
from app.core.schemas_analysis import Document
from app.core.update_classifier import UPDATE_RELATED, classify
from tests.fakes.fake_embeddings import KeywordEmbeddingProvider
from tests.fakes.sample_articles import RELEASE_NOTES, SAMPLE_ARTICLES


def _corpus_provider(articles=SAMPLE_ARTICLES):
    return AsyncMock(return_value=list(articles))


# =============================================================================
# Summary
# =============================================================================


def test_build_summary():
    summary = build_summary(3, 2, 10, version="4.2", date="2024-05-01")
    assert summary == (
        "Version 4.2 (2024-05-01): 3 articles matched, 2 gaps identified, "
        "10 key topics. Coverage: Good"
    )


def test_build_summary_unknown_version_and_date():
    assert build_summary(0, 0, 0).startswith("Version Unknown (Unknown): 0 articles matched")


@pytest.mark.parametrize("count,label", [(0, "Low"), (1, "Moderate"), (2, "Moderate"), (3, "Good")])
def test_coverage_label(count, label):
    assert coverage_label(count) == label


def test_corpus_identity_ignores_order():
    a = Document(id="1", title="A", updated_at="t1")
    b = Document(id="2", title="B")
    assert corpus_identity([a, b]) == corpus_identity([b, a])
    assert corpus_identity([a]) != corpus_identity([a.model_copy(update={"updated_at": "t2"})])


# =============================================================================
# Input validation and upstream failures
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("notes", ["", "   \n\t"])
async def test_empty_release_notes_rejected_before_fetch(notes):
    corpus_provider = _corpus_provider()

    with pytest.raises(AnalysisInputError):
        await analyze(notes, corpus_provider, RelevanceAggregator(None), cache=None)

    corpus_provider.assert_not_awaited()


@pytest.mark.asyncio
async def test_oversized_release_notes_rejected(monkeypatch):
    monkeypatch.setenv("MAX_RELEASE_NOTES_CHARS", "20")
    get_settings.cache_clear()
    corpus_provider = _corpus_provider()

    with pytest.raises(AnalysisInputError, match="exceed"):
        await analyze("x" * 21, corpus_provider, RelevanceAggregator(None), cache=None)

    corpus_provider.assert_not_awaited()


@pytest.mark.asyncio
async def test_corpus_failure_is_upstream_unavailable():
    corpus_provider = AsyncMock(side_effect=ConnectionError("boom"))

    with pytest.raises(UpstreamUnavailableError):
        await analyze(RELEASE_NOTES, corpus_provider, RelevanceAggregator(None), cache=None)


@pytest.mark.asyncio
async def test_upstream_error_propagates_unchanged():
    error = UpstreamUnavailableError("Zendesk credentials not configured")
    corpus_provider = AsyncMock(side_effect=error)

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await analyze(RELEASE_NOTES, corpus_provider, RelevanceAggregator(None), cache=None)

    assert exc_info.value is error


# =============================================================================
# Full pipeline
# =============================================================================


@pytest.mark.asyncio
async def test_analyze_vector_path():
    aggregator = RelevanceAggregator(KeywordEmbeddingProvider())

    result = await analyze(
        RELEASE_NOTES,
        _corpus_provider(),
        aggregator,
        version="4.2",
        date="2024-05-01",
        cache=None,
    )

    assert result.used_fallback is False
    assert result.total_articles_searched == len(SAMPLE_ARTICLES)
    assert result.articles[0].id == "101"
    assert result.articles[0].suggested_action == UPDATE_RELATED
    for article in result.articles:
        assert article.suggested_action == classify(article.relevance_score)

    scores = [a.relevance_score for a in result.articles]
    assert scores == sorted(scores, reverse=True)

    assert len(result.topics) == 15
    assert result.topics[0] == "export"
    assert len(set(result.topics)) == len(result.topics)

    gap_topics = [g.topic for g in result.gaps]
    assert len(gap_topics) == 5
    assert gap_topics[0] == "scheduling"
    # Covered by the "Exporting reports to PDF" title
    assert "export" not in gap_topics
    mentions = [g.mentions for g in result.gaps]
    assert mentions == sorted(mentions, reverse=True)

    assert result.summary == (
        "Version 4.2 (2024-05-01): 5 articles matched, 5 gaps identified, "
        "15 key topics. Coverage: Good"
    )


@pytest.mark.asyncio
async def test_analyze_lexical_fallback():
    result = await analyze(RELEASE_NOTES, _corpus_provider(), RelevanceAggregator(None), cache=None)

    assert result.used_fallback is True
    assert all(a.relevance_score > 0 for a in result.articles)
    assert len(result.gaps) <= get_settings().MAX_GAPS


@pytest.mark.asyncio
async def test_analyze_empty_corpus():
    result = await analyze(
        RELEASE_NOTES,
        _corpus_provider([]),
        RelevanceAggregator(KeywordEmbeddingProvider()),
        cache=None,
    )

    assert result.articles == []
    assert result.total_articles_searched == 0
    assert len(result.gaps) == 5
    assert result.summary.endswith("Coverage: Low")


@pytest.mark.asyncio
async def test_analyze_result_is_cached():
    cache = TTLCache(ttl_seconds=60)
    provider = KeywordEmbeddingProvider()

    first = await analyze(
        RELEASE_NOTES, _corpus_provider(), RelevanceAggregator(provider), cache=cache
    )
    calls = len(provider.calls)
    second = await analyze(
        RELEASE_NOTES, _corpus_provider(), RelevanceAggregator(provider), cache=cache
    )

    assert second == first
    assert len(provider.calls) == calls
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_changed_corpus_misses_cache():
    cache = TTLCache(ttl_seconds=60)
    provider = KeywordEmbeddingProvider()

    await analyze(RELEASE_NOTES, _corpus_provider(), RelevanceAggregator(provider), cache=cache)
    edited = [SAMPLE_ARTICLES[0].model_copy(update={"updated_at": "2025-01-01T00:00:00Z"})]
    await analyze(RELEASE_NOTES, _corpus_provider(edited), RelevanceAggregator(provider), cache=cache)

    assert len(cache) == 2


@pytest.mark.asyncio
async def test_fallback_result_is_not_cached():
    cache = TTLCache(ttl_seconds=60)

    result = await analyze(RELEASE_NOTES, _corpus_provider(), RelevanceAggregator(None), cache=cache)

    assert result.used_fallback is True
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_repeated_phrase_becomes_gap_with_mentions():
    notes = (
        "Advanced Filtering is here. Advanced Filtering works on every report. "
        "Try Advanced Filtering today."
    )

    result = await analyze(notes, _corpus_provider(), RelevanceAggregator(None), cache=None)

    assert result.gaps
    by_topic = {g.topic: g.mentions for g in result.gaps}
    assert by_topic.get("advanced") == 3
    assert by_topic.get("filtering") == 3


@pytest.mark.asyncio
async def test_failed_document_batches_are_not_repeated_per_topic():
    corpus = [
        Document(id=str(i), title=f"Article {i}", body="General help center content.")
        for i in range(40)
    ]
    # Document texts contain a blank line; the release notes do not
    provider = KeywordEmbeddingProvider(fail_on=("\n\n",))
    aggregator = RelevanceAggregator(provider, batch_size=20)
    notes = (
        "Added gantt timelines. Improved calendar syncing. New kanban boards. "
        "Faster spreadsheet imports. Detailed audit trails. Mobile widgets. "
        "Offline caching. Custom fonts."
    )

    result = await analyze(notes, _corpus_provider(corpus), aggregator, cache=None)

    document_calls = [call for call in provider.calls if any("\n\n" in t for t in call)]
    assert len(document_calls) <= 2
    assert len(provider.calls) == 3
    assert result.used_fallback is True
    assert result.gaps
    assert all(gap.reason == REASON_CHECK_FAILED for gap in result.gaps)
