"""Documentation gap detection.

A topic from the release notes is a gap when no existing article covers it:
1. Title check: the topic (case-folded) is not a substring of any matched
   article title, nor of any title in the full corpus
2. Semantic check (optional): no article embedding scores above the
   coverage threshold for the topic

Semantic checks for independent topics run concurrently. When one fails the
topic is presumed uncovered (GAP_FAIL_OPEN).

Gaps are deduplicated by case-folded topic, ranked by mention count and
truncated.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.relevance import RelevanceAggregator
from app.core.schemas_analysis import Document, Gap, ScoredDocument
from app.core.topic_extraction import count_mentions

logger = get_logger(__name__)

REASON_NO_TITLE = "No existing article title covers this topic"
REASON_NO_SEMANTIC = "No article is semantically similar to this topic"
REASON_CHECK_FAILED = "Coverage check unavailable; flagged for review"


def _title_set(documents: Sequence[Document]) -> set[str]:
    return {doc.title.casefold() for doc in documents if doc.title}


def is_title_covered(topic: str, titles: set[str]) -> bool:
    """Whether the case-folded topic appears inside any of the titles."""
    needle = topic.casefold()
    return any(needle in title for title in titles)


async def _semantic_coverage(
    topic: str,
    corpus: Sequence[Document],
    aggregator: RelevanceAggregator,
    threshold: float,
    fail_open: bool,
) -> tuple[bool, str]:
    """(covered, reason) for one topic via embedding similarity."""
    try:
        covered = await aggregator.has_similar_document(topic, corpus, threshold)
    except Exception as e:
        logger.warning(f"Semantic coverage check failed for {topic!r}: {e}")
        if fail_open:
            return False, REASON_CHECK_FAILED
        return True, REASON_CHECK_FAILED
    return covered, REASON_NO_SEMANTIC


def rank_gaps(gaps: Sequence[Gap], max_gaps: int) -> list[Gap]:
    """Dedupe by case-folded topic (first wins), sort by mentions desc, truncate."""
    seen: set[str] = set()
    deduped: list[Gap] = []
    for gap in gaps:
        key = gap.topic.casefold()
        if key not in seen:
            seen.add(key)
            deduped.append(gap)

    deduped.sort(key=lambda g: g.mentions, reverse=True)
    return deduped[: max(max_gaps, 0)]


async def detect_gaps(
    source_text: str,
    topics: Sequence[str],
    matched: Sequence[ScoredDocument],
    full_corpus: Sequence[Document] = (),
    aggregator: RelevanceAggregator | None = None,
    max_gaps: int | None = None,
    coverage_threshold: float | None = None,
    semantic_check: bool | None = None,
    fail_open: bool | None = None,
) -> list[Gap]:
    """
    Determine which topics lack documentation.

    Args:
        source_text: Release notes the topics were extracted from
        topics: Candidate topics
        matched: Articles already matched to the release notes
        full_corpus: Every available article (secondary title check)
        aggregator: Enables the semantic coverage check when it has a vector path
        max_gaps: Maximum number of gaps returned
        coverage_threshold: Similarity (0-1) above which a topic is covered
        semantic_check: Override GAP_SEMANTIC_CHECK
        fail_open: Override GAP_FAIL_OPEN

    Returns:
        Gaps sorted by mentions descending, no duplicate topics
    """
    settings = get_settings()
    max_gaps = settings.MAX_GAPS if max_gaps is None else max_gaps
    threshold = settings.GAP_COVERAGE_THRESHOLD if coverage_threshold is None else coverage_threshold
    semantic_check = settings.GAP_SEMANTIC_CHECK if semantic_check is None else semantic_check
    fail_open = settings.GAP_FAIL_OPEN if fail_open is None else fail_open

    matched_titles = _title_set(matched)
    corpus_titles = _title_set(full_corpus)

    # Title check first; dedupe candidates so each topic is checked once
    candidates: list[str] = []
    seen: set[str] = set()
    for topic in topics:
        if not topic or not topic.strip():
            continue
        key = topic.casefold()
        if key in seen:
            continue
        seen.add(key)
        if is_title_covered(topic, matched_titles) or is_title_covered(topic, corpus_titles):
            continue
        candidates.append(topic)

    reasons = {topic: REASON_NO_TITLE for topic in candidates}

    use_semantic = (
        semantic_check
        and aggregator is not None
        and aggregator.has_vector_path
        and bool(full_corpus)
        and bool(candidates)
    )
    if use_semantic:
        checks = await asyncio.gather(
            *(
                _semantic_coverage(topic, full_corpus, aggregator, threshold, fail_open)
                for topic in candidates
            )
        )
        uncovered = []
        for topic, (covered, reason) in zip(candidates, checks):
            if not covered:
                uncovered.append(topic)
                reasons[topic] = reason
        candidates = uncovered

    gaps = [
        Gap(topic=topic, mentions=count_mentions(source_text, topic), reason=reasons[topic])
        for topic in candidates
    ]
    ranked = rank_gaps(gaps, max_gaps)

    logger.info(
        f"Gap detection: {len(ranked)} gaps from {len(topics)} topics",
        extra={"candidates": len(gaps), "semantic": use_semantic},
    )
    return ranked
