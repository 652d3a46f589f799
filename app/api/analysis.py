"""Release-notes analysis API endpoints."""

import uuid

from fastapi import APIRouter, Depends

from app.api.deps import (
    get_aggregator,
    get_corpus_provider,
    get_optional_generative_provider,
    get_page_fetcher,
)
from app.core.analysis import CorpusProvider, analyze, validate_release_notes
from app.core.config import get_settings
from app.core.errors import ProviderError, UpstreamUnavailableError
from app.core.gap_detector import detect_gaps
from app.core.llm import GenerativeProvider, ParseSuccess
from app.core.logging import get_logger
from app.core.relevance import RelevanceAggregator
from app.core.schemas_analysis import (
    AnalysisData,
    AnalysisRequest,
    AnalysisResponse,
    DetectGapsRequest,
    Document,
    FetchUrlRequest,
    MatchedArticleOut,
    ReleaseNotesExtraction,
    ScoredDocument,
)
from app.core.topic_extraction import extract_topics
from app.services.page_fetcher import PageFetcher

logger = get_logger(__name__)

router = APIRouter()


async def _suggest_topics(
    provider: GenerativeProvider | None,
    release_notes: str,
    existing_titles: list[str],
    max_topics: int,
) -> list[str] | None:
    """Named feature gaps from the LLM, or None when it is unavailable or unparseable."""
    if provider is None:
        return None
    try:
        parsed = await provider.suggest_gaps(release_notes, existing_titles)
    except ProviderError as e:
        logger.warning(f"LLM gap suggestions skipped: {e}")
        return None

    if isinstance(parsed, ParseSuccess) and parsed.value:
        return parsed.value[:max_topics]
    return None


async def _extract_release_notes(
    provider: GenerativeProvider | None,
    release_notes: str,
) -> ReleaseNotesExtraction | None:
    """Best-effort LLM categorization; analysis never fails because of it."""
    if provider is None:
        return None
    try:
        parsed = await provider.extract_release_notes(release_notes)
    except ProviderError as e:
        logger.warning(f"Release notes extraction skipped: {e}")
        return None

    if isinstance(parsed, ParseSuccess):
        return parsed.value
    return None


@router.post("/analysis", response_model=AnalysisResponse)
async def run_analysis(
    request: AnalysisRequest,
    corpus_provider: CorpusProvider = Depends(get_corpus_provider),
    aggregator: RelevanceAggregator = Depends(get_aggregator),
    llm: GenerativeProvider | None = Depends(get_optional_generative_provider),
) -> AnalysisResponse:
    """
    Match release notes against the help center and detect documentation gaps.

    Returns matched articles (with 0-100 display scores and suggested
    updates), gaps ranked by mentions, extracted topics and a summary.
    """
    request_id = str(uuid.uuid4())

    result = await analyze(
        request.release_notes,
        corpus_provider,
        aggregator,
        version=request.version,
        date=request.date,
        request_id=request_id,
    )

    extraction = None
    if request.include_extraction:
        extraction = await _extract_release_notes(llm, request.release_notes)

    return AnalysisResponse(
        data=AnalysisData(
            articles=[MatchedArticleOut.from_scored(doc) for doc in result.articles],
            gaps=result.gaps,
            topics=result.topics,
            summary=result.summary,
            total_articles_searched=result.total_articles_searched,
            used_fallback=result.used_fallback,
            extraction=extraction,
        )
    )


@router.post("/detect-gaps")
async def run_gap_detection(
    request: DetectGapsRequest,
    corpus_provider: CorpusProvider = Depends(get_corpus_provider),
    aggregator: RelevanceAggregator = Depends(get_aggregator),
    llm: GenerativeProvider | None = Depends(get_optional_generative_provider),
) -> dict:
    """
    Detect documentation gaps only.

    Titles supplied in the request count as already-covered articles in
    addition to the help center corpus. With a generative provider
    configured, candidate topics are named features suggested by the LLM;
    otherwise (or when that call fails) they are keywords from the notes.
    """
    validate_release_notes(request.release_notes)
    settings = get_settings()

    try:
        corpus = list(await corpus_provider())
    except UpstreamUnavailableError:
        raise
    except Exception as e:
        raise UpstreamUnavailableError("Help center articles are temporarily unavailable") from e

    covered = [
        ScoredDocument.from_document(Document(id=f"title:{i}", title=title), 1.0)
        for i, title in enumerate(request.titles)
        if title
    ]

    existing_titles = [doc.title for doc in covered] + [doc.title for doc in corpus]
    topics = await _suggest_topics(
        llm, request.release_notes, existing_titles, settings.MAX_TOPICS
    )
    topic_source = "llm"
    if topics is None:
        topics = extract_topics(request.release_notes, max_topics=settings.MAX_TOPICS)
        topic_source = "keywords"

    gaps = await detect_gaps(
        request.release_notes,
        topics,
        covered,
        corpus,
        aggregator=aggregator,
        max_gaps=settings.MAX_GAPS,
    )

    return {
        "success": True,
        "data": {
            "gaps": [g.model_dump() for g in gaps],
            "count": len(gaps),
            "topics": topics,
            "topic_source": topic_source,
            "validation_method": "embeddings" if aggregator.has_vector_path else "titles",
        },
    }


@router.post("/fetch-url")
async def fetch_release_notes_url(
    request: FetchUrlRequest,
    fetcher: PageFetcher = Depends(get_page_fetcher),
) -> dict:
    """Pull readable release-notes text from a web page for analysis."""
    page = await fetcher.fetch(request.url)
    return {"success": True, "data": page.model_dump()}
