"""Article comparison and drafting API endpoints (generative provider)."""

from fastapi import APIRouter, Depends

from app.api.deps import get_generative_provider
from app.core.errors import AnalysisInputError
from app.core.llm import GenerativeProvider, ParseFailure
from app.core.logging import get_logger
from app.core.schemas_analysis import (
    CompareRequest,
    CompareResponse,
    GenerateArticleRequest,
    TranslateRequest,
)
from app.core.update_classifier import REVIEW_FOR_RELEVANCE, classify, should_update

logger = get_logger(__name__)

router = APIRouter()

# Impact analysis scores are 1-10 ordinals
IMPACT_SCALE = 10.0

PARSE_FAILURE_SUMMARY = "Unable to parse impact analysis - manual review recommended"


@router.post("/compare", response_model=CompareResponse)
async def compare_article(
    request: CompareRequest,
    llm: GenerativeProvider = Depends(get_generative_provider),
) -> CompareResponse:
    """
    Analyze how release notes affect one article and draft an updated version.

    An unparseable impact analysis is reported as such (impact_analysis is
    null, parse_error is set) and the article is flagged for manual review.
    """
    if not request.release_notes.strip() or not request.article_content.strip():
        raise AnalysisInputError("Release notes and article content are required")

    logger.info(f"Comparing article {request.article_id or '<inline>'}")

    parsed = await llm.analyze_impact(request.release_notes, request.article_content)
    suggested_update = await llm.generate_update(request.release_notes, request.article_content)

    if isinstance(parsed, ParseFailure):
        return CompareResponse(
            should_update=True,
            suggested_update=suggested_update,
            impact_analysis=None,
            parse_error=PARSE_FAILURE_SUMMARY,
            suggested_action=REVIEW_FOR_RELEVANCE,
        )

    impact = parsed.value
    logger.info(
        f"Impact analysis complete: severity={impact.severity.value}, score={impact.score}"
    )
    return CompareResponse(
        should_update=should_update(impact.score),
        suggested_update=suggested_update,
        impact_analysis=impact,
        suggested_action=classify(impact.score / IMPACT_SCALE),
    )


@router.post("/generate-article")
async def generate_article(
    request: GenerateArticleRequest,
    llm: GenerativeProvider = Depends(get_generative_provider),
) -> dict:
    """Draft a new help article for an undocumented topic."""
    if not request.topic.strip():
        raise AnalysisInputError("Topic is required")

    content = await llm.generate_article(request.topic.strip(), request.context)
    return {"success": True, "data": {"content": content}}


@router.post("/translate")
async def translate(
    request: TranslateRequest,
    llm: GenerativeProvider = Depends(get_generative_provider),
) -> dict:
    if not request.text.strip() or not request.target_language.strip():
        raise AnalysisInputError("Text and target language are required")

    content = await llm.translate_text(request.text, request.target_language)
    return {"success": True, "data": {"content": content}}
