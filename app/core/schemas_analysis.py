"""Pydantic models for release-notes analysis.

Scores inside the core are always on the canonical 0-1 scale. Scaling to
0-100 for display happens only in the response models at the API boundary.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator


# =============================================================================
# Core entities
# =============================================================================


class Document(BaseModel):
    """A help-center article as seen by the scoring pipeline."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    body: str = ""
    category: str | None = None
    updated_at: str | None = None
    url: str | None = None

    @property
    def search_text(self) -> str:
        return f"{self.title}\n\n{self.body}"


class ScoredDocument(Document):
    """A Document with a derived relevance score (0-1)."""

    relevance_score: float = Field(ge=0.0)
    suggested_action: str | None = None

    @classmethod
    def from_document(cls, doc: Document, score: float) -> "ScoredDocument":
        return cls(**doc.model_dump(), relevance_score=max(0.0, score))


class Gap(BaseModel):
    """A release-notes topic with no adequate existing documentation."""

    topic: str
    mentions: int = Field(default=0, ge=0)
    reason: str | None = None


class RelevanceResult(BaseModel):
    """Output of the relevance aggregator."""

    documents: list[ScoredDocument] = Field(default_factory=list)
    used_fallback: bool = False
    scored_count: int = 0
    failed_batches: int = 0


class AnalysisResult(BaseModel):
    """Aggregate output of one analysis run."""

    articles: list[ScoredDocument] = Field(default_factory=list)
    gaps: list[Gap] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    summary: str = ""
    used_fallback: bool = False
    total_articles_searched: int = 0


class ArticlePage(BaseModel):
    """One page of articles from the content repository."""

    articles: list[Document] = Field(default_factory=list)
    total: int = 0
    pages: int = 0


# =============================================================================
# Generative provider payloads
# =============================================================================


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ImpactAnalysis(BaseModel):
    """Validated impact analysis returned by a generative provider."""

    score: int = Field(ge=1, le=10)  # 1-10 ordinal
    severity: Severity
    category: str
    affected_roles: list[str] = Field(default_factory=list, alias="affectedRoles")
    summary: str
    action_required: str = Field(alias="actionRequired")
    risk_assessment: str = Field(default="", alias="riskAssessment")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("severity", mode="before")
    @classmethod
    def _upper_severity(cls, v):
        return v.upper() if isinstance(v, str) else v


class ReleaseNotesExtraction(BaseModel):
    """Release notes split into categories by a generative provider."""

    features: list[str] = Field(default_factory=list)
    bug_fixes: list[str] = Field(default_factory=list, alias="bugFixes")
    deprecations: list[str] = Field(default_factory=list)
    breaking_changes: list[str] = Field(default_factory=list, alias="breakingChanges")

    model_config = ConfigDict(populate_by_name=True)


class GapSuggestions(RootModel[list[str]]):
    """Named feature gaps proposed by a generative provider."""

    @field_validator("root")
    @classmethod
    def _clean(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s and s.strip()]


# =============================================================================
# API request / response models
# =============================================================================


class AnalysisRequest(BaseModel):
    release_notes: str = ""
    version: str | None = None
    date: str | None = None
    include_extraction: bool = False


class MatchedArticleOut(BaseModel):
    id: str
    title: str
    url: str | None = None
    category: str | None = None
    updated_at: str | None = None
    relevance_score: float  # canonical 0-1
    display_score: int  # 0-100 for presentation
    suggested_updates: str | None = None

    @classmethod
    def from_scored(cls, doc: ScoredDocument) -> "MatchedArticleOut":
        return cls(
            id=doc.id,
            title=doc.title,
            url=doc.url,
            category=doc.category,
            updated_at=doc.updated_at,
            relevance_score=doc.relevance_score,
            display_score=round(doc.relevance_score * 100),
            suggested_updates=doc.suggested_action,
        )


class AnalysisData(BaseModel):
    articles: list[MatchedArticleOut]
    gaps: list[Gap]
    topics: list[str]
    summary: str
    total_articles_searched: int
    used_fallback: bool
    extraction: ReleaseNotesExtraction | None = None


class AnalysisResponse(BaseModel):
    success: bool = True
    data: AnalysisData


class DetectGapsRequest(BaseModel):
    release_notes: str = ""
    titles: list[str] = Field(default_factory=list)


class CompareRequest(BaseModel):
    release_notes: str = ""
    article_id: str = ""
    article_content: str = ""


class CompareResponse(BaseModel):
    should_update: bool
    suggested_update: str
    impact_analysis: ImpactAnalysis | None = None
    parse_error: str | None = None
    suggested_action: str | None = None


class GenerateArticleRequest(BaseModel):
    topic: str = ""
    context: str = ""


class TranslateRequest(BaseModel):
    text: str = ""
    target_language: str = ""


class FetchUrlRequest(BaseModel):
    url: str = ""


class FetchedPage(BaseModel):
    """Readable text pulled from a release-notes page."""

    content: str
    char_count: int
    source: str
    original_length: int
