"""Map relevance scores to suggested update actions.

Thresholds live in a named, overridable table; nothing is compared inline.
Scores are expected on the canonical 0-1 scale; 0-100 inputs are converted
at the boundary.
"""

from dataclasses import dataclass

REVIEW_FOR_RELEVANCE = "Review for relevance"
UPDATE_RELATED = "Update with related information"
UPDATE_NEW = "Update with new information"
PRIORITY_UPDATE = "Priority update required"

SCALES = {"0-1": 1.0, "0-100": 100.0}


@dataclass(frozen=True)
class UpdateThresholds:
    """Lower bounds (inclusive, 0-1 scale) for each suggested action."""

    related: float = 0.5
    new_information: float = 0.65
    priority: float = 0.8

    # Impact analysis ordinal (1-10) at or above which an update is recommended
    impact_update: int = 5

    def __post_init__(self) -> None:
        if not (0.0 <= self.related <= self.new_information <= self.priority <= 1.0):
            raise ValueError("Thresholds must be ascending and within [0, 1]")


DEFAULT_THRESHOLDS = UpdateThresholds()


def normalize_score(score: float, scale: str = "0-1") -> float:
    """Convert a score on the given scale to the canonical 0-1 scale."""
    try:
        divisor = SCALES[scale]
    except KeyError:
        raise ValueError(f"Unknown score scale: {scale!r}") from None
    return score / divisor


def classify(
    score: float,
    scale: str = "0-1",
    thresholds: UpdateThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """
    Suggest an update action for a relevance score.

    Args:
        score: Relevance score
        scale: "0-1" or "0-100"
        thresholds: Threshold table (defaults to DEFAULT_THRESHOLDS)

    Returns:
        Suggested action label
    """
    value = normalize_score(score, scale)

    if value >= thresholds.priority:
        return PRIORITY_UPDATE
    if value >= thresholds.new_information:
        return UPDATE_NEW
    if value >= thresholds.related:
        return UPDATE_RELATED
    return REVIEW_FOR_RELEVANCE


def should_update(impact_score: int, thresholds: UpdateThresholds = DEFAULT_THRESHOLDS) -> bool:
    """Whether an impact analysis score (1-10) warrants updating the article."""
    return impact_score >= thresholds.impact_update
