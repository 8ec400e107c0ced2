from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from grant_matcher.normalize.schema import Opportunity, Profile
from grant_matcher.rank.eligibility import check_eligibility
from grant_matcher.rank.weights import (
    AWARD_CAP,
    DEADLINE_SOON_DAYS,
    MATCHING_WEIGHTS,
    NO_DEADLINE_DAYS,
)

ESSAY_COMPLEXITY_PENALTY = 0.3
RECOMMENDATION_COMPLEXITY_PENALTY = 0.3
SOON_DEADLINE_FACTOR = 0.5


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Weighted score components; their sum is the composite score."""

    semantic: float
    award: float
    complexity: float
    deadline_proximity: float

    def to_dict(self) -> dict[str, float]:
        return {
            "semantic": self.semantic,
            "award": self.award,
            "complexity": self.complexity,
            "deadlineProximity": self.deadline_proximity,
        }


@dataclass(frozen=True, slots=True)
class MatchResult:
    opportunity: Opportunity
    semantic_similarity: float
    composite_score: float
    breakdown: ScoreBreakdown
    meets_all_requirements: bool
    unmet_requirements: tuple[str, ...]

    @property
    def opportunity_id(self) -> str:
        return self.opportunity.opportunity_id


def _clip_unit(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def compute_award_utility(award_amount: float) -> float:
    if award_amount <= 0.0:
        return 0.0
    return min(1.0, award_amount / AWARD_CAP)


def compute_complexity(opportunity: Opportunity) -> float:
    complexity = 1.0
    if opportunity.essay_required:
        complexity -= ESSAY_COMPLEXITY_PENALTY
    if opportunity.recommendation_required:
        complexity -= RECOMMENDATION_COMPLEXITY_PENALTY
    return max(complexity, 0.0)


def days_until_deadline(opportunity: Opportunity, now: datetime) -> float:
    if opportunity.deadline is None:
        return NO_DEADLINE_DAYS
    return (opportunity.deadline - now).total_seconds() / 86_400.0


def compute_deadline_proximity(opportunity: Opportunity, now: datetime) -> float:
    if days_until_deadline(opportunity, now) < DEADLINE_SOON_DAYS:
        return SOON_DEADLINE_FACTOR
    return 1.0


def calculate_score(
    profile: Profile,
    opportunity: Opportunity,
    semantic_similarity: float,
    *,
    now: datetime | None = None,
) -> MatchResult:
    effective_now = now or datetime.now(tz=UTC)
    weights = MATCHING_WEIGHTS
    eligibility = check_eligibility(profile, opportunity)

    similarity = _clip_unit(semantic_similarity)
    breakdown = ScoreBreakdown(
        semantic=weights.semantic * similarity,
        award=weights.award * compute_award_utility(opportunity.award_amount),
        complexity=weights.complexity * compute_complexity(opportunity),
        deadline_proximity=(
            weights.deadline_proximity * compute_deadline_proximity(opportunity, effective_now)
        ),
    )
    composite_score = _clip_unit(
        breakdown.semantic + breakdown.award + breakdown.complexity + breakdown.deadline_proximity
    )

    return MatchResult(
        opportunity=opportunity,
        semantic_similarity=similarity,
        composite_score=composite_score,
        breakdown=breakdown,
        meets_all_requirements=eligibility.meets_all,
        unmet_requirements=eligibility.unmet_reasons,
    )
