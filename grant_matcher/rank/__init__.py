"""Eligibility filtering, composite scoring and deterministic ranking."""

from grant_matcher.rank.eligibility import EligibilityResult, check_eligibility
from grant_matcher.rank.scoring import MatchResult, ScoreBreakdown, calculate_score
from grant_matcher.rank.weights import MATCHING_WEIGHTS, MatchingWeights

__all__ = [
    "EligibilityResult",
    "MATCHING_WEIGHTS",
    "MatchResult",
    "MatchingWeights",
    "ScoreBreakdown",
    "calculate_score",
    "check_eligibility",
]
