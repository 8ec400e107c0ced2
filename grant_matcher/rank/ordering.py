from __future__ import annotations

from typing import Sequence

import pandas as pd

from grant_matcher.rank.scoring import MatchResult
from grant_matcher.search.base import SearchFilters, opportunity_matches_filters


def apply_request_filters(matches: Sequence[MatchResult], filters: SearchFilters) -> list[MatchResult]:
    return [match for match in matches if opportunity_matches_filters(match.opportunity, filters)]


def rank_matches(matches: Sequence[MatchResult]) -> list[MatchResult]:
    """Order by composite score, then award amount (both descending), then id."""

    if not matches:
        return []

    frame = pd.DataFrame(
        {
            "position": range(len(matches)),
            "composite_score": [match.composite_score for match in matches],
            "award_amount": [match.opportunity.award_amount for match in matches],
            "opportunity_id": [match.opportunity_id for match in matches],
        }
    )
    ordered = frame.sort_values(
        by=["composite_score", "award_amount", "opportunity_id"],
        ascending=[False, False, True],
        kind="mergesort",
    )
    return [matches[position] for position in ordered["position"].tolist()]


def paginate(matches: Sequence[MatchResult], *, offset: int, limit: int) -> list[MatchResult]:
    return list(matches[offset : offset + limit])
