from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, Sequence

from grant_matcher.normalize.schema import Opportunity, Profile


@dataclass(frozen=True, slots=True)
class SearchFilters:
    min_award_amount: float | None = None
    max_award_amount: float | None = None
    deadline_after: datetime | None = None
    deadline_before: datetime | None = None
    requires_essay: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "min_award_amount": self.min_award_amount,
            "max_award_amount": self.max_award_amount,
            "deadline_after": self.deadline_after,
            "deadline_before": self.deadline_before,
            "requires_essay": self.requires_essay,
        }


@dataclass(frozen=True, slots=True)
class Candidate:
    opportunity_id: str
    similarity: float
    opportunity: Opportunity


class CandidateSearch(Protocol):
    """Retrieves opportunities semantically close to a profile."""

    def search(
        self,
        profile: Profile,
        filters: SearchFilters,
        min_similarity: float,
        limit: int,
        *,
        query: str | None = None,
    ) -> Sequence[Candidate]: ...


def build_profile_query(profile: Profile) -> str:
    parts = [
        profile.summary or "",
        profile.major or "",
        " ".join(profile.keywords),
        " ".join(profile.applicant_types),
    ]
    return " ".join(part.strip() for part in parts if part and part.strip()).strip()


def opportunity_matches_filters(opportunity: Opportunity, filters: SearchFilters) -> bool:
    """Exact request-filter match; a deadline filter excludes undated opportunities."""

    award = opportunity.award_amount
    if filters.min_award_amount is not None and award < filters.min_award_amount:
        return False
    if filters.max_award_amount is not None and award > filters.max_award_amount:
        return False
    if filters.deadline_after is not None or filters.deadline_before is not None:
        deadline = opportunity.deadline
        if deadline is None:
            return False
        if filters.deadline_after is not None and deadline < filters.deadline_after:
            return False
        if filters.deadline_before is not None and deadline > filters.deadline_before:
            return False
    if filters.requires_essay is not None and opportunity.essay_required != filters.requires_essay:
        return False
    return True
