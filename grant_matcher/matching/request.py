from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from grant_matcher.errors import ValidationFailure
from grant_matcher.normalize.schema import parse_deadline
from grant_matcher.search.base import SearchFilters

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_MIN_SIMILARITY = 0.6


def _aware(value: datetime | None) -> datetime | None:
    return parse_deadline(value) if value is not None else None


def _check_amount(name: str, value: float | None) -> None:
    if value is None:
        return
    if not math.isfinite(value) or value < 0.0:
        raise ValidationFailure(f"'{name}' must be a non-negative number.")


@dataclass(frozen=True, slots=True)
class SearchRequest:
    profile_id: str
    filters: SearchFilters = field(default_factory=SearchFilters)
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    min_similarity: float = DEFAULT_MIN_SIMILARITY
    query: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.profile_id, str) or not self.profile_id.strip():
            raise ValidationFailure("'profileId' is required.")
        if not 1 <= self.limit <= MAX_LIMIT:
            raise ValidationFailure(f"'limit' must be between 1 and {MAX_LIMIT}.")
        if self.offset < 0:
            raise ValidationFailure("'offset' must not be negative.")
        if not math.isfinite(self.min_similarity) or not 0.0 <= self.min_similarity <= 1.0:
            raise ValidationFailure("'minSimilarity' must be between 0.0 and 1.0.")

        filters = self.filters
        _check_amount("minAwardAmount", filters.min_award_amount)
        _check_amount("maxAwardAmount", filters.max_award_amount)
        if (
            filters.min_award_amount is not None
            and filters.max_award_amount is not None
            and filters.min_award_amount > filters.max_award_amount
        ):
            raise ValidationFailure("'minAwardAmount' cannot exceed 'maxAwardAmount'.")

        deadline_after = _aware(filters.deadline_after)
        deadline_before = _aware(filters.deadline_before)
        if deadline_after and deadline_before and deadline_after > deadline_before:
            raise ValidationFailure("'deadlineAfter' cannot be later than 'deadlineBefore'.")
        object.__setattr__(
            self,
            "filters",
            replace(filters, deadline_after=deadline_after, deadline_before=deadline_before),
        )
        object.__setattr__(self, "profile_id", self.profile_id.strip())

    def fingerprint_fields(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            **self.filters.to_dict(),
            "limit": self.limit,
            "offset": self.offset,
            "min_similarity": self.min_similarity,
            "query": self.query,
        }
