"""Request and response models for the matching API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from grant_matcher.matching.request import DEFAULT_LIMIT, DEFAULT_MIN_SIMILARITY, SearchRequest
from grant_matcher.search.base import SearchFilters


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequestBody(CamelModel):
    profile_id: str
    query: Optional[str] = None
    min_award_amount: Optional[float] = None
    max_award_amount: Optional[float] = None
    deadline_after: Optional[datetime] = None
    deadline_before: Optional[datetime] = None
    requires_essay: Optional[bool] = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    min_similarity: Optional[float] = None

    def to_request(self, default_min_similarity: float = DEFAULT_MIN_SIMILARITY) -> SearchRequest:
        return SearchRequest(
            profile_id=self.profile_id,
            filters=SearchFilters(
                min_award_amount=self.min_award_amount,
                max_award_amount=self.max_award_amount,
                deadline_after=self.deadline_after,
                deadline_before=self.deadline_before,
                requires_essay=self.requires_essay,
            ),
            limit=self.limit,
            offset=self.offset,
            min_similarity=(
                default_min_similarity if self.min_similarity is None else self.min_similarity
            ),
            query=self.query,
        )


class ScoreBreakdownModel(CamelModel):
    semantic: float
    award: float
    complexity: float
    deadline_proximity: float


class OpportunitySummary(CamelModel):
    opportunity_id: str
    title: str
    award_amount: float
    deadline: Optional[datetime] = None
    requires_essay: bool
    requires_recommendation: bool
    is_renewable: bool


class MatchItem(CamelModel):
    opportunity_id: str
    composite_score: float
    semantic_similarity: float
    breakdown: ScoreBreakdownModel
    meets_all_requirements: bool
    unmet_requirements: List[str]
    opportunity: OpportunitySummary


class SearchMetadata(CamelModel):
    processing_time: float
    from_cache: bool
    search_strategy: str
    candidate_count: int
    eligible_count: int


class SearchResponseBody(CamelModel):
    matches: List[MatchItem]
    total_count: int
    metadata: SearchMetadata


class CacheStatsResponse(CamelModel):
    hits: int
    misses: int
    evictions: int
    current_entries: int
    hit_rate: float
    timestamp: datetime


class ClearCacheResponse(CamelModel):
    pattern: str
    removed: int
    message: str


class HealthResponse(CamelModel):
    status: str
    version: str
    remote_cache: bool


class ErrorResponse(CamelModel):
    error: str
    message: str
    retryable: bool = False
