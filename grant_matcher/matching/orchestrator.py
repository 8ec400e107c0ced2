from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from grant_matcher.cache.store import CacheStatistics, CacheStore
from grant_matcher.errors import NotFound, UpstreamUnavailable
from grant_matcher.matching.request import SearchRequest
from grant_matcher.normalize.fingerprint import profile_search_pattern, search_cache_key
from grant_matcher.normalize.schema import Profile, opportunity_to_dict
from grant_matcher.rank.ordering import apply_request_filters, paginate, rank_matches
from grant_matcher.rank.scoring import MatchResult, calculate_score
from grant_matcher.search.base import Candidate, CandidateSearch
from grant_matcher.store.memory import ProfileLookup

logger = logging.getLogger(__name__)

SEARCH_STRATEGY = "Hybrid (Filters + Vector Similarity)"
DEFAULT_RESULT_TTL_SECONDS = 900.0
DEFAULT_RESULT_SLIDING_SECONDS = 300.0
DEFAULT_CANDIDATE_POOL_SIZE = 100
_SLOW_SEARCH_SECONDS = 3.0


@dataclass(frozen=True, slots=True)
class SearchResponse:
    matches: list[dict[str, Any]]
    total_count: int
    processing_time_ms: float
    from_cache: bool
    search_strategy: str
    candidate_count: int
    eligible_count: int

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        *,
        from_cache: bool,
        processing_time_ms: float,
    ) -> SearchResponse:
        metadata = payload["metadata"]
        return cls(
            matches=payload["matches"],
            total_count=int(payload["totalCount"]),
            processing_time_ms=processing_time_ms,
            from_cache=from_cache,
            search_strategy=metadata["searchStrategy"],
            candidate_count=int(metadata["candidateCount"]),
            eligible_count=int(metadata["eligibleCount"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "matches": self.matches,
            "totalCount": self.total_count,
            "metadata": {
                "processingTime": self.processing_time_ms,
                "fromCache": self.from_cache,
                "searchStrategy": self.search_strategy,
                "candidateCount": self.candidate_count,
                "eligibleCount": self.eligible_count,
            },
        }


def match_to_dict(match: MatchResult) -> dict[str, Any]:
    return {
        "opportunityId": match.opportunity_id,
        "compositeScore": match.composite_score,
        "semanticSimilarity": match.semantic_similarity,
        "breakdown": match.breakdown.to_dict(),
        "meetsAllRequirements": match.meets_all_requirements,
        "unmetRequirements": list(match.unmet_requirements),
        "opportunity": opportunity_to_dict(match.opportunity),
    }


def _dedupe_candidates(candidates: Sequence[Candidate], min_similarity: float) -> list[Candidate]:
    best: dict[str, Candidate] = {}
    for candidate in candidates:
        if candidate.similarity < min_similarity:
            continue
        current = best.get(candidate.opportunity_id)
        if current is None or candidate.similarity > current.similarity:
            best[candidate.opportunity_id] = candidate
    return list(best.values())


class MatchingOrchestrator:
    """Produces ranked, paginated matches for a profile, cached by request fingerprint.

    Collaborator calls happen inside the cache factory, so concurrent identical
    searches share one retrieval and one ranking pass.
    """

    def __init__(
        self,
        *,
        profiles: ProfileLookup,
        candidate_search: CandidateSearch,
        cache: CacheStore,
        result_ttl_seconds: float = DEFAULT_RESULT_TTL_SECONDS,
        result_sliding_seconds: float = DEFAULT_RESULT_SLIDING_SECONDS,
        candidate_pool_size: int = DEFAULT_CANDIDATE_POOL_SIZE,
    ) -> None:
        self._profiles = profiles
        self._candidate_search = candidate_search
        self._cache = cache
        self._result_ttl = result_ttl_seconds
        self._result_sliding = result_sliding_seconds
        self._candidate_pool_size = candidate_pool_size

    def find_matches(self, request: SearchRequest, *, now: datetime | None = None) -> SearchResponse:
        started_at = time.perf_counter()
        cache_key = search_cache_key(request.profile_id, request.fingerprint_fields())
        computed = False

        def compute() -> dict[str, Any]:
            nonlocal computed
            computed = True
            return self._rank(request, now)

        payload = self._cache.get_or_create(
            cache_key,
            compute,
            absolute_expiry=self._result_ttl,
            sliding_expiry=self._result_sliding,
        )

        elapsed = time.perf_counter() - started_at
        if elapsed > _SLOW_SEARCH_SECONDS:
            logger.warning(
                "Slow match search %.3fs for profile %s (limit=%d, min_similarity=%.2f)",
                elapsed,
                request.profile_id,
                request.limit,
                request.min_similarity,
            )
        return SearchResponse.from_payload(
            payload,
            from_cache=not computed,
            processing_time_ms=elapsed * 1000.0,
        )

    def invalidate_profile(self, profile_id: str) -> int:
        return self._cache.remove_by_pattern(profile_search_pattern(profile_id))

    def cache_statistics(self) -> CacheStatistics:
        return self._cache.statistics()

    def _retrieve(self, request: SearchRequest, profile: Profile) -> list[Candidate]:
        pool_size = max(request.offset + request.limit, self._candidate_pool_size)
        try:
            candidates = self._candidate_search.search(
                profile,
                request.filters,
                request.min_similarity,
                pool_size,
                query=request.query,
            )
        except UpstreamUnavailable:
            raise
        except Exception as exc:
            logger.exception("Candidate search failed for profile %s", request.profile_id)
            raise UpstreamUnavailable("Candidate search is unavailable.") from exc
        return _dedupe_candidates(candidates, request.min_similarity)

    def _rank(self, request: SearchRequest, now: datetime | None) -> dict[str, Any]:
        profile = self._profiles.get_by_id(request.profile_id)
        if profile is None:
            raise NotFound(f"Profile '{request.profile_id}' was not found.")

        candidates = self._retrieve(request, profile)
        scored = [
            calculate_score(profile, candidate.opportunity, candidate.similarity, now=now)
            for candidate in candidates
        ]
        ranked = rank_matches(apply_request_filters(scored, request.filters))
        page = paginate(ranked, offset=request.offset, limit=request.limit)
        logger.info(
            "Ranked %d of %d candidates for profile %s",
            len(ranked),
            len(candidates),
            request.profile_id,
        )

        return {
            "matches": [match_to_dict(match) for match in page],
            "totalCount": len(ranked),
            "metadata": {
                "searchStrategy": SEARCH_STRATEGY,
                "candidateCount": len(candidates),
                "eligibleCount": sum(1 for match in ranked if match.meets_all_requirements),
            },
        }
