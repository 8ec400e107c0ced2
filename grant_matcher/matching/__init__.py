"""Search orchestration over retrieval, eligibility, scoring and caching."""

from grant_matcher.matching.orchestrator import MatchingOrchestrator, SearchResponse
from grant_matcher.matching.request import SearchRequest

__all__ = ["MatchingOrchestrator", "SearchRequest", "SearchResponse"]
