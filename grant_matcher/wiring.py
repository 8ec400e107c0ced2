from __future__ import annotations

import logging
from dataclasses import dataclass

from grant_matcher.admission.rate_limit import RateLimiter, RateWindow
from grant_matcher.cache.remote import RedisCacheTier
from grant_matcher.cache.store import CacheStore
from grant_matcher.config import MatcherSettings
from grant_matcher.matching.orchestrator import MatchingOrchestrator
from grant_matcher.search.base import CandidateSearch
from grant_matcher.search.http import HttpCandidateSearch
from grant_matcher.store.memory import ProfileLookup

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceComponents:
    settings: MatcherSettings
    cache: CacheStore
    rate_limiter: RateLimiter
    orchestrator: MatchingOrchestrator


def build_cache_store(settings: MatcherSettings) -> CacheStore:
    remote = RedisCacheTier.from_url(settings.redis_url) if settings.redis_url else None
    return CacheStore(
        max_entries=settings.cache_max_entries,
        default_absolute_expiry=settings.result_ttl_seconds,
        default_sliding_expiry=settings.result_sliding_seconds,
        remote=remote,
    )


def build_rate_limiter(settings: MatcherSettings) -> RateLimiter:
    return RateLimiter(
        (
            RateWindow(seconds=60.0, max_requests=settings.max_requests_per_minute),
            RateWindow(seconds=300.0, max_requests=settings.max_requests_per_5_minutes),
        )
    )


def build_candidate_search(settings: MatcherSettings) -> HttpCandidateSearch:
    return HttpCandidateSearch(
        base_url=settings.search_base_url,
        api_key=settings.search_api_key,
        timeout_seconds=settings.search_timeout_seconds,
        max_retries=settings.search_max_retries,
    )


def build_components(
    settings: MatcherSettings,
    *,
    profiles: ProfileLookup,
    candidate_search: CandidateSearch | None = None,
    cache: CacheStore | None = None,
    rate_limiter: RateLimiter | None = None,
) -> ServiceComponents:
    active_cache = cache or build_cache_store(settings)
    orchestrator = MatchingOrchestrator(
        profiles=profiles,
        candidate_search=candidate_search or build_candidate_search(settings),
        cache=active_cache,
        result_ttl_seconds=settings.result_ttl_seconds,
        result_sliding_seconds=settings.result_sliding_seconds,
        candidate_pool_size=settings.candidate_pool_size,
    )
    logger.info(
        "Matching service wired (remote cache: %s, limits: %d/min, %d/5min)",
        "yes" if active_cache.has_remote_tier else "no",
        settings.max_requests_per_minute,
        settings.max_requests_per_5_minutes,
    )
    return ServiceComponents(
        settings=settings,
        cache=active_cache,
        rate_limiter=rate_limiter or build_rate_limiter(settings),
        orchestrator=orchestrator,
    )
