"""
Grant Matching API

Endpoints:
    POST /matches/search              - Ranked, explainable matches for a profile
    GET  /diagnostics/cache-stats     - Result cache statistics
    POST /diagnostics/clear-cache     - Remove cached results by glob pattern
    GET  /diagnostics/health          - Health check (not rate limited)
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from grant_matcher import __version__
from grant_matcher.admission.rate_limit import resolve_client_id
from grant_matcher.api.schemas import (
    CacheStatsResponse,
    ClearCacheResponse,
    ErrorResponse,
    HealthResponse,
    SearchRequestBody,
    SearchResponseBody,
)
from grant_matcher.errors import InternalError, MatchingError, RateLimited
from grant_matcher.wiring import ServiceComponents

logger = logging.getLogger(__name__)

# Injected by the authenticating gateway in front of the service.
PRINCIPAL_HEADER = "X-MS-CLIENT-PRINCIPAL-ID"
RATE_LIMIT_EXEMPT_PATHS = frozenset({"/diagnostics/health"})


def retry_after_header(seconds: float) -> str:
    return str(max(1, math.ceil(seconds)))


def error_response(error: MatchingError) -> JSONResponse:
    body = ErrorResponse(
        error=type(error).__name__,
        message=str(error),
        retryable=error.retryable,
    )
    headers: dict[str, str] = {}
    if isinstance(error, RateLimited):
        headers["Retry-After"] = retry_after_header(error.retry_after_seconds)
    return JSONResponse(
        status_code=error.status_code,
        content=body.model_dump(by_alias=True),
        headers=headers,
    )


def create_app(components: ServiceComponents) -> FastAPI:
    app = FastAPI(
        title="Grant Matching API",
        version=__version__,
        description="Eligibility-aware, cached grant matching.",
    )
    app.state.components = components

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS:
            return await call_next(request)

        client_id = resolve_client_id(
            subject=request.headers.get(PRINCIPAL_HEADER),
            forwarded_for=request.headers.get("X-Forwarded-For"),
            real_ip=request.headers.get("X-Real-IP"),
        )
        decision = components.rate_limiter.admit(client_id)
        if not decision:
            return error_response(RateLimited(client_id, decision.retry_after_seconds))
        return await call_next(request)

    @app.exception_handler(MatchingError)
    async def handle_matching_error(request: Request, exc: MatchingError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else "Invalid request"
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="ValidationFailure", message=message).model_dump(by_alias=True),
        )

    @app.post("/matches/search", response_model=SearchResponseBody)
    def search_matches(body: SearchRequestBody):
        """
        Rank opportunities for a profile.

        Returns:
            Paginated matches with score breakdowns and unmet requirements

        Raises:
            ValidationFailure: Malformed filters or pagination (400)
            NotFound: Unknown profile (404)
            UpstreamUnavailable: Candidate retrieval failed (503)
        """
        logger.info("Searching grants for profile %s", body.profile_id)
        try:
            request = body.to_request(components.settings.default_min_similarity)
            response = components.orchestrator.find_matches(request)
        except MatchingError:
            raise
        except Exception as exc:
            logger.exception("Error searching grants")
            raise InternalError("An unexpected error occurred.") from exc
        return SearchResponseBody.model_validate(response.to_dict())

    @app.get("/diagnostics/cache-stats", response_model=CacheStatsResponse)
    def cache_stats():
        stats = components.orchestrator.cache_statistics()
        return CacheStatsResponse(
            hits=stats.hits,
            misses=stats.misses,
            evictions=stats.evictions,
            current_entries=stats.current_entries,
            hit_rate=stats.hit_rate,
            timestamp=datetime.now(tz=UTC),
        )

    @app.post("/diagnostics/clear-cache", response_model=ClearCacheResponse)
    def clear_cache(pattern: str = Query("*", min_length=1, description="Glob over cache keys")):
        logger.warning("Clearing cache with pattern: %s", pattern)
        if pattern == "*":
            removed = components.cache.clear()
        else:
            removed = components.cache.remove_by_pattern(pattern)
        return ClearCacheResponse(
            pattern=pattern,
            removed=removed,
            message=f"Cache cleared for pattern: {pattern}",
        )

    @app.get("/diagnostics/health", response_model=HealthResponse)
    def health():
        return HealthResponse(
            status="healthy",
            version=__version__,
            remote_cache=components.cache.has_remote_tier,
        )

    return app
