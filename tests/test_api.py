from __future__ import annotations

from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from grant_matcher.admission.rate_limit import RateLimiter, RateWindow
from grant_matcher.api.app import PRINCIPAL_HEADER, create_app, retry_after_header
from grant_matcher.cache.store import CacheStore
from grant_matcher.config import MatcherSettings
from grant_matcher.errors import UpstreamUnavailable
from grant_matcher.normalize.schema import Opportunity, Profile
from grant_matcher.search.base import Candidate
from grant_matcher.store.memory import InMemoryProfileStore
from grant_matcher.wiring import build_components

DEADLINE = datetime.now(tz=UTC) + timedelta(days=90)


class StaticSearch:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    def search(self, profile, filters, min_similarity, limit, *, query=None):
        if self.error is not None:
            raise self.error
        return [
            Candidate(
                opportunity_id=opportunity_id,
                similarity=similarity,
                opportunity=Opportunity(
                    opportunity_id=opportunity_id,
                    title=f"Grant {opportunity_id}",
                    award_amount=award,
                    deadline=DEADLINE,
                ),
            )
            for opportunity_id, similarity, award in (
                ("g-1", 0.9, 10_000.0),
                ("g-2", 0.65, 40_000.0),
            )
        ]


def _client(
    search: StaticSearch | None = None,
    limiter: RateLimiter | None = None,
    settings: MatcherSettings | None = None,
) -> TestClient:
    components = build_components(
        settings or MatcherSettings(),
        profiles=InMemoryProfileStore([Profile(profile_id="p-1", major="CS")]),
        candidate_search=search or StaticSearch(),
        cache=CacheStore(),
        rate_limiter=limiter,
    )
    return TestClient(create_app(components))


def test_search_returns_ranked_matches() -> None:
    client = _client()

    response = client.post("/matches/search", json={"profileId": "p-1", "limit": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["totalCount"] == 2
    assert [match["opportunityId"] for match in body["matches"]] == ["g-1", "g-2"]
    assert body["metadata"]["fromCache"] is False
    assert body["matches"][0]["opportunity"]["title"] == "Grant g-1"
    assert "deadlineProximity" in body["matches"][0]["breakdown"]

    cached = client.post("/matches/search", json={"profileId": "p-1", "limit": 5})
    assert cached.json()["metadata"]["fromCache"] is True


def test_search_validation_errors_return_400() -> None:
    client = _client()

    assert client.post("/matches/search", json={"profileId": "p-1", "limit": 0}).status_code == 400
    assert client.post("/matches/search", json={"limit": 5}).status_code == 400
    response = client.post(
        "/matches/search",
        json={"profileId": "p-1", "minAwardAmount": 5000, "maxAwardAmount": 100},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailure"


def test_unknown_profile_returns_404() -> None:
    response = _client().post("/matches/search", json={"profileId": "nobody"})

    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"
    assert response.json()["retryable"] is False


def test_upstream_failure_returns_503() -> None:
    client = _client(StaticSearch(error=UpstreamUnavailable("search down")))

    response = client.post("/matches/search", json={"profileId": "p-1"})

    assert response.status_code == 503
    assert response.json()["retryable"] is True


def test_rate_limited_requests_get_429_with_retry_after() -> None:
    limiter = RateLimiter((RateWindow(seconds=60.0, max_requests=2),))
    client = _client(limiter=limiter)
    headers = {PRINCIPAL_HEADER: "user-42"}

    for _ in range(2):
        assert client.get("/diagnostics/cache-stats", headers=headers).status_code == 200
    rejected = client.get("/diagnostics/cache-stats", headers=headers)

    assert rejected.status_code == 429
    assert int(rejected.headers["Retry-After"]) >= 1
    assert rejected.json()["error"] == "RateLimited"
    assert client.get("/diagnostics/cache-stats", headers={PRINCIPAL_HEADER: "other"}).status_code == 200
    assert client.get("/diagnostics/health", headers=headers).status_code == 200


def test_cache_stats_and_clear_cache() -> None:
    client = _client()
    client.post("/matches/search", json={"profileId": "p-1"})
    client.post("/matches/search", json={"profileId": "p-1"})

    stats = client.get("/diagnostics/cache-stats").json()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["currentEntries"] == 1
    assert stats["hitRate"] == 0.5

    cleared = client.post("/diagnostics/clear-cache", params={"pattern": "search:grants:p-1:*"}).json()
    assert cleared["removed"] == 1
    assert client.get("/diagnostics/cache-stats").json()["currentEntries"] == 0


def test_health_reports_cache_tier() -> None:
    body = _client().get("/diagnostics/health").json()

    assert body["status"] == "healthy"
    assert body["remoteCache"] is False


def test_retry_after_header_rounds_up() -> None:
    assert retry_after_header(0.2) == "1"
    assert retry_after_header(29.1) == "30"


def test_configured_min_similarity_applies_when_omitted() -> None:
    client = _client(settings=MatcherSettings(default_min_similarity=0.8))

    defaulted = client.post("/matches/search", json={"profileId": "p-1"}).json()
    explicit = client.post("/matches/search", json={"profileId": "p-1", "minSimilarity": 0.5}).json()

    assert [match["opportunityId"] for match in defaulted["matches"]] == ["g-1"]
    assert defaulted["totalCount"] == 1
    assert explicit["totalCount"] == 2
