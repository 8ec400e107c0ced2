from __future__ import annotations

from datetime import UTC, datetime

import pytest
import requests

from grant_matcher.errors import UpstreamUnavailable
from grant_matcher.normalize.schema import Opportunity, Profile
from grant_matcher.search.base import SearchFilters
from grant_matcher.search.http import (
    HttpCandidateSearch,
    build_attribute_filters,
    parse_search_results,
)
from grant_matcher.search.tfidf import TfidfCandidateSearch, compute_tfidf_similarity

PROFILE = Profile(
    profile_id="p-1",
    major="Environmental Science",
    summary="Youth environmental education programs in rural watersheds",
)


class _FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


def test_parse_search_results_reads_attribute_bags() -> None:
    payload = {
        "results": [
            {
                "profileId": "vec-1",
                "similarity": 0.82,
                "profile": {
                    "name": "Watershed Education Grant",
                    "attributes": {
                        "grantId": "g-77",
                        "awardAmount": "15000",
                        "deadline": "2026-05-01T00:00:00Z",
                        "requiresEssay": True,
                        "eligibleStates": ["CA", "OR"],
                    },
                },
            }
        ]
    }

    candidates = parse_search_results(payload)

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.opportunity_id == "g-77"
    assert candidate.similarity == pytest.approx(0.82)
    assert candidate.opportunity.title == "Watershed Education Grant"
    assert candidate.opportunity.award_amount == 15_000.0
    assert candidate.opportunity.deadline == datetime(2026, 5, 1, tzinfo=UTC)
    assert candidate.opportunity.required_states == ("CA", "OR")
    assert candidate.opportunity.essay_required is True


def test_parse_search_results_falls_back_to_vector_profile_id() -> None:
    payload = {"results": [{"profileId": "vec-9", "similarity": 0.7, "profile": {"attributes": {}}}]}

    assert parse_search_results(payload)[0].opportunity_id == "vec-9"


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {"items": []},
        {"results": ["not-an-object"]},
        {"results": [{"profileId": "vec-1", "profile": {}}]},
        {"results": [{"similarity": 0.9, "profile": {"attributes": {}}}]},
    ],
)
def test_parse_search_results_rejects_malformed_payloads(payload) -> None:
    with pytest.raises(UpstreamUnavailable):
        parse_search_results(payload)


def test_build_attribute_filters_translates_each_filter() -> None:
    filters = SearchFilters(
        min_award_amount=1_000.0,
        deadline_before=datetime(2026, 6, 1, tzinfo=UTC),
        requires_essay=False,
    )

    body = build_attribute_filters(filters)

    assert body["logicalOperator"] == "And"
    assert body["filters"] == [
        {"fieldPath": "attributes.awardAmount", "operator": "GreaterThanOrEqual", "value": 1_000.0},
        {
            "fieldPath": "attributes.deadline",
            "operator": "LessThanOrEqual",
            "value": "2026-06-01T00:00:00+00:00",
        },
        {"fieldPath": "attributes.requiresEssay", "operator": "Equal", "value": False},
    ]
    assert build_attribute_filters(SearchFilters())["filters"] == []


def test_http_search_posts_query_and_parses_response(monkeypatch: pytest.MonkeyPatch) -> None:
    client = HttpCandidateSearch(base_url="http://search.local/api/v1/", api_key="secret")
    captured = {}

    def fake_post(url, json, timeout):
        captured.update(url=url, json=json, timeout=timeout)
        return _FakeResponse(
            {"results": [{"profileId": "g-1", "similarity": 0.9, "profile": {"name": "Grant"}}]}
        )

    monkeypatch.setattr(client._session, "post", fake_post)

    candidates = client.search(PROFILE, SearchFilters(), 0.6, 50)

    assert captured["url"] == "http://search.local/api/v1/profiles/search"
    assert captured["json"]["minSimilarity"] == 0.6
    assert captured["json"]["limit"] == 50
    assert "environmental" in captured["json"]["query"].lower()
    assert captured["timeout"] == client.timeout_tuple
    assert client._session.headers["Ocp-Apim-Subscription-Key"] == "secret"
    assert [candidate.opportunity_id for candidate in candidates] == ["g-1"]


def test_http_search_maps_transport_errors_to_upstream_unavailable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    client = HttpCandidateSearch(base_url="http://search.local/api/v1")

    def refuse(url, json, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(client._session, "post", refuse)
    with pytest.raises(UpstreamUnavailable):
        client.search(PROFILE, SearchFilters(), 0.6, 50)

    monkeypatch.setattr(client._session, "post", lambda url, json, timeout: _FakeResponse({}, 503))
    with pytest.raises(UpstreamUnavailable):
        client.search(PROFILE, SearchFilters(), 0.6, 50)


def test_tfidf_similarity_handles_degenerate_corpora() -> None:
    assert compute_tfidf_similarity("anything", []).tolist() == []
    assert compute_tfidf_similarity("", ["a grant"]).tolist() == [0.0]
    assert compute_tfidf_similarity("the and of", ["the of and"]).tolist() == [0.0]


def test_tfidf_search_prefers_related_opportunities() -> None:
    opportunities = [
        Opportunity(
            opportunity_id="arts",
            title="Performing Arts Award",
            description="Support for dance and theater productions",
        ),
        Opportunity(
            opportunity_id="env",
            title="Environmental Education Grant",
            description="Funding youth environmental education programs",
        ),
    ]
    search = TfidfCandidateSearch(opportunities)

    everything = search.search(PROFILE, SearchFilters(), 0.0, 10)
    related = search.search(PROFILE, SearchFilters(), 0.1, 10)

    assert len(search) == 2
    assert [candidate.opportunity_id for candidate in everything] == ["env", "arts"]
    assert [candidate.opportunity_id for candidate in related] == ["env"]
