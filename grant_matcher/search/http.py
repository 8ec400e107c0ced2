from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from grant_matcher.errors import UpstreamUnavailable
from grant_matcher.normalize.schema import Profile, opportunity_from_attributes
from grant_matcher.search.base import Candidate, SearchFilters, build_profile_query

DEFAULT_USER_AGENT = "GrantMatcher/0.1"
SEARCH_PATH = "/profiles/search"
logger = logging.getLogger(__name__)
_SLOW_REQUEST_SECONDS = 5.0


def build_attribute_filters(filters: SearchFilters) -> dict[str, Any]:
    conditions: list[dict[str, Any]] = []
    if filters.min_award_amount is not None:
        conditions.append(
            {
                "fieldPath": "attributes.awardAmount",
                "operator": "GreaterThanOrEqual",
                "value": filters.min_award_amount,
            }
        )
    if filters.max_award_amount is not None:
        conditions.append(
            {
                "fieldPath": "attributes.awardAmount",
                "operator": "LessThanOrEqual",
                "value": filters.max_award_amount,
            }
        )
    if filters.deadline_after is not None:
        conditions.append(
            {
                "fieldPath": "attributes.deadline",
                "operator": "GreaterThanOrEqual",
                "value": filters.deadline_after.isoformat(),
            }
        )
    if filters.deadline_before is not None:
        conditions.append(
            {
                "fieldPath": "attributes.deadline",
                "operator": "LessThanOrEqual",
                "value": filters.deadline_before.isoformat(),
            }
        )
    if filters.requires_essay is not None:
        conditions.append(
            {
                "fieldPath": "attributes.requiresEssay",
                "operator": "Equal",
                "value": filters.requires_essay,
            }
        )
    return {"logicalOperator": "And", "filters": conditions}


def parse_search_results(payload: Any) -> list[Candidate]:
    """Parse a vector search response; any malformed item fails the whole batch."""

    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        raise UpstreamUnavailable("Candidate search returned an unexpected payload.")

    candidates: list[Candidate] = []
    for item in payload["results"]:
        if not isinstance(item, dict):
            raise UpstreamUnavailable("Candidate search returned a malformed result item.")
        entity = item.get("profile") or {}
        attributes = dict(entity.get("attributes") or {})
        attributes.setdefault("name", entity.get("name"))
        attributes.setdefault("description", entity.get("description"))
        attributes.setdefault("id", item.get("profileId"))
        try:
            similarity = float(item["similarity"])
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable("Candidate search result is missing a similarity.") from exc
        opportunity = opportunity_from_attributes(attributes)
        candidates.append(
            Candidate(
                opportunity_id=opportunity.opportunity_id,
                similarity=similarity,
                opportunity=opportunity,
            )
        )
    return candidates


@dataclass(slots=True)
class HttpCandidateSearch:
    base_url: str
    api_key: str = ""
    timeout_seconds: float = 20.0
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = 3
    backoff_factor: float = 0.5
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self.user_agent})
        if self.api_key:
            self._session.headers.update({"Ocp-Apim-Subscription-Key": self.api_key})

        retry = Retry(
            total=self.max_retries,
            connect=self.max_retries,
            read=self.max_retries,
            status=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"POST"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def close(self) -> None:
        self._session.close()

    @property
    def timeout_tuple(self) -> tuple[float, float]:
        connect_timeout = max(1.0, min(self.timeout_seconds, 5.0))
        read_timeout = max(connect_timeout, self.timeout_seconds)
        return connect_timeout, read_timeout

    def search(
        self,
        profile: Profile,
        filters: SearchFilters,
        min_similarity: float,
        limit: int,
        *,
        query: str | None = None,
    ) -> Sequence[Candidate]:
        body = {
            "query": query or build_profile_query(profile),
            "minSimilarity": min_similarity,
            "limit": limit,
            "attributeFilters": build_attribute_filters(filters),
        }
        url = self.base_url.rstrip("/") + SEARCH_PATH

        started_at = time.monotonic()
        try:
            response = self._session.post(url, json=body, timeout=self.timeout_tuple)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            logger.warning("Candidate search failed for profile %s: %s", profile.profile_id, exc)
            raise UpstreamUnavailable("Candidate search is unavailable.") from exc
        except ValueError as exc:
            raise UpstreamUnavailable("Candidate search returned invalid JSON.") from exc
        finally:
            elapsed = time.monotonic() - started_at
            if elapsed > _SLOW_REQUEST_SECONDS:
                logger.warning("Slow candidate search %.3fs %s", elapsed, url)

        return parse_search_results(payload)
