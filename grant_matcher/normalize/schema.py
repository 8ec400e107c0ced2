from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Mapping

from grant_matcher.errors import UpstreamUnavailable


@dataclass(frozen=True, slots=True)
class Profile:
    """Applicant profile as seen by one matching request."""

    profile_id: str
    score: float | None = None
    major: str | None = None
    state: str | None = None
    ethnicity: str | None = None
    gender: str | None = None
    applicant_types: tuple[str, ...] = ()
    first_generation: bool = False
    graduation_year: int | None = None
    summary: str | None = None
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Opportunity:
    """Grant opportunity with its eligibility restrictions.

    Empty restriction sets and unset bounds mean "no restriction".
    """

    opportunity_id: str
    title: str = ""
    description: str = ""
    min_score: float | None = None
    max_score: float | None = None
    eligible_majors: tuple[str, ...] = ()
    required_states: tuple[str, ...] = ()
    required_ethnicities: tuple[str, ...] = ()
    required_genders: tuple[str, ...] = ()
    eligible_applicant_types: tuple[str, ...] = ()
    first_generation_required: bool = False
    min_graduation_year: int | None = None
    max_graduation_year: int | None = None
    essay_required: bool = False
    recommendation_required: bool = False
    award_amount: float = 0.0
    deadline: datetime | None = None
    renewable: bool = False
    keywords: tuple[str, ...] = field(default=())


# camelCase attribute names used by the retrieval collaborator.
_ATTRIBUTE_ALIASES: dict[str, tuple[str, ...]] = {
    "opportunity_id": ("opportunityId", "grantId", "id"),
    "title": ("title", "name"),
    "description": ("description",),
    "min_score": ("minScore", "minGpa"),
    "max_score": ("maxScore", "maxGpa"),
    "eligible_majors": ("eligibleMajors",),
    "required_states": ("requiredStates", "eligibleStates"),
    "required_ethnicities": ("requiredEthnicities",),
    "required_genders": ("requiredGenders",),
    "eligible_applicant_types": ("applicantTypes", "eligibleApplicantTypes"),
    "first_generation_required": ("firstGenerationRequired",),
    "min_graduation_year": ("minGraduationYear",),
    "max_graduation_year": ("maxGraduationYear",),
    "essay_required": ("requiresEssay", "essayRequired"),
    "recommendation_required": ("requiresRecommendation", "recommendationRequired"),
    "award_amount": ("awardAmount", "awardCeiling", "awardFloor"),
    "deadline": ("deadline", "closeDate"),
    "renewable": ("isRenewable", "renewable"),
    "keywords": ("keywords",),
}


def _lookup(attributes: Mapping[str, Any], name: str) -> Any:
    for alias in _ATTRIBUTE_ALIASES[name]:
        value = attributes.get(alias)
        if value is not None:
            return value
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        cleaned = value.strip()
        return (cleaned,) if cleaned else ()
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(text for text in (_as_text(item) for item in value) if text)
    return ()


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> int | None:
    number = _as_float(value)
    return int(number) if number is not None else None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    if isinstance(value, (int, float)):
        return bool(value)
    return False


def parse_deadline(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)

    cleaned = str(value).strip()
    if not cleaned:
        return None
    try:
        parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def opportunity_from_attributes(attributes: Mapping[str, Any]) -> Opportunity:
    """Build an Opportunity from a collaborator attribute bag.

    Unknown keys are ignored and unparsable optional values are treated as
    absent. A missing identifier is a contract violation by the collaborator.
    """

    opportunity_id = _as_text(_lookup(attributes, "opportunity_id"))
    if not opportunity_id:
        raise UpstreamUnavailable("Candidate is missing an opportunity id.")

    award_amount = _as_float(_lookup(attributes, "award_amount"))
    return Opportunity(
        opportunity_id=opportunity_id,
        title=_as_text(_lookup(attributes, "title")),
        description=_as_text(_lookup(attributes, "description")),
        min_score=_as_float(_lookup(attributes, "min_score")),
        max_score=_as_float(_lookup(attributes, "max_score")),
        eligible_majors=_as_tuple(_lookup(attributes, "eligible_majors")),
        required_states=_as_tuple(_lookup(attributes, "required_states")),
        required_ethnicities=_as_tuple(_lookup(attributes, "required_ethnicities")),
        required_genders=_as_tuple(_lookup(attributes, "required_genders")),
        eligible_applicant_types=_as_tuple(_lookup(attributes, "eligible_applicant_types")),
        first_generation_required=_as_bool(_lookup(attributes, "first_generation_required")),
        min_graduation_year=_as_int(_lookup(attributes, "min_graduation_year")),
        max_graduation_year=_as_int(_lookup(attributes, "max_graduation_year")),
        essay_required=_as_bool(_lookup(attributes, "essay_required")),
        recommendation_required=_as_bool(_lookup(attributes, "recommendation_required")),
        award_amount=max(award_amount, 0.0) if award_amount is not None else 0.0,
        deadline=parse_deadline(_lookup(attributes, "deadline")),
        renewable=_as_bool(_lookup(attributes, "renewable")),
        keywords=_as_tuple(_lookup(attributes, "keywords")),
    )


def profile_from_mapping(payload: Mapping[str, Any]) -> Profile:
    profile_id = _as_text(payload.get("profile_id") or payload.get("profileId") or payload.get("id"))
    return Profile(
        profile_id=profile_id,
        score=_as_float(payload.get("score", payload.get("gpa"))),
        major=_as_text(payload.get("major")) or None,
        state=_as_text(payload.get("state")) or None,
        ethnicity=_as_text(payload.get("ethnicity")) or None,
        gender=_as_text(payload.get("gender")) or None,
        applicant_types=_as_tuple(payload.get("applicant_types", payload.get("applicantTypes"))),
        first_generation=_as_bool(payload.get("first_generation", payload.get("firstGeneration"))),
        graduation_year=_as_int(payload.get("graduation_year", payload.get("graduationYear"))),
        summary=_as_text(payload.get("summary")) or None,
        keywords=_as_tuple(payload.get("keywords")),
    )


def opportunity_to_dict(opportunity: Opportunity) -> dict[str, Any]:
    return {
        "opportunityId": opportunity.opportunity_id,
        "title": opportunity.title,
        "awardAmount": opportunity.award_amount,
        "deadline": opportunity.deadline.isoformat() if opportunity.deadline else None,
        "requiresEssay": opportunity.essay_required,
        "requiresRecommendation": opportunity.recommendation_required,
        "isRenewable": opportunity.renewable,
    }
