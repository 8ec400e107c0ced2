from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from grant_matcher.normalize.schema import Opportunity, Profile


@dataclass(frozen=True, slots=True)
class EligibilityResult:
    meets_all: bool
    unmet_reasons: tuple[str, ...]


def _normalize_text(value: Any) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip().lower()
    return normalized or None


def _normalize_list(values: Iterable[Any]) -> list[str]:
    return [item for item in (_normalize_text(v) for v in values) if item]


def _not_member(allowed: Iterable[str], value: Any) -> bool:
    allowed_normalized = _normalize_list(allowed)
    return bool(allowed_normalized) and _normalize_text(value) not in allowed_normalized


def _no_overlap(allowed: Iterable[str], values: Iterable[str]) -> bool:
    """Only compared when both sides list something."""

    allowed_normalized = set(_normalize_list(allowed))
    values_normalized = _normalize_list(values)
    if not allowed_normalized or not values_normalized:
        return False
    return not allowed_normalized.intersection(values_normalized)


def _joined(values: Iterable[str]) -> str:
    return ", ".join(values)


def _score_reasons(profile: Profile, opportunity: Opportunity) -> list[str]:
    reasons: list[str] = []
    if profile.score is None:
        return reasons
    if opportunity.min_score is not None and profile.score < opportunity.min_score:
        reasons.append("Minimum score not met")
    if opportunity.max_score is not None and profile.score > opportunity.max_score:
        reasons.append("Maximum score exceeded")
    return reasons


def _categorical_reasons(profile: Profile, opportunity: Opportunity) -> list[str]:
    reasons: list[str] = []
    if _not_member(opportunity.eligible_majors, profile.major):
        reasons.append(f"Major must be one of: {_joined(opportunity.eligible_majors)}")
    if _not_member(opportunity.required_states, profile.state):
        reasons.append(f"Must be resident of: {_joined(opportunity.required_states)}")
    if _not_member(opportunity.required_ethnicities, profile.ethnicity):
        reasons.append(f"Ethnicity must be one of: {_joined(opportunity.required_ethnicities)}")
    if _not_member(opportunity.required_genders, profile.gender):
        reasons.append(f"Gender must be one of: {_joined(opportunity.required_genders)}")
    if _no_overlap(opportunity.eligible_applicant_types, profile.applicant_types):
        reasons.append(
            f"Organization type must be one of: {_joined(opportunity.eligible_applicant_types)}"
        )
    return reasons


def _year_reasons(profile: Profile, opportunity: Opportunity) -> list[str]:
    reasons: list[str] = []
    year = profile.graduation_year
    if year is None:
        return reasons
    if opportunity.min_graduation_year is not None and year < opportunity.min_graduation_year:
        reasons.append(f"Graduation year must be {opportunity.min_graduation_year} or later")
    if opportunity.max_graduation_year is not None and year > opportunity.max_graduation_year:
        reasons.append(f"Graduation year must be {opportunity.max_graduation_year} or earlier")
    return reasons


def check_eligibility(profile: Profile, opportunity: Opportunity) -> EligibilityResult:
    """Evaluate every eligibility rule and collect a reason per failed rule.

    Rules run in a fixed order (score bounds, categorical sets, boolean
    requirements, graduation-year bounds) and never short-circuit. Absent
    profile values and unset restrictions never produce a reason on their own,
    except that an empty single-valued attribute is not a member of a non-empty
    set. Applicant types are only compared when the profile lists some.
    """

    reasons = [
        *_score_reasons(profile, opportunity),
        *_categorical_reasons(profile, opportunity),
    ]
    if opportunity.first_generation_required and not profile.first_generation:
        reasons.append("Must be a first-generation student")
    reasons.extend(_year_reasons(profile, opportunity))

    return EligibilityResult(meets_all=not reasons, unmet_reasons=tuple(reasons))
