from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from grant_matcher.normalize.schema import Opportunity, Profile
from grant_matcher.rank.scoring import (
    calculate_score,
    compute_award_utility,
    compute_complexity,
    compute_deadline_proximity,
)

NOW = datetime(2026, 2, 22, 12, 0, tzinfo=UTC)
PROFILE = Profile(profile_id="p-1", score=3.8, major="CS", state="CA")


def _opportunity(opportunity_id: str = "g-1", **overrides) -> Opportunity:
    values = {
        "opportunity_id": opportunity_id,
        "award_amount": 10_000.0,
        "deadline": NOW + timedelta(days=60),
    }
    values.update(overrides)
    return Opportunity(**values)


def test_composite_is_weighted_sum_of_components() -> None:
    opportunity = _opportunity(essay_required=True)

    result = calculate_score(PROFILE, opportunity, 0.85, now=NOW)

    assert result.breakdown.semantic == pytest.approx(0.51)
    assert result.breakdown.award == pytest.approx(0.04)
    assert result.breakdown.complexity == pytest.approx(0.07)
    assert result.breakdown.deadline_proximity == pytest.approx(0.10)
    assert result.composite_score == pytest.approx(0.72)
    assert result.semantic_similarity == pytest.approx(0.85)


def test_scoring_is_deterministic_for_fixed_inputs() -> None:
    opportunity = _opportunity(recommendation_required=True)

    first = calculate_score(PROFILE, opportunity, 0.7, now=NOW)
    second = calculate_score(PROFILE, opportunity, 0.7, now=NOW)

    assert first == second


def test_composite_stays_in_unit_interval() -> None:
    richest = _opportunity(award_amount=1_000_000.0)
    poorest = _opportunity(
        award_amount=0.0,
        essay_required=True,
        recommendation_required=True,
        deadline=NOW + timedelta(days=2),
    )

    assert calculate_score(PROFILE, richest, 1.5, now=NOW).composite_score == pytest.approx(1.0)
    assert 0.0 <= calculate_score(PROFILE, poorest, -0.2, now=NOW).composite_score <= 1.0


def test_higher_similarity_never_lowers_composite() -> None:
    opportunity = _opportunity()
    scores = [
        calculate_score(PROFILE, opportunity, similarity, now=NOW).composite_score
        for similarity in (0.0, 0.2, 0.5, 0.8, 1.0)
    ]

    assert scores == sorted(scores)


def test_larger_award_ranks_higher_at_equal_similarity() -> None:
    large = calculate_score(PROFILE, _opportunity("large", award_amount=50_000.0), 0.8, now=NOW)
    small = calculate_score(PROFILE, _opportunity("small", award_amount=1_000.0), 0.8, now=NOW)

    assert large.composite_score > small.composite_score


def test_award_utility_is_capped() -> None:
    assert compute_award_utility(0.0) == 0.0
    assert compute_award_utility(25_000.0) == pytest.approx(0.5)
    assert compute_award_utility(50_000.0) == pytest.approx(1.0)
    assert compute_award_utility(500_000.0) == pytest.approx(1.0)


def test_complexity_penalizes_each_requirement() -> None:
    assert compute_complexity(_opportunity()) == pytest.approx(1.0)
    assert compute_complexity(_opportunity(essay_required=True)) == pytest.approx(0.7)
    assert compute_complexity(
        _opportunity(essay_required=True, recommendation_required=True)
    ) == pytest.approx(0.4)


def test_deadline_proximity_halves_inside_thirty_days() -> None:
    assert compute_deadline_proximity(_opportunity(deadline=NOW + timedelta(days=10)), NOW) == 0.5
    assert compute_deadline_proximity(_opportunity(deadline=NOW + timedelta(days=45)), NOW) == 1.0
    assert compute_deadline_proximity(_opportunity(deadline=None), NOW) == 1.0


def test_eligibility_outcome_is_carried_on_the_match() -> None:
    opportunity = _opportunity(min_score=3.9)

    result = calculate_score(PROFILE, opportunity, 0.9, now=NOW)

    assert result.meets_all_requirements is False
    assert result.unmet_requirements == ("Minimum score not met",)
    assert result.opportunity_id == "g-1"
