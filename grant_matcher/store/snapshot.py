from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable
from uuid import uuid4

import numpy as np
import pandas as pd

from grant_matcher.normalize.schema import Opportunity, opportunity_from_attributes

SNAPSHOT_COLUMNS = [
    "opportunityId",
    "title",
    "description",
    "minScore",
    "maxScore",
    "eligibleMajors",
    "requiredStates",
    "requiredEthnicities",
    "requiredGenders",
    "applicantTypes",
    "firstGenerationRequired",
    "minGraduationYear",
    "maxGraduationYear",
    "requiresEssay",
    "requiresRecommendation",
    "awardAmount",
    "deadline",
    "isRenewable",
    "keywords",
]


def _plain(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return [_plain(item) for item in value.tolist()]
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


def _opportunity_record(opportunity: Opportunity) -> dict[str, Any]:
    return {
        "opportunityId": opportunity.opportunity_id,
        "title": opportunity.title,
        "description": opportunity.description,
        "minScore": opportunity.min_score,
        "maxScore": opportunity.max_score,
        "eligibleMajors": list(opportunity.eligible_majors),
        "requiredStates": list(opportunity.required_states),
        "requiredEthnicities": list(opportunity.required_ethnicities),
        "requiredGenders": list(opportunity.required_genders),
        "applicantTypes": list(opportunity.eligible_applicant_types),
        "firstGenerationRequired": opportunity.first_generation_required,
        "minGraduationYear": opportunity.min_graduation_year,
        "maxGraduationYear": opportunity.max_graduation_year,
        "requiresEssay": opportunity.essay_required,
        "requiresRecommendation": opportunity.recommendation_required,
        "awardAmount": opportunity.award_amount,
        "deadline": opportunity.deadline.isoformat() if opportunity.deadline else None,
        "isRenewable": opportunity.renewable,
        "keywords": list(opportunity.keywords),
    }


def opportunities_to_frame(opportunities: Iterable[Opportunity]) -> pd.DataFrame:
    records = [_opportunity_record(opportunity) for opportunity in opportunities]
    return pd.DataFrame(records, columns=SNAPSHOT_COLUMNS)


def frame_to_opportunities(df: pd.DataFrame) -> list[Opportunity]:
    opportunities: list[Opportunity] = []
    for record in df.to_dict(orient="records"):
        attributes = {key: _plain(value) for key, value in record.items()}
        opportunities.append(opportunity_from_attributes(attributes))
    return opportunities


def write_opportunity_snapshot(opportunities: Iterable[Opportunity], output_path: Path) -> Path:
    df = opportunities_to_frame(opportunities)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.parent / f"{output_path.name}.{uuid4().hex}.tmp"
    try:
        if output_path.suffix == ".json":
            temp_path.write_text(
                json.dumps(
                    [
                        {key: _plain(value) for key, value in record.items()}
                        for record in df.to_dict(orient="records")
                    ],
                    indent=2,
                    sort_keys=True,
                    allow_nan=False,
                ),
                encoding="utf-8",
            )
        else:
            df.to_parquet(temp_path, index=False, engine="pyarrow")
        temp_path.replace(output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return output_path


def load_opportunity_snapshot(path: Path) -> list[Opportunity]:
    if not path.exists():
        raise FileNotFoundError(f"No opportunity snapshot found at '{path}'.")
    if path.suffix == ".json":
        records = json.loads(path.read_text(encoding="utf-8"))
        df = pd.DataFrame(records)
    else:
        df = pd.read_parquet(path, engine="pyarrow")
    return frame_to_opportunities(df)
