from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts.serve import load_profiles, parse_args


def test_parse_args_defaults() -> None:
    args = parse_args([])

    assert args.host == "127.0.0.1"
    assert args.port == 8000
    assert args.profiles is None
    assert args.opportunity_snapshot is None


def test_load_profiles_reads_camel_case_records(tmp_path: Path) -> None:
    path = tmp_path / "profiles.json"
    path.write_text(
        json.dumps(
            [
                {
                    "profileId": "p-1",
                    "gpa": 3.6,
                    "major": "Biology",
                    "firstGeneration": True,
                    "graduationYear": 2027,
                }
            ]
        ),
        encoding="utf-8",
    )

    profiles = load_profiles(path)

    assert len(profiles) == 1
    assert profiles[0].profile_id == "p-1"
    assert profiles[0].score == 3.6
    assert profiles[0].first_generation is True
    assert profiles[0].graduation_year == 2027
    assert load_profiles(None) == []


def test_load_profiles_rejects_records_without_id(tmp_path: Path) -> None:
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps([{"major": "Biology"}]), encoding="utf-8")

    with pytest.raises(ValueError):
        load_profiles(path)
