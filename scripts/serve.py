from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

import uvicorn

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from grant_matcher.api.app import create_app
from grant_matcher.config import MatcherSettings
from grant_matcher.normalize.schema import Profile, profile_from_mapping
from grant_matcher.search.tfidf import TfidfCandidateSearch
from grant_matcher.store.memory import InMemoryProfileStore
from grant_matcher.store.snapshot import load_opportunity_snapshot
from grant_matcher.wiring import build_components

logger = logging.getLogger("serve")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the grant matching API.")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--profiles",
        type=Path,
        default=None,
        help="JSON file holding a list of applicant profiles.",
    )
    parser.add_argument(
        "--opportunity-snapshot",
        type=Path,
        default=None,
        help="Opportunity snapshot (.parquet or .json) for in-process retrieval. "
        "When omitted, candidates come from the configured search service.",
    )
    parser.add_argument("--log-level", type=str, default="INFO")
    return parser.parse_args(argv)


def load_profiles(path: Path | None) -> list[Profile]:
    if path is None:
        return []
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Profiles file '{path}' must contain a JSON list.")
    profiles = [profile_from_mapping(item) for item in payload]
    missing = [index for index, profile in enumerate(profiles) if not profile.profile_id]
    if missing:
        raise ValueError(f"Profiles at positions {missing} are missing an id.")
    return profiles


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    settings = MatcherSettings.from_env()
    profiles = InMemoryProfileStore(load_profiles(args.profiles))
    candidate_search = None
    if args.opportunity_snapshot is not None:
        opportunities = load_opportunity_snapshot(args.opportunity_snapshot)
        logger.info("Loaded %d opportunities from %s", len(opportunities), args.opportunity_snapshot)
        candidate_search = TfidfCandidateSearch(opportunities)

    components = build_components(settings, profiles=profiles, candidate_search=candidate_search)
    uvicorn.run(create_app(components), host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
