from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from grant_matcher.normalize.schema import Opportunity, opportunity_from_attributes
from grant_matcher.store.snapshot import write_opportunity_snapshot


def _load_opportunities(input_path: Path) -> list[Opportunity]:
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    payload = json.loads(input_path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("opportunities", payload.get("data"))
    if not isinstance(payload, list):
        raise ValueError("Input must be a JSON list of opportunity attribute objects.")
    return [opportunity_from_attributes(item) for item in payload]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build an opportunity snapshot for in-process retrieval.")
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="JSON file with opportunity attribute objects (camelCase keys).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("data/processed/opportunities.parquet"),
        help="Snapshot path (.parquet or .json).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    opportunities = _load_opportunities(args.input)
    ids = [opportunity.opportunity_id for opportunity in opportunities]
    duplicates = sorted({opportunity_id for opportunity_id in ids if ids.count(opportunity_id) > 1})
    if duplicates:
        raise ValueError(f"Duplicate opportunity ids: {', '.join(duplicates)}")

    snapshot_path = write_opportunity_snapshot(opportunities, args.output)
    print(f"Wrote snapshot: {snapshot_path}")
    print(f"Opportunities: {len(opportunities)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
