"""Verify a published season from its commitment document and result list."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from fairdraw.commitment import CommitmentDocument
from fairdraw.season import SeasonConfig
from fairdraw.verifier import verify_season


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("document", type=Path, help="commitment document (seeds.json)")
    parser.add_argument("results", type=Path, help="published results (JSON list)")
    parser.add_argument("--quota", type=int, required=True)
    parser.add_argument("--terminal-override", choices=["SAFE", "CHOP"], default=None)
    args = parser.parse_args()

    document = CommitmentDocument.from_json(args.document.read_text())
    published = json.loads(args.results.read_text())
    config = SeasonConfig(
        total_weeks=document.total_weeks,
        total_quota=args.quota,
        terminal_override=args.terminal_override,
    )

    report = verify_season(document, config, published)
    print(f"Commitment {document.commitment}: {'OK' if report.commitment_ok else 'MISMATCH'}")
    for week in report.weeks:
        recomputed = week.recomputed.value if week.recomputed else "-"
        verdict = "OK" if week.ok else f"FAILED {week.error or ''}".strip()
        print(f"Week {week.week:2d}: claimed {week.claimed.value}, replayed {recomputed} {verdict}")
    if report.error:
        print(f"Error: {report.error}", file=sys.stderr)
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
