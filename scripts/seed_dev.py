"""Create a development season with fresh seeds and a few revealed weeks."""

from __future__ import annotations

import argparse
from pathlib import Path

from fairdraw.commitment import generate_seeds
from fairdraw.db.engine import get_sessionmaker, make_engine
from fairdraw.models import Base, Season
from fairdraw.workflows import create_season, reveal_week, season_status


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--name", default="dev")
    parser.add_argument("--weeks", type=int, default=17)
    parser.add_argument("--quota", type=int, default=5)
    parser.add_argument("--reveal", type=int, default=3, help="weeks to reveal")
    parser.add_argument(
        "--terminal-chop",
        action="store_true",
        help="make the last week an unconditional CHOP",
    )
    parser.add_argument(
        "--document",
        type=Path,
        default=Path("seeds.json"),
        help="where to write the commitment document",
    )
    args = parser.parse_args()

    engine = make_engine()
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        existing = Season.get_by_name(session, args.name)
        if existing is not None:
            session.delete(existing)
            session.flush()

        season = create_season(
            session,
            args.name,
            generate_seeds(args.weeks, prefix=f"DEV_{args.name.upper()}"),
            args.quota,
            terminal_override="CHOP" if args.terminal_chop else None,
        )
        for week in range(1, min(args.reveal, args.weeks) + 1):
            result = reveal_week(
                session, season, week, lowest_score=70 + week * 1.5, lowest_scorer=f"Team {week}"
            )
            print(f"Week {week:2d}: {result.outcome.value}")

        args.document.write_text(season.commitment_document().to_json())
        status = season_status(session, season)

    print(f"Commitment: {season.commitment}")
    print(f"Seeds written to {args.document}")
    print(
        f"SAFE used {status.safes_used}, remaining {status.safes_remaining}, "
        f"next week chance {status.current_probability}%"
    )


if __name__ == "__main__":
    main()
