"""Migrate the configured database and summarise the seasons it holds."""

from __future__ import annotations

import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect, select

from fairdraw.db.engine import get_sessionmaker, make_engine
from fairdraw.models import Season
from fairdraw.workflows import season_status


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_seasons() -> None:
    """Print the tables and one progress line per stored season."""
    engine = make_engine()
    print("Current tables:", ", ".join(sorted(inspect(engine).get_table_names())))

    Session = get_sessionmaker(engine)
    with Session() as session:
        for season in session.scalars(select(Season).order_by(Season.id)):
            status = season_status(session, season)
            print(
                f"{season.name}: {status.weeks_revealed}/{season.total_weeks} weeks "
                f"revealed, {status.safes_used}/{season.total_quota} SAFE used"
            )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--revision", default="head")
    args = parser.parse_args()
    upgrade_db(args.revision)
    print_seasons()


if __name__ == "__main__":
    main()
