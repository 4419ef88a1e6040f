"""create season, week seed and week result tables

Revision ID: 0001
Revises:
Create Date: 2025-09-01 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "seasons",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("total_weeks", sa.Integer(), nullable=False),
        sa.Column("total_quota", sa.Integer(), nullable=False),
        sa.Column("terminal_override", sa.String(length=10), nullable=True),
        sa.Column("commitment", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_seasons"),
        sa.UniqueConstraint("name", name="uq_seasons_name"),
    )
    op.create_table(
        "week_seeds",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("seed", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ["season_id"],
            ["seasons.id"],
            name="fk_week_seeds_season_id_seasons",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_week_seeds"),
        sa.UniqueConstraint("season_id", "week", name="uq_week_seeds_season_week"),
    )
    op.create_index("ix_week_seeds_season_id", "week_seeds", ["season_id"])
    op.create_table(
        "week_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("base_seed", sa.Text(), nullable=False),
        sa.Column("lowest_score", sa.Float(), nullable=True),
        sa.Column("lowest_scorer", sa.String(length=255), nullable=True),
        sa.Column("full_seed", sa.Text(), nullable=False),
        sa.Column("is_safe", sa.Boolean(), nullable=False),
        sa.Column("hash_hex", sa.String(length=64), nullable=True),
        sa.Column("probability", sa.Float(), nullable=True),
        sa.Column("quota_remaining_before", sa.Integer(), nullable=True),
        sa.Column("weeks_remaining_before", sa.Integer(), nullable=True),
        sa.Column("is_override", sa.Boolean(), nullable=False),
        sa.Column("revealed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["season_id"],
            ["seasons.id"],
            name="fk_week_results_season_id_seasons",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_week_results"),
        sa.UniqueConstraint("season_id", "week", name="uq_week_results_season_week"),
    )
    op.create_index("ix_week_results_season_id", "week_results", ["season_id"])


def downgrade() -> None:
    op.drop_index("ix_week_results_season_id", table_name="week_results")
    op.drop_table("week_results")
    op.drop_index("ix_week_seeds_season_id", table_name="week_seeds")
    op.drop_table("week_seeds")
    op.drop_table("seasons")
