"""Database models for seasons, their committed seeds and revealed weeks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..commitment import CommitmentDocument
from ..draw.engine import Outcome
from ..season import SeasonConfig
from .base import Base
from .utils import dt_iso


class Season(Base):
    """A season of weekly draws bound to a published seed commitment."""

    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Primary key."""

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    """Machine friendly identifier, e.g. ``"2025"``."""

    total_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    """Number of weeks in the season."""

    total_quota: Mapped[int] = mapped_column(Integer, nullable=False)
    """Exact number of SAFE weeks granted by the draw."""

    terminal_override: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    """Outcome recorded for the last week without a draw (``"SAFE"``/``"CHOP"``)."""

    commitment: Mapped[str] = mapped_column(String(64), nullable=False)
    """Hex SHA-256 digest over all week seeds, published before week 1."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp when the season was committed."""

    seeds: Mapped[list["WeekSeed"]] = relationship(
        back_populates="season",
        cascade="all, delete-orphan",
        order_by="WeekSeed.week",
    )
    """Committed seeds, one per week."""

    results: Mapped[list["WeekResult"]] = relationship(
        back_populates="season",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WeekResult.week",
    )
    """Revealed weeks in ascending week order."""

    def __init__(
        self,
        *,
        name: str,
        total_weeks: int,
        total_quota: int,
        commitment: str,
        terminal_override: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.name = name
        self.total_weeks = total_weeks
        self.total_quota = total_quota
        self.commitment = commitment
        self.terminal_override = (
            Outcome.parse(terminal_override).value
            if terminal_override is not None
            else None
        )
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Season(id={id}, name={name}, weeks={weeks}, quota={quota})>".format(
            id=self.id,
            name=self.name,
            weeks=self.total_weeks,
            quota=self.total_quota,
        )

    @property
    def config(self) -> SeasonConfig:
        """Season parameters as an immutable :class:`SeasonConfig`."""
        return SeasonConfig(
            total_weeks=self.total_weeks,
            total_quota=self.total_quota,
            terminal_override=(
                Outcome.parse(self.terminal_override)
                if self.terminal_override is not None
                else None
            ),
        )

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["Season"]:
        """Return the season called ``name`` if it exists."""
        return session.scalar(select(cls).where(cls.name == name))

    def seed_for(self, session: Session, week: int) -> Optional[str]:
        """Return the committed seed for ``week`` or ``None``."""
        return session.scalar(
            select(WeekSeed.seed).where(
                WeekSeed.season_id == self.id,
                WeekSeed.week == week,
            )
        )

    def commitment_document(self) -> CommitmentDocument:
        """Return the publication document (digest plus every seed)."""
        return CommitmentDocument(
            commitment=self.commitment,
            weeks={row.week: row.seed for row in self.seeds},
        )


class WeekSeed(Base):
    """Secret seed for one week, fixed before the season starts."""

    __tablename__ = "week_seeds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    season_id: Mapped[int] = mapped_column(
        ForeignKey("seasons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Foreign key referencing :class:`Season`."""

    week: Mapped[int] = mapped_column(Integer, nullable=False)
    """1-based week number."""

    seed: Mapped[str] = mapped_column(Text, nullable=False)
    """Opaque seed text."""

    season: Mapped["Season"] = relationship(back_populates="seeds")

    __table_args__ = (
        UniqueConstraint("season_id", "week", name="uq_week_seeds_season_week"),
    )

    def __init__(
        self,
        *,
        week: int,
        seed: str,
        season: Optional["Season"] = None,
        season_id: Optional[int] = None,
    ) -> None:
        self.week = week
        self.seed = seed
        if season is not None:
            self.season = season
        if season_id is not None:
            self.season_id = season_id


class WeekResult(Base):
    """Immutable record of one revealed week."""

    __tablename__ = "week_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Surrogate primary key."""

    season_id: Mapped[int] = mapped_column(
        ForeignKey("seasons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Season the week belongs to."""

    week: Mapped[int] = mapped_column(Integer, nullable=False)
    """1-based week number."""

    base_seed: Mapped[str] = mapped_column(Text, nullable=False)
    """Committed seed for the week."""

    lowest_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    """Auxiliary score appended to the seed, if any."""

    lowest_scorer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Name of the lowest scorer, display only."""

    full_seed: Mapped[str] = mapped_column(Text, nullable=False)
    """Exact text that was hashed."""

    is_safe: Mapped[bool] = mapped_column(Boolean, nullable=False)
    """``True`` for SAFE, ``False`` for CHOP."""

    hash_hex: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    """SHA-256 of the full seed; ``None`` when a forced rule decided."""

    probability: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    """SAFE chance in effect, as a percentage (display only)."""

    quota_remaining_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Quota left when the week was drawn."""

    weeks_remaining_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Draw weeks left, this one included, when the week was drawn."""

    is_override: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    """``True`` when the terminal override decided the week."""

    revealed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp of the reveal."""

    season: Mapped["Season"] = relationship(back_populates="results")

    __table_args__ = (
        UniqueConstraint("season_id", "week", name="uq_week_results_season_week"),
    )

    def __init__(
        self,
        *,
        week: int,
        base_seed: str,
        full_seed: str,
        is_safe: bool,
        season: Optional["Season"] = None,
        season_id: Optional[int] = None,
        lowest_score: Optional[float] = None,
        lowest_scorer: Optional[str] = None,
        hash_hex: Optional[str] = None,
        probability: Optional[float] = None,
        quota_remaining_before: Optional[int] = None,
        weeks_remaining_before: Optional[int] = None,
        is_override: bool = False,
        revealed_at: Optional[datetime] = None,
    ) -> None:
        if season is not None:
            self.season = season
        if season_id is not None:
            self.season_id = season_id
        self.week = week
        self.base_seed = base_seed
        self.full_seed = full_seed
        self.is_safe = is_safe
        self.lowest_score = lowest_score
        self.lowest_scorer = lowest_scorer
        self.hash_hex = hash_hex
        self.probability = probability
        self.quota_remaining_before = quota_remaining_before
        self.weeks_remaining_before = weeks_remaining_before
        self.is_override = is_override
        if revealed_at is not None:
            self.revealed_at = revealed_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<WeekResult(season_id={season}, week={week}, outcome={outcome})>".format(
            season=self.season_id,
            week=self.week,
            outcome=self.outcome.value,
        )

    @property
    def outcome(self) -> Outcome:
        return Outcome.SAFE if self.is_safe else Outcome.CHOP

    def to_dict(self) -> dict[str, Any]:
        """Return the externally published fields as a JSON-ready dict."""
        return {
            "week": self.week,
            "lowest_score": self.lowest_score,
            "lowest_scorer": self.lowest_scorer,
            "is_safe": self.is_safe,
            "revealed_at": dt_iso(self.revealed_at),
            "full_seed": self.full_seed,
            "hash_hex": self.hash_hex,
            "probability": self.probability,
        }


__all__ = ["Season", "WeekResult", "WeekSeed"]
