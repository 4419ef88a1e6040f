"""Independent replay of published draws.

Nothing here touches the database: every function works from values anyone
can read off the published commitment document and result list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from .commitment import CommitmentDocument, verify_commitment
from .draw.engine import DrawOutcome, Outcome, draw
from .draw.seed import AuxiliaryInput, build_full_seed
from .errors import ConfigMismatch, ProtocolViolation
from .season import LedgerState, SeasonConfig

logger = logging.getLogger(__name__)


def verify(
    week: int,
    base_seed: Union[str, bytes],
    aux: Optional[AuxiliaryInput],
    claimed_outcome: Union[Outcome, str, bool],
    quota_remaining_before: int,
    weeks_remaining_before: int,
) -> bool:
    """Return whether re-running the draw reproduces ``claimed_outcome``.

    Parameters
    ----------
    week : int
        Week being checked.
    base_seed : Union[str, bytes]
        Seed disclosed for the week.
    aux : Optional[AuxiliaryInput]
        Disclosed auxiliary input (the lowest score).
    claimed_outcome : Union[Outcome, str, bool]
        Published outcome; ``True``/``False`` are read as an ``is_safe`` flag.
    quota_remaining_before, weeks_remaining_before : int
        Counters in effect before the week.
    """

    full_seed = build_full_seed(base_seed, aux)
    recomputed = draw(week, full_seed, quota_remaining_before, weeks_remaining_before)
    return recomputed.outcome is Outcome.parse(claimed_outcome)


def replay_season(
    config: SeasonConfig,
    base_seeds: Sequence[Union[str, bytes]],
    aux_inputs: Optional[Sequence[Optional[AuxiliaryInput]]] = None,
) -> list[DrawOutcome]:
    """Run every week of a season from public inputs.

    ``aux_inputs`` may be shorter than the season or omitted; missing entries
    mean the week used the bare base seed. The terminal override week, if
    configured, yields a forced outcome without hashing.

    Raises
    ------
    ConfigMismatch
        If the number of seeds differs from ``config.total_weeks``.
    """

    if len(base_seeds) != config.total_weeks:
        raise ConfigMismatch(
            f"Expected {config.total_weeks} week seeds, got {len(base_seeds)}"
        )
    aux_inputs = list(aux_inputs or [])

    state = LedgerState(config)
    outcomes: list[DrawOutcome] = []
    for week in range(1, config.total_weeks + 1):
        aux = aux_inputs[week - 1] if week - 1 < len(aux_inputs) else None
        outcome = _replay_week(state, week, base_seeds[week - 1], aux)
        outcomes.append(outcome)
        state = state.advance(week, outcome.is_safe)
    return outcomes


def _replay_week(
    state: LedgerState,
    week: int,
    base_seed: Union[str, bytes],
    aux: Optional[AuxiliaryInput],
) -> DrawOutcome:
    override = state.config.terminal_override
    if state.config.is_override_week(week) and override is not None:
        return DrawOutcome(
            week=week,
            outcome=override,
            probability=100.0 if override is Outcome.SAFE else 0.0,
            forced=True,
        )
    full_seed = build_full_seed(base_seed, aux)
    return draw(week, full_seed, state.quota_remaining, state.draw_weeks_remaining)


@dataclass(frozen=True)
class WeekVerification:
    """Outcome of checking one published week."""

    week: int
    claimed: Outcome
    recomputed: Optional[Outcome]
    full_seed: Optional[str]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.claimed is self.recomputed


@dataclass(frozen=True)
class SeasonVerification:
    """Report produced by :func:`verify_season`."""

    commitment_ok: bool
    weeks: list[WeekVerification] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.commitment_ok
            and all(week.ok for week in self.weeks)
        )

    @property
    def safe_weeks(self) -> list[int]:
        return [w.week for w in self.weeks if w.claimed is Outcome.SAFE]


def verify_season(
    document: CommitmentDocument,
    config: SeasonConfig,
    published: Sequence[Mapping[str, Any]],
) -> SeasonVerification:
    """Check a published season end to end.

    Parameters
    ----------
    document : CommitmentDocument
        Published commitment with all seeds disclosed.
    config : SeasonConfig
        Season parameters.
    published : Sequence[Mapping[str, Any]]
        Published results carrying at least ``week``, ``is_safe`` and
        ``lowest_score`` (as produced by
        :meth:`~fairdraw.models.WeekResult.to_dict`). Any order is accepted;
        the weeks must be ``1..k`` without gaps.

    Returns
    -------
    SeasonVerification
        Commitment check plus one :class:`WeekVerification` per published week.
    """

    commitment_ok = document.total_weeks == config.total_weeks and document.verify()
    if not commitment_ok:
        logger.warning("Published seeds do not reproduce the commitment digest")

    rows = sorted(published, key=lambda row: int(row["week"]))
    weeks: list[WeekVerification] = []
    state = LedgerState(config)
    for row in rows:
        week = int(row["week"])
        claimed = Outcome.parse(bool(row["is_safe"]))
        base_seed = document.seed_for(week)
        if base_seed is None:
            weeks.append(
                WeekVerification(week, claimed, None, None, error="seed not published")
            )
            return SeasonVerification(commitment_ok, weeks, error=f"no seed for week {week}")

        aux = AuxiliaryInput(row.get("lowest_score"), row.get("lowest_scorer"))
        try:
            full_seed = build_full_seed(base_seed, aux)
            recomputed = _replay_week(state, week, base_seed, aux)
            # Later weeks are replayed against the published history.
            state = state.advance(week, claimed is Outcome.SAFE)
        except ProtocolViolation as exc:
            weeks.append(WeekVerification(week, claimed, None, None, error=str(exc)))
            return SeasonVerification(commitment_ok, weeks, error=str(exc))
        weeks.append(WeekVerification(week, claimed, recomputed.outcome, full_seed))

    return SeasonVerification(commitment_ok, weeks)


__all__ = [
    "SeasonVerification",
    "WeekVerification",
    "replay_season",
    "verify",
    "verify_commitment",
    "verify_season",
]
