"""Season ledger: sequences week reveals and persists their results."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .draw.engine import DrawOutcome, Outcome, draw
from .draw.seed import AuxiliaryInput, build_full_seed, format_score
from .errors import AlreadyRevealed, OutOfOrder, ProtocolViolation, SeedUnavailable
from .models import Season, WeekResult
from .season import LedgerState, fold_results

logger = logging.getLogger(__name__)

_LOCKS_GUARD = threading.Lock()
_SEASON_LOCKS: dict[int, threading.Lock] = {}


def season_lock(season_id: int) -> threading.Lock:
    """Return the process-wide lock serialising reveals for ``season_id``."""
    with _LOCKS_GUARD:
        lock = _SEASON_LOCKS.get(season_id)
        if lock is None:
            lock = threading.Lock()
            _SEASON_LOCKS[season_id] = lock
        return lock


@dataclass(frozen=True)
class SeasonStatus:
    """Summary of a season's progress for display."""

    safes_used: int
    safes_remaining: int
    weeks_revealed: int
    weeks_remaining: int
    current_probability: float
    next_week: Optional[int]


class SeasonLedger:
    """Reveal weeks of ``season`` in order, at most once each.

    Counters are never stored: every reveal re-derives them by folding the
    persisted :class:`WeekResult` rows in ascending week order.
    """

    def __init__(self, session: Session, season: Season) -> None:
        """Create a ledger bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session used for lookups and persistence.
        season : Season
            Persisted season whose weeks are revealed.
        """

        if season.id is None:
            raise ValueError("Season must be persisted before revealing weeks")
        self._session = session
        self._season = season
        self._season_id = season.id
        self._season_name = season.name
        self._config = season.config

    @property
    def season(self) -> Season:
        return self._season

    def results(self) -> list[WeekResult]:
        """Return the season's results in ascending week order."""
        stmt = (
            select(WeekResult)
            .where(WeekResult.season_id == self._season_id)
            .order_by(WeekResult.week.asc())
        )
        return list(self._session.scalars(stmt).all())

    def result_for(
        self, week: int, session: Optional[Session] = None
    ) -> Optional[WeekResult]:
        return (session or self._session).scalar(
            select(WeekResult).where(
                WeekResult.season_id == self._season_id,
                WeekResult.week == week,
            )
        )

    def state(self) -> LedgerState:
        """Fold the persisted results into running totals.

        Raises
        ------
        ProtocolViolation
            If the stored history has gaps or over-consumes the quota.
        """
        try:
            return fold_results(self._config, self.results())
        except ProtocolViolation as exc:
            logger.critical(f"Season {self._season_name!r} history is corrupt: {exc}")
            raise

    def counters_for(self, week: int) -> Tuple[int, int]:
        """Return ``(quota_remaining_before, weeks_remaining_before)`` for ``week``.

        ``week`` must be the next week to reveal.
        """
        state = self.state()
        if state.next_week != week:
            raise OutOfOrder(week, state.next_week or week)
        return state.quota_remaining, state.draw_weeks_remaining

    def status(self) -> SeasonStatus:
        state = self.state()
        return SeasonStatus(
            safes_used=state.quota_used,
            safes_remaining=state.quota_remaining,
            weeks_revealed=state.weeks_revealed,
            weeks_remaining=state.weeks_remaining,
            current_probability=state.current_probability,
            next_week=state.next_week,
        )

    def reveal_week(
        self,
        week: int,
        aux: Optional[AuxiliaryInput] = None,
        *,
        raise_if_revealed: bool = False,
        revealed_at: Optional[datetime] = None,
    ) -> WeekResult:
        """Reveal ``week`` and persist its immutable result.

        Parameters
        ----------
        week : int
            1-based week to reveal. Must be the next unrevealed week.
        aux : Optional[AuxiliaryInput], default: None
            Value disclosed after the week was played. Its score is appended
            to the committed seed.
        raise_if_revealed : bool, default: False
            When ``True`` a repeated reveal raises :class:`AlreadyRevealed`
            instead of returning the stored result.
        revealed_at : Optional[datetime], default: None
            Reveal timestamp; defaults to the current UTC time.

        Returns
        -------
        WeekResult
            The new result, or the stored one if ``week`` was revealed before.

        Notes
        -----
        The whole read-compute-persist cycle runs under the season lock and a
        row lock on the season:

        1. Return the stored result if ``week`` already has one.
        2. Derive the counters from the stored results; reject gaps.
        3. Build the full seed and run the draw (or apply the terminal
           override).
        4. Insert the :class:`WeekResult` and flush.

        If another process stores the same week between steps 1 and 4, the
        unique constraint rejects the insert. The session is then rolled back,
        which discards any other pending work in it, and the winner's row is
        returned, read through a separate session. Callers that share the
        session with unrelated writes should commit those first.

        Raises
        ------
        ValueError
            If ``week`` is not a positive integer, or the score cannot be
            stored exactly in the ``lowest_score`` column.
        SeedUnavailable
            If no seed is committed for ``week``.
        OutOfOrder
            If an earlier week has not been revealed yet.
        AlreadyRevealed
            Only with ``raise_if_revealed=True``.
        """

        if not isinstance(week, int) or isinstance(week, bool) or week < 1:
            raise ValueError("week must be a positive integer")
        if week > self._config.total_weeks:
            raise SeedUnavailable(
                week, f"Week {week} is outside the {self._config.total_weeks}-week season"
            )

        with season_lock(self._season_id):
            try:
                return self._reveal_locked(week, aux, revealed_at)
            except AlreadyRevealed as exc:
                self._warn_if_aux_differs(exc.result, aux)
                if raise_if_revealed:
                    raise
                return exc.result

    def _reveal_locked(
        self,
        week: int,
        aux: Optional[AuxiliaryInput],
        revealed_at: Optional[datetime],
    ) -> WeekResult:
        # Row lock for multi-process deployments; SQLite ignores FOR UPDATE.
        self._session.execute(
            select(Season.id).where(Season.id == self._season_id).with_for_update()
        )

        existing = self.result_for(week)
        if existing is not None:
            raise AlreadyRevealed(existing)

        state = self.state()
        if state.next_week != week:
            raise OutOfOrder(week, state.next_week or week)

        base_seed = self._season.seed_for(self._session, week)
        if base_seed is None:
            raise SeedUnavailable(week)

        score = _stored_score(aux)
        scorer = aux.scorer if aux is not None else None
        full_seed = build_full_seed(base_seed, aux)

        if self._config.is_override_week(week):
            override = self._config.terminal_override
            outcome = DrawOutcome(
                week=week,
                outcome=override,
                probability=100.0 if override is Outcome.SAFE else 0.0,
                forced=True,
            )
            quota_before: Optional[int] = None
            weeks_before: Optional[int] = None
        else:
            quota_before = state.quota_remaining
            weeks_before = state.draw_weeks_remaining
            outcome = draw(week, full_seed, quota_before, weeks_before)

        result = WeekResult(
            season_id=self._season_id,
            week=week,
            base_seed=base_seed,
            lowest_score=score,
            lowest_scorer=scorer,
            full_seed=full_seed,
            is_safe=outcome.is_safe,
            hash_hex=outcome.hash_hex,
            probability=outcome.probability,
            quota_remaining_before=quota_before,
            weeks_remaining_before=weeks_before,
            is_override=self._config.is_override_week(week),
            revealed_at=revealed_at or datetime.now(timezone.utc),
        )

        self._session.add(result)
        try:
            self._session.flush()
        except IntegrityError:
            # Another process stored this week first; theirs is authoritative.
            # The failed flush leaves the transaction unusable, and a caller's
            # `with session.begin()` block refuses new work after a rollback.
            self._session.rollback()
            with Session(bind=self._session.get_bind()) as fresh:
                stored = self.result_for(week, session=fresh)
            if stored is None:
                raise
            raise AlreadyRevealed(stored)

        logger.info(
            f"Season {self._season_name!r} week {week} revealed "
            f"{outcome.outcome.value} ({outcome.probability}%)"
        )
        return result

    def _warn_if_aux_differs(
        self, stored: WeekResult, aux: Optional[AuxiliaryInput]
    ) -> None:
        given = aux.score_text if aux is not None else None
        kept = format_score(stored.lowest_score) if stored.lowest_score is not None else None
        if given != kept:
            logger.warning(
                f"Week {stored.week} of season {self._season_name!r} was already "
                f"revealed with score {kept}; ignoring {given}"
            )


def _stored_score(aux: Optional[AuxiliaryInput]) -> Optional[float]:
    """Return the score for the ``Float`` column.

    The full seed is built from the score text, so the stored value must render
    back to exactly that text; otherwise the row could not be replayed.
    """
    if aux is None or aux.score is None:
        return None
    text = format_score(aux.score)
    stored = float(text)
    if format_score(stored) != text:
        raise ValueError(f"Score {text} cannot be stored without losing precision")
    return stored


__all__ = ["SeasonLedger", "SeasonStatus", "season_lock"]
