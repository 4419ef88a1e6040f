"""Season parameters and the counters derived from a season's history."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional, Tuple

from .draw.engine import Outcome, probability_percent
from .errors import ConfigMismatch, ProtocolViolation


@dataclass(frozen=True)
class SeasonConfig:
    """Immutable parameters of a season.

    Attributes
    ----------
    total_weeks : int
        Number of weeks in the season, at least one.
    total_quota : int
        Exact number of SAFE outcomes the draw grants over the season.
    terminal_override : Optional[Outcome]
        When set, the last week skips the draw and records this outcome. That
        week neither consumes nor contributes quota.
    """

    total_weeks: int
    total_quota: int
    terminal_override: Optional[Outcome] = None

    def __post_init__(self) -> None:
        if self.terminal_override is not None:
            object.__setattr__(
                self, "terminal_override", Outcome.parse(self.terminal_override)
            )
        if not isinstance(self.total_weeks, int) or self.total_weeks < 1:
            raise ConfigMismatch("total_weeks must be a positive integer")
        if not isinstance(self.total_quota, int) or self.total_quota < 0:
            raise ConfigMismatch("total_quota must be a non-negative integer")
        if self.total_quota > self.draw_weeks:
            raise ConfigMismatch(
                f"total_quota ({self.total_quota}) exceeds the {self.draw_weeks} "
                "weeks that take part in the draw"
            )

    @property
    def terminal_week(self) -> Optional[int]:
        """Week number of the override week, if one is configured."""
        return self.total_weeks if self.terminal_override is not None else None

    @property
    def draw_weeks(self) -> int:
        """Number of weeks decided by the draw."""
        if self.terminal_override is not None:
            return self.total_weeks - 1
        return self.total_weeks

    def is_override_week(self, week: int) -> bool:
        return week == self.terminal_week


@dataclass(frozen=True)
class LedgerState:
    """Running totals over the revealed weeks, in week order."""

    config: SeasonConfig
    quota_used: int = 0
    weeks_revealed: int = 0
    draw_weeks_revealed: int = 0

    @property
    def quota_remaining(self) -> int:
        return self.config.total_quota - self.quota_used

    @property
    def draw_weeks_remaining(self) -> int:
        return self.config.draw_weeks - self.draw_weeks_revealed

    @property
    def weeks_remaining(self) -> int:
        return self.config.total_weeks - self.weeks_revealed

    @property
    def next_week(self) -> Optional[int]:
        """The only week that may be revealed next, ``None`` once complete."""
        if self.weeks_revealed >= self.config.total_weeks:
            return None
        return self.weeks_revealed + 1

    @property
    def is_complete(self) -> bool:
        return self.next_week is None

    @property
    def current_probability(self) -> float:
        """SAFE chance for the next draw week, as a percentage."""
        if self.quota_remaining <= 0 or self.draw_weeks_remaining <= 0:
            return 0.0
        return probability_percent(self.quota_remaining, self.draw_weeks_remaining)

    def advance(self, week: int, is_safe: bool) -> "LedgerState":
        """Return the state after ``week`` resolved to ``is_safe``.

        Raises
        ------
        ProtocolViolation
            If ``week`` is not the next week or the result breaks the quota.
        """

        if week != self.weeks_revealed + 1:
            raise ProtocolViolation(
                f"Season history is not sequential: expected week "
                f"{self.weeks_revealed + 1}, found week {week}"
            )
        if week > self.config.total_weeks:
            raise ProtocolViolation(
                f"Week {week} is past the end of a {self.config.total_weeks}-week season"
            )
        if self.config.is_override_week(week):
            return replace(self, weeks_revealed=week)

        quota_used = self.quota_used + (1 if is_safe else 0)
        advanced = replace(
            self,
            quota_used=quota_used,
            weeks_revealed=week,
            draw_weeks_revealed=self.draw_weeks_revealed + 1,
        )
        if quota_used > self.config.total_quota:
            raise ProtocolViolation(
                f"Week {week} exceeds the season quota of {self.config.total_quota}"
            )
        if advanced.quota_remaining > advanced.draw_weeks_remaining:
            raise ProtocolViolation(
                f"After week {week} the remaining quota "
                f"({advanced.quota_remaining}) can no longer be granted"
            )
        return advanced


ResultEntry = Any


def _entry(item) -> Tuple[int, bool]:
    if isinstance(item, tuple):
        week, is_safe = item
        return int(week), bool(is_safe)
    return int(item.week), bool(item.is_safe)


def fold_results(config: SeasonConfig, results: Iterable[ResultEntry]) -> LedgerState:
    """Fold revealed results, ordered by week, into a :class:`LedgerState`.

    ``results`` may hold ``(week, is_safe)`` pairs or objects exposing
    ``week`` and ``is_safe`` attributes (such as
    :class:`~fairdraw.models.WeekResult`).
    """

    state = LedgerState(config)
    for item in results:
        week, is_safe = _entry(item)
        state = state.advance(week, is_safe)
    return state


__all__ = ["LedgerState", "SeasonConfig", "fold_results"]
