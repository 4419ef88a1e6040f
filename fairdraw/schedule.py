"""Wall-clock eligibility of week reveals.

The draw itself never looks at a clock. A schedule only tells a caller which
week, if any, is due so that it can call
:meth:`~fairdraw.ledger.SeasonLedger.reveal_week`.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Collection, Mapping, Optional

from .models.utils import as_utc


class RevealSchedule:
    """Opening time of each week's reveal window."""

    def __init__(self, opens_at: Mapping[int, datetime]) -> None:
        if not opens_at:
            raise ValueError("A reveal schedule needs at least one week")
        self._opens_at = {int(week): as_utc(when) for week, when in opens_at.items()}

    @classmethod
    def weekly(
        cls, first_open: datetime, weeks: int, *, interval: timedelta = timedelta(days=7)
    ) -> "RevealSchedule":
        """Build a schedule opening ``weeks`` windows at a fixed interval."""
        if weeks < 1:
            raise ValueError("weeks must be at least 1")
        return cls({week: first_open + interval * (week - 1) for week in range(1, weeks + 1)})

    def opens_at(self, week: int) -> Optional[datetime]:
        return self._opens_at.get(week)

    def is_open(self, week: int, now: Optional[datetime] = None) -> bool:
        opens = self._opens_at.get(week)
        if opens is None:
            return False
        return as_utc(now or datetime.now(timezone.utc)) >= opens

    def due_week(
        self, revealed: Collection[int], now: Optional[datetime] = None
    ) -> Optional[int]:
        """Return the first unrevealed week whose window has opened, if any."""
        current = as_utc(now or datetime.now(timezone.utc))
        for week in sorted(self._opens_at):
            if week in revealed:
                continue
            if current >= self._opens_at[week]:
                return week
            return None
        return None


__all__ = ["RevealSchedule"]
