"""Operator-entered lowest scores."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Optional

from ..draw.seed import AuxiliaryInput, ScoreValue, format_score

logger = logging.getLogger(__name__)


class ManualScoreSource:
    """Lowest scores typed in by an operator, one entry per week."""

    def __init__(self) -> None:
        self._entries: Dict[int, AuxiliaryInput] = {}

    def submit(self, week: int, score: ScoreValue, scorer: str) -> AuxiliaryInput:
        """Record the lowest score and scorer for ``week``.

        Raises
        ------
        ValueError
            If the score is negative, the scorer is blank, or ``week`` already
            has a different entry.
        """

        if week < 1:
            raise ValueError("week must be a positive integer")
        if Decimal(format_score(score)) < 0:
            raise ValueError("score must not be negative")
        if scorer is None or not scorer.strip():
            raise ValueError("scorer name must not be empty")

        entry = AuxiliaryInput(score=score, scorer=scorer.strip())
        previous = self._entries.get(week)
        if previous is not None and previous.score_text != entry.score_text:
            raise ValueError(f"Week {week} already has score {previous.score_text}")
        self._entries[week] = entry
        logger.debug(f"Manual score recorded for week {week}")
        return entry

    def lowest_score(self, week: int) -> Optional[AuxiliaryInput]:
        return self._entries.get(week)
