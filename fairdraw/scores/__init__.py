"""Sources for the lowest score appended to each week's seed."""

from .api import FantasyScoresClient
from .manual import ManualScoreSource

__all__ = ["FantasyScoresClient", "ManualScoreSource"]
