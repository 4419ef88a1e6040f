from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .season import Season, WeekResult, WeekSeed  # noqa: F401

__all__ = [
    "Base",
    "Season",
    "WeekResult",
    "WeekSeed",
]
