"""Exception types raised by the fair-draw subsystem."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import WeekResult


class FairDrawError(Exception):
    """Base class for every error raised by :mod:`fairdraw`."""


class ConfigMismatch(FairDrawError, ValueError):
    """The seed set or season parameters do not describe a valid season."""


class SeedUnavailable(FairDrawError, LookupError):
    """No committed seed exists for the requested week."""

    def __init__(self, week: int, message: Optional[str] = None) -> None:
        self.week = week
        super().__init__(message or f"No committed seed for week {week}")


class OutOfOrder(FairDrawError, RuntimeError):
    """A reveal was requested before all earlier weeks were revealed."""

    def __init__(self, week: int, next_week: int) -> None:
        self.week = week
        self.next_week = next_week
        super().__init__(
            f"Cannot reveal week {week} before week {next_week} has been revealed"
        )


class AlreadyRevealed(FairDrawError):
    """The week already has a stored result.

    This is the idempotency guard rather than a failure: ``result`` holds the
    stored :class:`~fairdraw.models.WeekResult`.
    """

    def __init__(self, result: "WeekResult") -> None:
        self.result = result
        super().__init__(f"Week {result.week} has already been revealed")


class ProtocolViolation(FairDrawError, RuntimeError):
    """The draw was invoked with impossible quota/weeks-remaining values."""


__all__ = [
    "AlreadyRevealed",
    "ConfigMismatch",
    "FairDrawError",
    "OutOfOrder",
    "ProtocolViolation",
    "SeedUnavailable",
]
