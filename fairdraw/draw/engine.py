"""Progressive draw deciding whether a week is SAFE or CHOP."""

from __future__ import annotations

import enum
import hashlib
import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Optional, Union

from ..errors import ProtocolViolation

logger = logging.getLogger(__name__)

HASH_BITS = 256


class Outcome(str, enum.Enum):
    """Result of a week's draw."""

    SAFE = "SAFE"
    CHOP = "CHOP"

    @classmethod
    def parse(cls, value: Union["Outcome", str, bool]) -> "Outcome":
        """Coerce ``value`` (an outcome, its name, or an ``is_safe`` flag)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.SAFE if value else cls.CHOP
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError as exc:
                raise ValueError(f"Unknown outcome {value!r}") from exc
        raise TypeError(f"Cannot interpret {value!r} as an outcome")


@dataclass(frozen=True)
class DrawOutcome:
    """Value object describing a single week's draw.

    Attributes
    ----------
    week : int
        Week the draw was run for.
    outcome : Outcome
        ``SAFE`` or ``CHOP``.
    probability : float
        Chance of SAFE that was in effect, as a percentage rounded to one
        decimal. Informational only, never used for the decision.
    hash_hex : Optional[str]
        SHA-256 digest of the full seed; ``None`` when a forced rule decided.
    threshold : Optional[int]
        Exact cutoff the digest was compared against; ``None`` when forced.
    forced : bool
        ``True`` when the outcome came from the zero-quota or forced-floor rule
        (or a terminal override) instead of the hash comparison.
    """

    week: int
    outcome: Outcome
    probability: float
    hash_hex: Optional[str] = None
    threshold: Optional[int] = None
    forced: bool = False

    @property
    def is_safe(self) -> bool:
        return self.outcome is Outcome.SAFE


def _as_bytes(full_seed: Union[str, bytes]) -> bytes:
    if isinstance(full_seed, bytes):
        return full_seed
    if isinstance(full_seed, str):
        return full_seed.encode("utf-8")
    raise TypeError("full seed must be str or bytes")


def seed_digest(full_seed: Union[str, bytes]) -> bytes:
    """Return the SHA-256 digest of ``full_seed`` (text is UTF-8 encoded)."""
    return hashlib.sha256(_as_bytes(full_seed)).digest()


def digest_to_int(digest: bytes) -> int:
    """Interpret ``digest`` as an unsigned big-endian integer."""
    return int.from_bytes(digest, "big")


def compute_threshold(quota_remaining: int, weeks_remaining: int) -> int:
    """Return ``floor(quota_remaining * 2**256 / weeks_remaining)`` exactly."""
    return (quota_remaining << HASH_BITS) // weeks_remaining


def probability_percent(quota_remaining: int, weeks_remaining: int) -> float:
    """Return the SAFE probability as a percentage rounded half up to one decimal."""
    if weeks_remaining <= 0:
        return 0.0
    tenths = math.floor(Fraction(quota_remaining * 1000, weeks_remaining) + Fraction(1, 2))
    return tenths / 10


def check_counters(week: int, quota_remaining: int, weeks_remaining: int) -> None:
    """Raise :class:`ProtocolViolation` unless the counters are drawable."""
    problem = None
    if not isinstance(week, int) or week < 1:
        problem = f"week must be a positive integer, got {week!r}"
    elif weeks_remaining < 1:
        problem = (
            f"week {week}: no weeks remaining to draw "
            f"(weeks_remaining_before={weeks_remaining})"
        )
    elif quota_remaining < 0 or quota_remaining > weeks_remaining:
        problem = (
            f"week {week}: quota_remaining_before={quota_remaining} is outside "
            f"0..{weeks_remaining}"
        )
    if problem is not None:
        logger.critical(f"Draw protocol violation: {problem}")
        raise ProtocolViolation(problem)


def draw(
    week: int,
    full_seed: Union[str, bytes],
    quota_remaining_before: int,
    weeks_remaining_before: int,
) -> DrawOutcome:
    """Decide whether ``week`` is SAFE or CHOP.

    Parameters
    ----------
    week : int
        1-based week number.
    full_seed : Union[str, bytes]
        Byte string hashed for the week (text is UTF-8 encoded).
    quota_remaining_before : int
        SAFE outcomes still to be granted before this week.
    weeks_remaining_before : int
        Draw weeks left, this one included.

    Returns
    -------
    DrawOutcome
        The decision together with the values that produced it.

    Notes
    -----
    The rules are applied in this order:

    1. No quota left: CHOP.
    2. Quota equals the weeks left: SAFE (forced floor).
    3. Otherwise hash the full seed with SHA-256, read the digest as an
       unsigned big-endian integer ``H`` and return SAFE when
       ``H < floor(quota * 2**256 / weeks)``.

    Raises
    ------
    ProtocolViolation
        If the counters are impossible, e.g. drawing past the end of a season.
    """

    check_counters(week, quota_remaining_before, weeks_remaining_before)
    probability = probability_percent(quota_remaining_before, weeks_remaining_before)

    if quota_remaining_before == 0:
        return DrawOutcome(week, Outcome.CHOP, probability, forced=True)
    if quota_remaining_before == weeks_remaining_before:
        return DrawOutcome(week, Outcome.SAFE, probability, forced=True)

    digest = seed_digest(full_seed)
    threshold = compute_threshold(quota_remaining_before, weeks_remaining_before)
    outcome = Outcome.SAFE if digest_to_int(digest) < threshold else Outcome.CHOP
    logger.debug(
        f"Week {week} drawn {outcome.value} at {probability}% "
        f"({quota_remaining_before}/{weeks_remaining_before})"
    )
    return DrawOutcome(
        week=week,
        outcome=outcome,
        probability=probability,
        hash_hex=digest.hex(),
        threshold=threshold,
    )


__all__ = [
    "DrawOutcome",
    "HASH_BITS",
    "Outcome",
    "check_counters",
    "compute_threshold",
    "digest_to_int",
    "draw",
    "probability_percent",
    "seed_digest",
]
