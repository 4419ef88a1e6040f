"""Commitment over the season's per-week seeds.

The commitment is the SHA-256 digest of every week seed concatenated in week
order with no separators. It is published before week 1 is revealed together
with (later) the seeds themselves, in a document shaped like::

    {"commitment": "<hex-64>", "weeks": {"1": "<seed>", "2": "<seed>", ...}}
"""

from __future__ import annotations

import hashlib
import json
import secrets
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from .draw.seed import normalize_base_seed
from .errors import ConfigMismatch

SeedLike = Union[str, bytes]


def _check_count(seeds: Sequence[Any], total_weeks: Optional[int]) -> None:
    if isinstance(seeds, (str, bytes)):
        raise TypeError("seeds must be a sequence of seeds, not a single seed")
    if not seeds:
        raise ConfigMismatch("At least one week seed is required")
    if total_weeks is not None and len(seeds) != total_weeks:
        raise ConfigMismatch(f"Expected {total_weeks} week seeds, got {len(seeds)}")


def _seed_bytes(seed: SeedLike) -> bytes:
    if isinstance(seed, str):
        seed = seed.encode("utf-8")
    if not isinstance(seed, bytes):
        raise TypeError("week seeds must be str or bytes")
    if not seed:
        raise ValueError("week seeds must not be empty")
    return seed


def commit(seeds: Sequence[SeedLike], *, total_weeks: Optional[int] = None) -> str:
    """Return the hex SHA-256 commitment for ``seeds`` in week order.

    Parameters
    ----------
    seeds : Sequence[SeedLike]
        Week seeds, index 0 being week 1.
    total_weeks : Optional[int], default: None
        Configured season length. When given, the seed count must match.

    Raises
    ------
    ConfigMismatch
        If no seeds are given or their count differs from ``total_weeks``.
    """

    seeds = list(seeds) if not isinstance(seeds, (str, bytes)) else seeds
    _check_count(seeds, total_weeks)
    digest = hashlib.sha256()
    for seed in seeds:
        digest.update(_seed_bytes(seed))
    return digest.hexdigest()


def verify_commitment(
    seeds: Sequence[SeedLike],
    commitment: str,
    *,
    total_weeks: Optional[int] = None,
) -> bool:
    """Return whether ``seeds`` reproduce the published ``commitment``."""
    if not isinstance(commitment, str):
        return False
    return commit(seeds, total_weeks=total_weeks) == commitment.strip().lower()


def generate_seeds(
    total_weeks: int, *, prefix: str = "WEEK", nbytes: int = 16
) -> list[str]:
    """Generate fresh secret seeds for a season of ``total_weeks`` weeks."""
    if total_weeks < 1:
        raise ConfigMismatch("total_weeks must be at least 1")
    return [
        f"{prefix}_W{week:02d}_{secrets.token_hex(nbytes)}"
        for week in range(1, total_weeks + 1)
    ]


@dataclass(frozen=True)
class CommitmentDocument:
    """Published commitment together with the seeds it binds.

    Attributes
    ----------
    commitment : str
        Lowercase hex SHA-256 digest published before the season.
    weeks : Mapping[int, str]
        Week number to seed.
    """

    commitment: str
    weeks: Mapping[int, str]

    @classmethod
    def from_seeds(cls, seeds: Sequence[SeedLike]) -> "CommitmentDocument":
        normalized = [normalize_base_seed(seed) for seed in seeds]
        _check_count(normalized, None)
        return cls(
            commitment=commit(normalized),
            weeks={week: seed for week, seed in enumerate(normalized, start=1)},
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CommitmentDocument":
        """Parse a published document.

        Raises
        ------
        ConfigMismatch
            If the week keys are not exactly ``1..N``.
        ValueError
            If the document lacks a commitment or week mapping.
        """

        commitment = payload.get("commitment")
        raw_weeks = payload.get("weeks")
        if not isinstance(commitment, str) or not commitment:
            raise ValueError("Commitment document is missing 'commitment'")
        if not isinstance(raw_weeks, Mapping):
            raise ValueError("Commitment document is missing 'weeks'")

        weeks: dict[int, str] = {}
        for key, seed in raw_weeks.items():
            try:
                week = int(key)
            except (TypeError, ValueError) as exc:
                raise ConfigMismatch(f"Invalid week key {key!r}") from exc
            weeks[week] = normalize_base_seed(seed)

        expected = list(range(1, len(weeks) + 1))
        if sorted(weeks) != expected:
            raise ConfigMismatch(
                "Commitment document weeks must be numbered 1..N without gaps"
            )
        return cls(commitment=commitment.strip().lower(), weeks=weeks)

    @classmethod
    def from_json(cls, text: str) -> "CommitmentDocument":
        return cls.from_dict(json.loads(text))

    @property
    def total_weeks(self) -> int:
        return len(self.weeks)

    @property
    def seeds(self) -> list[str]:
        """Seeds in ascending numeric week order."""
        return [self.weeks[week] for week in sorted(self.weeks)]

    def seed_for(self, week: int) -> Optional[str]:
        return self.weeks.get(week)

    def verify(self, *, total_weeks: Optional[int] = None) -> bool:
        return verify_commitment(self.seeds, self.commitment, total_weeks=total_weeks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "commitment": self.commitment,
            "weeks": {str(week): self.weeks[week] for week in sorted(self.weeks)},
        }

    def to_json(self, *, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


__all__ = [
    "CommitmentDocument",
    "commit",
    "generate_seeds",
    "verify_commitment",
]
