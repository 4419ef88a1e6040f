"""Draw engine and full-seed encoding."""

from .engine import (
    DrawOutcome,
    Outcome,
    compute_threshold,
    digest_to_int,
    draw,
    probability_percent,
    seed_digest,
)
from .seed import AuxiliaryInput, build_full_seed, format_score

__all__ = [
    "AuxiliaryInput",
    "DrawOutcome",
    "Outcome",
    "build_full_seed",
    "compute_threshold",
    "digest_to_int",
    "draw",
    "format_score",
    "probability_percent",
    "seed_digest",
]
