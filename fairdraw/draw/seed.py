"""Helpers for deriving the full seed hashed for a week's draw."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

ScoreValue = Union[int, float, Decimal, str]

SCORE_SEPARATOR = "_LOWEST_SCORE_"


@dataclass(frozen=True)
class AuxiliaryInput:
    """Value disclosed only once the week has been played.

    Attributes
    ----------
    score : Optional[ScoreValue]
        Lowest score of the week. This is the part appended to the base seed.
    scorer : Optional[str]
        Name of the lowest scorer. Recorded for display, never hashed.
    """

    score: Optional[ScoreValue] = None
    scorer: Optional[str] = None

    @property
    def score_text(self) -> Optional[str]:
        """Return the score rendered as it appears inside the full seed."""
        if self.score is None:
            return None
        return format_score(self.score)


def _decimal_text(value: Decimal) -> str:
    if not value.is_finite():
        raise ValueError("score must be a finite number")
    if value.is_zero():
        return "0"
    return format(value.normalize(), "f")


def format_score(value: ScoreValue) -> str:
    """Render ``value`` in its natural decimal form.

    Integral values carry no fractional part (``100.0`` becomes ``"100"``),
    other values carry no trailing zeros and never use exponent notation.

    Parameters
    ----------
    value : ScoreValue
        Score as an ``int``, ``float``, :class:`~decimal.Decimal` or numeric
        string.

    Raises
    ------
    TypeError
        If ``value`` is not one of the supported types (booleans included).
    ValueError
        If ``value`` is not a finite number.
    """

    if isinstance(value, bool):
        raise TypeError("score must be numeric, not bool")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # repr() is the shortest text that round-trips the double.
        return _decimal_text(Decimal(repr(value)))
    if isinstance(value, Decimal):
        return _decimal_text(value)
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"score {value!r} is not a number") from exc
        return _decimal_text(parsed)
    raise TypeError(f"unsupported score type: {type(value).__name__}")


def normalize_base_seed(base_seed: Union[str, bytes]) -> str:
    """Validate a committed base seed and return it as text.

    Seeds are opaque: surrounding whitespace is part of the seed and is kept.
    """

    if base_seed is None:
        raise ValueError("base seed must not be None")
    if isinstance(base_seed, bytes):
        try:
            base_seed = base_seed.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("base seed bytes must be valid UTF-8") from exc
    if not isinstance(base_seed, str):
        raise TypeError("base seed must be a string")
    if not base_seed:
        raise ValueError("base seed must not be empty")
    return base_seed


def build_full_seed(
    base_seed: Union[str, bytes], aux: Optional[AuxiliaryInput] = None
) -> str:
    """Combine ``base_seed`` with the week's auxiliary input.

    Parameters
    ----------
    base_seed : Union[str, bytes]
        Seed committed before the season started.
    aux : Optional[AuxiliaryInput], default: None
        Value disclosed after the week. When omitted, or when it carries no
        score, the full seed is the base seed itself.

    Returns
    -------
    str
        ``"<base_seed>_LOWEST_SCORE_<score>"`` or ``base_seed``.
    """

    seed = normalize_base_seed(base_seed)
    score_text = aux.score_text if aux is not None else None
    if score_text is None:
        return seed
    return f"{seed}{SCORE_SEPARATOR}{score_text}"


__all__ = [
    "AuxiliaryInput",
    "SCORE_SEPARATOR",
    "ScoreValue",
    "build_full_seed",
    "format_score",
    "normalize_base_seed",
]
