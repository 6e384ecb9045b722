import math
import re
from typing import Iterable, Optional, Tuple

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_NUMBER_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    @staticmethod
    def volume(sets: Iterable[Tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol

    @staticmethod
    def round_half_away_from_zero(value: float) -> int:
        """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
        if value < 0:
            return -int(math.floor(-value + 0.5))
        return int(math.floor(value + 0.5))

    @staticmethod
    def parse_int(text: str) -> Optional[int]:
        """Parse ``text`` as a plain integer.

        Only an optional sign followed by ASCII digits is accepted; whitespace,
        decimals and digit separators make the text invalid.
        """
        if not _INT_PATTERN.fullmatch(text):
            return None
        return int(text)

    @staticmethod
    def parse_number(text: str) -> Optional[float]:
        """Parse ``text`` as a plain decimal number (``80``, ``80.5``, ``.5``)."""
        if not _NUMBER_PATTERN.fullmatch(text):
            return None
        return float(text)
