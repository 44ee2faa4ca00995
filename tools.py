import math
from typing import Iterable, Optional, Tuple


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    @staticmethod
    def volume(sets: Iterable[Tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol


class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.20462

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb / WeightConverter.KG_TO_LB, 2)


class InputParser:
    """Coerce the text buffers of a live session into stored numbers."""

    MAX_INTEGER = 2**63 - 1

    @staticmethod
    def to_float(value: object, default: float = 0.0) -> float:
        """Return ``value`` as a finite, non-negative float or ``default``."""
        if value is None or isinstance(value, bool):
            return default
        try:
            number = float(str(value).strip().replace(",", "."))
        except ValueError:
            return default
        if math.isnan(number) or math.isinf(number):
            return default
        return max(number, 0.0)

    @classmethod
    def to_int(cls, value: object, default: int = 0) -> int:
        """Return ``value`` as a non-negative int that fits a SQLite INTEGER, else ``default``."""
        number = int(cls.to_float(value, float(default)))
        return number if number <= cls.MAX_INTEGER else default

    @classmethod
    def to_optional_float(cls, value: object) -> Optional[float]:
        if value is None or str(value).strip() == "":
            return None
        number = cls.to_float(value, -1.0)
        return None if number < 0 else number

    @staticmethod
    def format_number(value: float | int) -> str:
        """Render a stored number back into an input buffer (``100.0`` -> ``"100"``)."""
        number = float(value)
        if number.is_integer():
            return str(int(number))
        return str(number)
