"""Unit system enum and numeric helpers shared by the calculator and exporter."""

import math
from enum import Enum


class Units(Enum):
    INCH = "inch"
    MM = "mm"

    def to_mm(self, value: float) -> float:
        if self is Units.MM:
            return value
        return value * 25.4

    @property
    def document_unit(self) -> str:
        """Unit string written into exported tool and holder documents."""
        return "inches" if self is Units.INCH else "millimeters"


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round like the consuming CAM tool does: halves go towards +inf.

    Python's built-in ``round`` uses banker's rounding, which would make
    e.g. ``2.5`` export as ``2`` instead of ``3``.
    """
    scale = 10 ** decimals
    return math.floor(value * scale + 0.5) / scale


def round_int(value: float) -> int:
    return int(math.floor(value + 0.5))
