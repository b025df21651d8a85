"""Tool-number ranges per tool category."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .tool import ToolType


@dataclass(frozen=True)
class ToolCategory:
    key: str
    name: str
    description: str
    min: int
    max: int

    def __contains__(self, number: int) -> bool:
        return self.min <= number <= self.max


TOOL_CATEGORIES: dict[str, ToolCategory] = {
    c.key: c for c in (
        ToolCategory("temporary", "One-offs/Temporary", "Temporary or one-off tools", 1, 98),
        ToolCategory("probe", "Probe", "Probing tools", 99, 99),
        ToolCategory("drill", "Drills", "Drilling tools", 100, 199),
        ToolCategory("endmill", "End Mills", "End milling tools", 200, 299),
        ToolCategory("facemill", "Face Mills", "Face milling tools", 300, 399),
        ToolCategory("tap", "Taps", "Tapping and thread milling tools", 400, 499),
        ToolCategory("reamer", "Reamers", "Reaming tools", 500, 599),
        ToolCategory("chamfer", "Chamfer/Countersink", "Chamfer and countersink tools", 600, 699),
        ToolCategory("specialty", "Specialty/Engraving", "Specialty and engraving tools", 700, 799),
    )
}


def category_for(tool_type: ToolType) -> ToolCategory:
    return TOOL_CATEGORIES.get(tool_type.category_key, TOOL_CATEGORIES["temporary"])


def next_tool_number(tool_type: ToolType, used: Iterable[int]) -> Optional[int]:
    """First free number in the category range, or None if it is full."""
    category = category_for(tool_type)
    taken = set(used)
    for n in range(category.min, category.max + 1):
        if n not in taken:
            return n
    return None
