"""Library validation before export.

:func:`validate_library` is the export gate: it walks a generated document
and reports structural defects.  :func:`check_assembly` looks at the
source library and reports advisory problems that never block export.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Optional

from ..core.library import ToolLibrary
from ..core.machine import Machine

# Allowed mismatch between summed holder segment heights and gauge length (mm).
GAUGE_LENGTH_TOLERANCE_MM = 0.5


@dataclass
class LibraryValidation:
    """Result of validating a generated library document."""

    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0


@dataclass
class ValidationIssue:
    """A single advisory problem; never blocks export."""

    message: str
    tool_number: Optional[int] = None


@dataclass
class ValidationResult:
    """Advisory issues found by :func:`check_assembly`."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return len(self.issues) == 0


def _positive(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and value > 0


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def validate_library(document: Any) -> LibraryValidation:
    """Check a generated library document.

    Checks performed (all of them, no early exit):
    - Library has at least one tool
    - Every tool has a positive diameter and a type
    - Every tool has at least one preset
    - Every preset has a positive RPM and a positive feed (``v_f`` for
      endmill presets, ``v_f_plunge`` for drill presets)
    """
    result = LibraryValidation()
    tools = _as_list(_as_dict(document).get("data"))

    if not tools:
        result.errors.append("Library contains no tools")

    for i, raw_tool in enumerate(tools, start=1):
        tool = _as_dict(raw_tool)

        if not _positive(_as_dict(tool.get("geometry")).get("DC")):
            result.errors.append(f"Tool {i}: Invalid or missing diameter")

        if not tool.get("type"):
            result.errors.append(f"Tool {i}: Missing tool type")

        presets = _as_list(_as_dict(tool.get("start-values")).get("presets"))
        if not presets:
            result.errors.append(f"Tool {i}: No cutting presets defined")

        for raw_preset in presets:
            preset = _as_dict(raw_preset)
            name = preset.get("name", "")
            if not _positive(preset.get("n")):
                result.errors.append(f'Tool {i}, preset "{name}": Invalid RPM')
            if not (_positive(preset.get("v_f")) or _positive(preset.get("v_f_plunge"))):
                result.errors.append(f'Tool {i}, preset "{name}": Invalid feed rate')

    return result


def check_assembly(library: ToolLibrary, machine: Optional[Machine] = None) -> ValidationResult:
    """Advisory checks on tool/holder/machine combinations.

    Checks performed:
    - Holder collet range accepts the tool shank
    - Holder segment heights add up to its gauge length
    - Tool diameter within the machine's maximum tool diameter
    """
    result = ValidationResult()
    machine = machine or library.machine

    for placement in library.list_tools():
        tool = placement.tool
        number = placement.tool_number
        holder = placement.holder

        if holder is not None:
            shank = tool.geometry.shank_diameter
            if not holder.accepts_shank(shank):
                result.issues.append(ValidationIssue(
                    f"T{number}: shank {shank:g} mm outside collet range of "
                    f"holder {holder.name!r}",
                    number,
                ))
            total = holder.segment_height_total()
            if holder.segments and abs(total - holder.gauge_length_mm) > GAUGE_LENGTH_TOLERANCE_MM:
                result.issues.append(ValidationIssue(
                    f"T{number}: holder {holder.name!r} segments total {total:g} mm "
                    f"but gauge length is {holder.gauge_length_mm:g} mm",
                    number,
                ))

        if (
            machine is not None
            and machine.max_tool_diameter_mm
            and tool.geometry.diameter_mm > machine.max_tool_diameter_mm
        ):
            result.issues.append(ValidationIssue(
                f"T{number}: diameter {tool.geometry.diameter_mm:g} mm exceeds "
                f"machine maximum ({machine.max_tool_diameter_mm:g} mm)",
                number,
            ))

    return result
