"""Spindle speed, feed and depth-of-cut recommendations.

Every function here is total: degenerate input (zero flutes, zero flute
length) produces a degenerate number, never an exception.  The library
validator is responsible for rejecting such results before export.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..config.defaults import CHIP_THINNING_CAP
from .machine import Machine
from .material import Material, MachineMaterialPreset, resolve_factors
from .tool import ToolGeometry, ToolType
from .units import round_half_up, round_int


@dataclass(frozen=True)
class CuttingParameters:
    """Recommended cutting data for one (tool, machine, material) triple."""

    rpm: int
    feed_mm_min: float
    plunge_feed_mm_min: float
    axial_depth_mm: float
    radial_depth_mm: float
    surface_speed_m_min: float  # what the clamped spindle actually delivers
    chip_load_mm: float


def calculate_rpm(surface_speed_m_min: float, diameter_mm: float) -> int:
    """N = Vc * 1000 / (pi * D)."""
    return round_int(surface_speed_m_min * 1000 / (math.pi * diameter_mm))


def calculate_feed_rate(rpm: float, chip_load_mm: float, flutes: int) -> int:
    """F = N * fz * z."""
    return round_int(rpm * chip_load_mm * flutes)


def calculate_surface_speed(rpm: float, diameter_mm: float) -> float:
    """Vc = pi * D * N / 1000."""
    return math.pi * diameter_mm * rpm / 1000


def calculate_cutting_parameters(
    geometry: ToolGeometry,
    tool_type: ToolType,
    machine: Machine,
    material: Material,
    preset: Optional[MachineMaterialPreset] = None,
) -> CuttingParameters:
    """Compute clamped cutting parameters for one tool in one material."""
    factors = resolve_factors(material, geometry, preset).factors
    diameter = geometry.diameter_mm

    if diameter:
        rpm = calculate_rpm(factors.surface_speed_m_min, diameter)
    else:
        # Zero diameter means unbounded speed; the machine limit wins.
        rpm = machine.max_rpm
    if factors.max_rpm:
        rpm = min(rpm, factors.max_rpm)
    rpm = machine.clamp_rpm(rpm)

    actual_surface_speed = round_half_up(calculate_surface_speed(rpm, diameter), 1)

    feed = min(
        calculate_feed_rate(rpm, factors.chip_load_mm, geometry.number_of_flutes),
        machine.feed_cap_xy,
    )
    plunge = min(round_int(feed * factors.plunge_rate_factor), machine.feed_cap_z)

    axial = round_half_up(diameter * factors.axial_depth_factor, 2)
    radial = round_half_up(diameter * factors.radial_depth_factor, 2)

    if tool_type.is_drill_like:
        # Drilling cycle: no lateral feed, full flute depth, peck hint.
        return CuttingParameters(
            rpm=rpm,
            feed_mm_min=plunge,
            plunge_feed_mm_min=plunge,
            axial_depth_mm=geometry.flute_length_mm,
            radial_depth_mm=diameter / 2,
            surface_speed_m_min=actual_surface_speed,
            chip_load_mm=factors.chip_load_mm,
        )

    if tool_type is ToolType.BALL_ENDMILL:
        # Effective diameter shrinks at shallow engagement.
        radial = round_half_up(radial * 0.5, 2)

    return CuttingParameters(
        rpm=rpm,
        feed_mm_min=feed,
        plunge_feed_mm_min=plunge,
        axial_depth_mm=axial,
        radial_depth_mm=radial,
        surface_speed_m_min=actual_surface_speed,
        chip_load_mm=factors.chip_load_mm,
    )


def calculate_chip_thinning_feed(
    base_feed: float,
    tool_diameter: float,
    radial_depth: float,
) -> float:
    """Feed compensated for radial chip thinning (adaptive/HSM paths).

    Below 50% radial engagement the real chip is thinner than the
    programmed chip load, so the feed can be raised by
    ``1 / sqrt(1 - (1 - 2*ae/D)**2)``, capped at ``CHIP_THINNING_CAP``.
    """
    if radial_depth >= tool_diameter / 2:
        return base_feed

    ratio = 1 - (2 * radial_depth) / tool_diameter
    denominator = 1 - ratio * ratio
    factor = 1 / math.sqrt(denominator) if denominator > 0 else math.inf
    return round_int(base_feed * min(factor, CHIP_THINNING_CAP))


def calculate_mrr(feed_rate: float, axial_depth: float, radial_depth: float) -> float:
    """Material removal rate in cm^3/min."""
    return axial_depth * radial_depth * feed_rate / 1000
