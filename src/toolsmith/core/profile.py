"""Holder and tool-assembly silhouettes.

Profiles are half-sections in the (radius, z) plane: x is the distance
from the spindle axis, z grows from the spindle face toward the tool tip.
Revolving a profile about the z axis gives the solid it describes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon, box
from shapely.ops import unary_union
from shapely.validation import make_valid

from .holder import ToolHolder
from .tool import ToolGeometry


def ensure_polygon(geom) -> Polygon | MultiPolygon:
    """Return a valid Polygon or MultiPolygon, or empty Polygon on failure."""
    if geom is None or geom.is_empty:
        return Polygon()
    if not geom.is_valid:
        geom = make_valid(geom)
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    if isinstance(geom, GeometryCollection):
        polys = [g for g in geom.geoms if isinstance(g, (Polygon, MultiPolygon))]
        if polys:
            return unary_union(polys)
    return Polygon()


def holder_length(holder: ToolHolder) -> float:
    """Axial length of the holder body (segments, else gauge length)."""
    return holder.segment_height_total() or holder.gauge_length_mm


def holder_profile(holder: ToolHolder) -> Polygon | MultiPolygon:
    """Half-silhouette of the holder's stacked conical segments."""
    if not holder.segments:
        return Polygon()

    heights = np.array([s.height for s in holder.segments], dtype=float)
    z = np.concatenate([[0.0], np.cumsum(heights)])

    outline: list[tuple[float, float]] = [(0.0, 0.0)]
    for i, seg in enumerate(holder.segments):
        outline.append((seg.lower_diameter / 2.0, float(z[i])))
        outline.append((seg.upper_diameter / 2.0, float(z[i + 1])))
    outline.append((0.0, float(z[-1])))

    return ensure_polygon(Polygon(outline))


def tool_profile(geometry: ToolGeometry, z_start: float = 0.0) -> Polygon | MultiPolygon:
    """Half-silhouette of the tool's exposed length, starting at *z_start*.

    The fluted portion uses the cutting radius, the rest the shank radius.
    """
    stickout = geometry.body_length
    if stickout <= 0 or geometry.diameter_mm <= 0:
        return Polygon()

    flute = min(geometry.flute_length_mm or 0.0, stickout)
    tip = z_start + stickout
    parts = [box(0.0, tip - flute, geometry.radius, tip)] if flute > 0 else []
    if stickout > flute:
        parts.append(box(0.0, z_start, geometry.shank_diameter / 2.0, tip - flute))
    return ensure_polygon(unary_union(parts))


def assembly_profile(
    holder: ToolHolder,
    geometry: ToolGeometry,
) -> Polygon | MultiPolygon:
    """Holder silhouette with the tool hanging below it."""
    return ensure_polygon(unary_union([
        holder_profile(holder),
        tool_profile(geometry, z_start=holder_length(holder)),
    ]))


@dataclass
class AssemblyEnvelope:
    """Bounding figures of a holder + tool assembly."""

    max_diameter: float
    total_length: float
    stickout: float
    swept_volume_cm3: float


def _revolved_volume_mm3(profile: Polygon | MultiPolygon) -> float:
    # Pappus: V = 2*pi * (centroid distance from axis) * area
    if profile.is_empty:
        return 0.0
    return 2.0 * math.pi * profile.centroid.x * profile.area


def assembly_envelope(
    holder: ToolHolder,
    geometry: ToolGeometry,
    profile: Optional[Polygon | MultiPolygon] = None,
) -> AssemblyEnvelope:
    if profile is None:
        profile = assembly_profile(holder, geometry)
    if profile.is_empty:
        return AssemblyEnvelope(0.0, 0.0, 0.0, 0.0)

    _, _, max_r, max_z = profile.bounds
    return AssemblyEnvelope(
        max_diameter=2.0 * max_r,
        total_length=max_z,
        stickout=geometry.body_length,
        swept_volume_cm3=_revolved_volume_mm3(profile) / 1000.0,
    )
