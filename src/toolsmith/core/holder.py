"""Tool holders: segment geometry and collet compatibility."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from typing import Iterable, Optional

from .tool import ToolGeometry
from .units import Units


@dataclass
class HolderSegment:
    """A conical section, listed from the spindle face toward the tool.

    ``lower_diameter`` is the spindle-side end, ``upper_diameter`` the
    tool-side end.
    """

    height: float
    lower_diameter: float
    upper_diameter: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict, units: Units = Units.MM) -> HolderSegment:
        missing = {"height", "lower_diameter", "upper_diameter"} - d.keys()
        if missing:
            raise ValueError(f"Holder segment missing {sorted(missing)}")
        return cls(
            height=units.to_mm(float(d["height"])),
            lower_diameter=units.to_mm(float(d["lower_diameter"])),
            upper_diameter=units.to_mm(float(d["upper_diameter"])),
        )


@dataclass
class ToolHolder:
    """Holder geometry as exported alongside a tool."""

    id: str
    name: str
    gauge_length_mm: float
    segments: list[HolderSegment] = field(default_factory=list)
    taper_type: Optional[str] = None
    collet_type: Optional[str] = None
    collet_min_mm: Optional[float] = None
    collet_max_mm: Optional[float] = None
    vendor: Optional[str] = None
    product_id: Optional[str] = None
    product_url: Optional[str] = None
    description: Optional[str] = None

    def segment_height_total(self) -> float:
        return sum(s.height for s in self.segments)

    def accepts_shank(self, shank_diameter_mm: float) -> bool:
        """True if the collet range admits *shank_diameter_mm*.

        A missing bound places no restriction on that side.
        """
        if self.collet_min_mm and shank_diameter_mm < self.collet_min_mm:
            return False
        if self.collet_max_mm and shank_diameter_mm > self.collet_max_mm:
            return False
        return True

    def to_dict(self) -> dict:
        d = asdict(self)
        d["segments"] = [s.to_dict() for s in self.segments]
        return {k: v for k, v in d.items() if v is not None}

    @classmethod
    def from_dict(cls, d: dict, units: Units = Units.MM) -> ToolHolder:
        known = {f.name for f in fields(cls)}
        d = {k: v for k, v in d.items() if k in known}
        missing = {"id", "name", "gauge_length_mm"} - d.keys()
        if missing:
            raise ValueError(f"Holder record missing {sorted(missing)}")
        d["gauge_length_mm"] = units.to_mm(float(d["gauge_length_mm"]))
        d["segments"] = [HolderSegment.from_dict(s, units) for s in d.get("segments") or []]
        for key in ("collet_min_mm", "collet_max_mm"):
            if d.get(key) is not None:
                d[key] = units.to_mm(float(d[key]))
        return cls(**d)


def compatible_holders(
    geometry: ToolGeometry,
    holders: Iterable[ToolHolder],
) -> tuple[list[ToolHolder], list[ToolHolder]]:
    """Split *holders* into (compatible, incompatible) for the tool's shank."""
    shank = geometry.shank_diameter
    compatible: list[ToolHolder] = []
    incompatible: list[ToolHolder] = []
    for holder in holders:
        (compatible if holder.accepts_shank(shank) else incompatible).append(holder)
    return compatible, incompatible
