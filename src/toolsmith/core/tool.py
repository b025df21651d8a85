"""Cutting tool definitions.

All lengths are millimetres and all angles degrees.  Records coming from
inch-based sources are converted once, at load time, by ``from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields, replace
from enum import Enum
from typing import Optional

from ..config.defaults import HOLDER_CLEARANCE_MM, SHOULDER_CLEARANCE_MM
from .units import Units


@dataclass(frozen=True)
class _TypePolicy:
    drill_like: bool
    point_angle: bool
    fusion_type: str
    category_key: str


class ToolType(Enum):
    FLAT_ENDMILL = "flat_endmill"
    BALL_ENDMILL = "ball_endmill"
    BULL_ENDMILL = "bull_endmill"
    DRILL = "drill"
    SPOT_DRILL = "spot_drill"
    CHAMFER_MILL = "chamfer_mill"
    FACE_MILL = "face_mill"
    THREAD_MILL = "thread_mill"
    REAMER = "reamer"
    TAP = "tap"
    ENGRAVING_TOOL = "engraving_tool"

    @property
    def policy(self) -> _TypePolicy:
        return _POLICIES[self]

    @property
    def is_drill_like(self) -> bool:
        """Drilling-cycle tools: no lateral feed, drill-shaped presets."""
        return self.policy.drill_like

    @property
    def takes_point_angle(self) -> bool:
        return self.policy.point_angle

    @property
    def fusion_type(self) -> str:
        return self.policy.fusion_type

    @property
    def category_key(self) -> str:
        return self.policy.category_key


# Single source of truth for every tool-type dependent decision.
_POLICIES: dict[ToolType, _TypePolicy] = {
    ToolType.FLAT_ENDMILL: _TypePolicy(False, False, "flat end mill", "endmill"),
    ToolType.BALL_ENDMILL: _TypePolicy(False, False, "ball end mill", "endmill"),
    ToolType.BULL_ENDMILL: _TypePolicy(False, False, "bull nose end mill", "endmill"),
    ToolType.DRILL: _TypePolicy(True, True, "drill", "drill"),
    ToolType.SPOT_DRILL: _TypePolicy(True, True, "spot drill", "drill"),
    ToolType.CHAMFER_MILL: _TypePolicy(False, False, "chamfer mill", "chamfer"),
    ToolType.FACE_MILL: _TypePolicy(False, False, "face mill", "facemill"),
    ToolType.THREAD_MILL: _TypePolicy(False, False, "thread mill", "tap"),
    ToolType.REAMER: _TypePolicy(True, False, "reamer", "reamer"),
    ToolType.TAP: _TypePolicy(True, False, "tap right hand", "tap"),
    ToolType.ENGRAVING_TOOL: _TypePolicy(False, False, "tapered mill", "specialty"),
}

# Geometry fields that hold lengths (converted between unit systems).
_LENGTH_FIELDS = (
    "diameter_mm",
    "overall_length_mm",
    "flute_length_mm",
    "shank_diameter_mm",
    "corner_radius_mm",
    "neck_diameter_mm",
    "neck_length_mm",
    "shoulder_length_mm",
    "body_length_mm",
    "length_below_holder_mm",
    "tip_length_mm",
)


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class ToolGeometry:
    """Physical dimensions of one cutting tool."""

    diameter_mm: float
    number_of_flutes: int = 0
    overall_length_mm: float = 0.0
    flute_length_mm: float = 0.0
    shank_diameter_mm: Optional[float] = None
    corner_radius_mm: Optional[float] = None
    point_angle_deg: Optional[float] = None
    helix_angle_deg: Optional[float] = None
    neck_diameter_mm: Optional[float] = None
    neck_length_mm: Optional[float] = None
    shoulder_length_mm: Optional[float] = None
    body_length_mm: Optional[float] = None
    length_below_holder_mm: Optional[float] = None
    tip_length_mm: Optional[float] = None

    @property
    def radius(self) -> float:
        return self.diameter_mm / 2.0

    @property
    def shank_diameter(self) -> float:
        return self.shank_diameter_mm or self.diameter_mm

    @property
    def shoulder_length(self) -> Optional[float]:
        """Explicit shoulder length, else flute length plus clearance."""
        if self.shoulder_length_mm is not None:
            return self.shoulder_length_mm
        if self.flute_length_mm:
            return self.flute_length_mm + SHOULDER_CLEARANCE_MM
        return None

    @property
    def length_below_holder(self) -> Optional[float]:
        if self.length_below_holder_mm is not None:
            return self.length_below_holder_mm
        shoulder = self.shoulder_length
        if shoulder is not None:
            return shoulder + HOLDER_CLEARANCE_MM
        return None

    @property
    def body_length(self) -> float:
        """Stick-out used for the body length and assembly gauge length."""
        if self.body_length_mm is not None:
            return self.body_length_mm
        below = self.length_below_holder
        if below is not None:
            return below
        if self.flute_length_mm:
            return self.flute_length_mm * 1.2
        return self.overall_length_mm * 0.6

    def to_dict(self) -> dict:
        return _drop_none(asdict(self))

    @classmethod
    def from_dict(cls, d: dict, units: Units = Units.MM) -> ToolGeometry:
        known = {f.name for f in fields(cls)}
        d = {k: v for k, v in d.items() if k in known}
        if "diameter_mm" not in d:
            raise ValueError("Tool geometry requires 'diameter_mm'")
        for name in _LENGTH_FIELDS:
            if d.get(name) is not None:
                d[name] = units.to_mm(float(d[name]))
        return cls(**d)


@dataclass
class ShaftSegment:
    """One conical section of a tool's shaft profile."""

    height_mm: float
    upper_diameter_mm: float
    lower_diameter_mm: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict, units: Units = Units.MM) -> ShaftSegment:
        missing = {"height_mm", "upper_diameter_mm", "lower_diameter_mm"} - d.keys()
        if missing:
            raise ValueError(f"Shaft segment missing {sorted(missing)}")
        return cls(
            height_mm=units.to_mm(float(d["height_mm"])),
            upper_diameter_mm=units.to_mm(float(d["upper_diameter_mm"])),
            lower_diameter_mm=units.to_mm(float(d["lower_diameter_mm"])),
        )


@dataclass
class PostProcessSettings:
    """Per-placement overrides for the post-processor block."""

    break_control: Optional[bool] = None
    comment: Optional[str] = None
    diameter_offset: Optional[int] = None
    length_offset: Optional[int] = None
    live: Optional[bool] = None
    manual_tool_change: Optional[bool] = None
    turret: Optional[int] = None

    def merged(self, other: Optional[PostProcessSettings]) -> PostProcessSettings:
        """Return a copy where fields set on *other* win."""
        if other is None:
            return replace(self)
        updates = {k: v for k, v in asdict(other).items() if v is not None}
        return replace(self, **updates)

    def to_dict(self) -> dict:
        return _drop_none(asdict(self))

    @classmethod
    def from_dict(cls, d: dict) -> PostProcessSettings:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


@dataclass
class Tool:
    """A named cutting tool as stored in the user's catalogue."""

    id: str
    name: str
    tool_type: ToolType
    geometry: ToolGeometry
    vendor: Optional[str] = None
    product_id: Optional[str] = None
    product_url: Optional[str] = None
    internal_reference: Optional[str] = None
    coating: Optional[str] = None
    substrate: Optional[str] = None
    notes: Optional[str] = None
    shaft_segments: list[ShaftSegment] = field(default_factory=list)
    default_holder_id: Optional[str] = None
    post_process: Optional[PostProcessSettings] = None

    @property
    def radius(self) -> float:
        return self.geometry.radius

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "tool_type": self.tool_type.value,
            "geometry": self.geometry.to_dict(),
            "vendor": self.vendor,
            "product_id": self.product_id,
            "product_url": self.product_url,
            "internal_reference": self.internal_reference,
            "coating": self.coating,
            "substrate": self.substrate,
            "notes": self.notes,
            "default_holder_id": self.default_holder_id,
        }
        if self.shaft_segments:
            d["shaft_segments"] = [s.to_dict() for s in self.shaft_segments]
        if self.post_process is not None:
            d["post_process"] = self.post_process.to_dict()
        return _drop_none(d)

    @classmethod
    def from_dict(cls, d: dict, units: Units = Units.MM) -> Tool:
        d = dict(d)
        missing = {"id", "name"} - d.keys()
        if missing:
            raise ValueError(f"Tool record missing {sorted(missing)}")
        try:
            d["tool_type"] = ToolType(d["tool_type"])
        except (KeyError, ValueError) as exc:
            raise ValueError(
                f"Tool {d.get('name', '?')!r}: unknown tool type {d.get('tool_type')!r}"
            ) from exc
        d["geometry"] = ToolGeometry.from_dict(d.get("geometry") or {}, units)
        d["shaft_segments"] = [
            ShaftSegment.from_dict(s, units) for s in d.get("shaft_segments") or []
        ]
        if d.get("post_process") is not None:
            d["post_process"] = PostProcessSettings.from_dict(d["post_process"])
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})
