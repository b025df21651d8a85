"""CNC machine operating envelope."""

from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from typing import Optional

from ..config.defaults import DEFAULT_MAX_FEED_MM_MIN


@dataclass
class Machine:
    """Spindle and feed limits every computed parameter must respect."""

    id: str
    name: str
    min_rpm: int
    max_rpm: int
    max_feed_xy_mm_min: Optional[float] = None
    max_feed_z_mm_min: Optional[float] = None
    spindle_power_kw: Optional[float] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    max_tool_diameter_mm: Optional[float] = None

    @property
    def feed_cap_xy(self) -> float:
        return self.max_feed_xy_mm_min or DEFAULT_MAX_FEED_MM_MIN

    @property
    def feed_cap_z(self) -> float:
        return self.max_feed_z_mm_min or self.feed_cap_xy

    def clamp_rpm(self, rpm: int) -> int:
        return max(self.min_rpm, min(rpm, self.max_rpm))

    def __str__(self) -> str:
        return (
            f"{self.name}  "
            f"{self.min_rpm}–{self.max_rpm} RPM  "
            f"XY {self.feed_cap_xy:g} / Z {self.feed_cap_z:g} mm/min"
        )

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, d: dict) -> Machine:
        known = {f.name for f in fields(cls)}
        d = {k: v for k, v in d.items() if k in known}
        missing = {"id", "name", "min_rpm", "max_rpm"} - d.keys()
        if missing:
            raise ValueError(f"Machine record missing {sorted(missing)}")
        return cls(**d)
