"""Workpiece materials, machine/material presets and factor resolution."""

from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from enum import Enum
from numbers import Real
from typing import Optional, Union

from ..config import defaults
from .tool import ToolGeometry


def _positive(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and value > 0


class MaterialCategory(Enum):
    ALUMINUM = "aluminum"
    STEEL = "steel"
    STAINLESS_STEEL = "stainless_steel"
    TITANIUM = "titanium"
    BRASS = "brass"
    COPPER = "copper"
    PLASTIC = "plastic"
    WOOD = "wood"
    COMPOSITE = "composite"
    CAST_IRON = "cast_iron"


@dataclass
class Material:
    """A cutting target.

    ``chip_load_factor`` scales the aluminium baseline: below 1.0 for harder
    materials, above 1.0 for softer ones.
    """

    id: str
    name: str
    category: MaterialCategory
    chip_load_factor: float = 1.0
    surface_speed_min_m_min: Optional[float] = None
    surface_speed_max_m_min: Optional[float] = None
    hardness_hrc_min: Optional[float] = None
    hardness_hrc_max: Optional[float] = None
    hardness_brinell: Optional[float] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["category"] = self.category.value
        return {k: v for k, v in d.items() if v is not None}

    @classmethod
    def from_dict(cls, d: dict) -> Material:
        known = {f.name for f in fields(cls)}
        d = {k: v for k, v in d.items() if k in known}
        missing = {"id", "name"} - d.keys()
        if missing:
            raise ValueError(f"Material record missing {sorted(missing)}")
        try:
            d["category"] = MaterialCategory(d["category"])
        except (KeyError, ValueError) as exc:
            raise ValueError(
                f"Material {d.get('name', '?')!r}: unknown category {d.get('category')!r}"
            ) from exc
        return cls(**d)


@dataclass
class MachineMaterialPreset:
    """Cutting data for one (machine, material) pair.

    When present it replaces every built-in default for that pair.
    Depth factors are multiples of the tool diameter.
    """

    machine_id: str
    material_id: str
    surface_speed_m_min: float
    chip_load_mm: float
    axial_depth_factor: float = 1.0
    radial_depth_factor: float = 0.5
    plunge_rate_factor: float = 0.5
    max_rpm_override: Optional[int] = None
    coolant_type: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not _positive(self.surface_speed_m_min):
            raise ValueError(
                f"Preset {self.machine_id}/{self.material_id}: "
                f"surface speed must be positive, got {self.surface_speed_m_min}"
            )
        if not _positive(self.chip_load_mm):
            raise ValueError(
                f"Preset {self.machine_id}/{self.material_id}: "
                f"chip load must be positive, got {self.chip_load_mm}"
            )

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, d: dict) -> MachineMaterialPreset:
        known = {f.name for f in fields(cls)}
        d = {k: v for k, v in d.items() if k in known}
        required = {"machine_id", "material_id", "surface_speed_m_min", "chip_load_mm"}
        missing = required - d.keys()
        if missing:
            raise ValueError(f"Preset record missing {sorted(missing)}")
        return cls(**d)


@dataclass(frozen=True)
class CuttingFactors:
    """The values the calculator starts from, before any clamping."""

    surface_speed_m_min: float
    chip_load_mm: float
    axial_depth_factor: float
    radial_depth_factor: float
    plunge_rate_factor: float
    max_rpm: Optional[int] = None


@dataclass(frozen=True)
class Defaulted:
    """Factors taken from the built-in tables, scaled by the material."""

    factors: CuttingFactors


@dataclass(frozen=True)
class Overridden:
    """Factors taken verbatim from a machine/material preset."""

    factors: CuttingFactors
    preset: MachineMaterialPreset


FactorSource = Union[Defaulted, Overridden]


def resolve_factors(
    material: Material,
    geometry: ToolGeometry,
    preset: Optional[MachineMaterialPreset] = None,
) -> FactorSource:
    """Pick the factor set for one (tool, material) pair.

    A preset is taken as a whole; it is never merged with defaults.
    """
    if preset is not None:
        return Overridden(
            factors=CuttingFactors(
                surface_speed_m_min=preset.surface_speed_m_min,
                chip_load_mm=preset.chip_load_mm,
                axial_depth_factor=preset.axial_depth_factor,
                radial_depth_factor=preset.radial_depth_factor,
                plunge_rate_factor=preset.plunge_rate_factor,
                max_rpm=preset.max_rpm_override or None,
            ),
            preset=preset,
        )

    surface_speed = (
        material.surface_speed_max_m_min
        or defaults.default_surface_speed(material.category.value)
    )
    factor = material.chip_load_factor
    return Defaulted(
        factors=CuttingFactors(
            surface_speed_m_min=surface_speed * factor,
            chip_load_mm=defaults.default_chip_load(geometry.diameter_mm) * factor,
            axial_depth_factor=defaults.DEFAULT_AXIAL_DEPTH_FACTOR,
            radial_depth_factor=defaults.DEFAULT_RADIAL_DEPTH_FACTOR,
            plunge_rate_factor=defaults.DEFAULT_PLUNGE_RATE_FACTOR,
        ),
    )
