"""Default feeds, speeds, calibration constants and starter tools.

These are conservative starting points for carbide tooling; a
machine/material preset replaces them entirely when one exists.
"""

from __future__ import annotations

from types import MappingProxyType

# Exported library format version understood by the CAM application.
FORMAT_VERSION = 36

# Feed cap used when a machine does not declare one (mm/min).
DEFAULT_MAX_FEED_MM_MIN = 10000

# Fallback surface speed for a category missing from the table (m/min).
FALLBACK_SURFACE_SPEED_M_MIN = 100.0

# Factors used when no machine/material preset exists.
DEFAULT_AXIAL_DEPTH_FACTOR = 1.0
DEFAULT_RADIAL_DEPTH_FACTOR = 0.5
DEFAULT_PLUNGE_RATE_FACTOR = 0.5

# Calibration values.  Not derived from cutting physics; review with a
# machinist before changing.
RAMP_ANGLE_DEG = 2
RETRACT_FEED_MULTIPLIER = 2
SHOULDER_CLEARANCE_MM = 2.0
HOLDER_CLEARANCE_MM = 2.0

# Upper bound on the chip thinning feed multiplier.
CHIP_THINNING_CAP = 2.0

# Surface speed by material category (m/min), carbide.
DEFAULT_SURFACE_SPEEDS = MappingProxyType({
    "aluminum": 250.0,
    "brass": 150.0,
    "copper": 100.0,
    "plastic": 200.0,
    "wood": 300.0,
    "steel": 80.0,
    "stainless_steel": 50.0,
    "titanium": 40.0,
    "composite": 100.0,
    "cast_iron": 70.0,
})

# Chip load by tool diameter, aluminium baseline: (upper bound mm, mm/tooth).
DEFAULT_CHIP_LOADS = (
    (3.0, 0.025),
    (6.0, 0.05),
    (10.0, 0.075),
    (16.0, 0.1),
    (25.0, 0.125),
)
LARGE_TOOL_CHIP_LOAD = 0.15


def default_chip_load(diameter_mm: float) -> float:
    for upper, chip_load in DEFAULT_CHIP_LOADS:
        if diameter_mm < upper:
            return chip_load
    return LARGE_TOOL_CHIP_LOAD


def default_surface_speed(category: str) -> float:
    return DEFAULT_SURFACE_SPEEDS.get(category, FALLBACK_SURFACE_SPEED_M_MIN)


def build_default_tool_library():
    """Return an in-memory ToolLibrary with common starter tools.

    Targets a Tormach PCNC 770 and 6061 aluminium; tool numbers follow the
    category ranges.
    """
    from ..core.library import LibraryTool, ToolLibrary
    from ..core.material import Material, MaterialCategory
    from ..core.tool import Tool, ToolGeometry, ToolType
    from .machine_profiles import TormachModel, get_profile

    lib = ToolLibrary(
        name="Starter library",
        machine=get_profile(TormachModel.PCNC_770),
        materials=[
            Material(
                id="aluminum-6061",
                name="6061 Aluminum",
                category=MaterialCategory.ALUMINUM,
                chip_load_factor=1.0,
            ),
        ],
    )

    tools = [
        Tool(
            id="starter-em-12.7",
            name="1/2\" Flat Endmill 2-flute",
            tool_type=ToolType.FLAT_ENDMILL,
            geometry=ToolGeometry(
                diameter_mm=12.7,
                number_of_flutes=2,
                flute_length_mm=25.4,
                overall_length_mm=76.2,
            ),
            substrate="carbide",
        ),
        Tool(
            id="starter-em-6.35",
            name="1/4\" Flat Endmill 2-flute",
            tool_type=ToolType.FLAT_ENDMILL,
            geometry=ToolGeometry(
                diameter_mm=6.35,
                number_of_flutes=2,
                flute_length_mm=19.05,
                overall_length_mm=63.5,
            ),
            substrate="carbide",
        ),
        Tool(
            id="starter-bem-6.35",
            name="1/4\" Ball Endmill 2-flute",
            tool_type=ToolType.BALL_ENDMILL,
            geometry=ToolGeometry(
                diameter_mm=6.35,
                number_of_flutes=2,
                flute_length_mm=19.05,
                overall_length_mm=63.5,
                corner_radius_mm=3.175,
            ),
            substrate="carbide",
        ),
        Tool(
            id="starter-drill-6.8",
            name="6.8mm Jobber Drill",
            tool_type=ToolType.DRILL,
            geometry=ToolGeometry(
                diameter_mm=6.8,
                number_of_flutes=2,
                flute_length_mm=69.0,
                overall_length_mm=109.0,
                point_angle_deg=118.0,
            ),
            substrate="HSS",
        ),
    ]

    for t in tools:
        lib.add(LibraryTool(tool=t, tool_number=lib.assign_number(t)))

    return lib
