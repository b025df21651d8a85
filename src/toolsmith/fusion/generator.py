"""Tool library document generation for the CAM application's ``.tools`` format.

Every emitted object goes through :func:`writer.ordered` with one of the key
tuples below: the consumer parses key order, not just key names.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..config.defaults import FORMAT_VERSION, RAMP_ANGLE_DEG, RETRACT_FEED_MULTIPLIER
from ..core.feeds_speeds import CuttingParameters, calculate_cutting_parameters
from ..core.holder import ToolHolder
from ..core.library import LibraryTool, ProductIdSource, ToolLibrary
from ..core.machine import Machine
from ..core.material import Material, MachineMaterialPreset
from ..core.tool import PostProcessSettings, Tool, ToolGeometry, ToolType
from ..core.units import Units, round_half_up, round_int
from . import writer

TOOL_KEYS = (
    "BMC",
    "description",
    "expressions",
    "geometry",
    "guid",
    "holder",
    "last_modified",
    "post-process",
    "product-id",
    "product-link",
    "reference_guid",
    "start-values",
    "type",
    "unit",
    "vendor",
)

GEOMETRY_KEYS = (
    "DC",
    "CSP",
    "HAND",
    "NOF",
    "LCF",
    "OAL",
    "SFDM",
    "RE",
    "DCX",
    "TA",
    "upper-radius",
    "SIG",
    "HA",
    "shoulder-length",
    "shoulder-diameter",
    "LB",
    "assemblyGaugeLength",
)

POST_PROCESS_KEYS = (
    "break-control",
    "comment",
    "diameter-offset",
    "length-offset",
    "live",
    "manual-tool-change",
    "number",
    "turret",
)

HOLDER_KEYS = (
    "description",
    "expressions",
    "gaugeLength",
    "guid",
    "last_modified",
    "product-id",
    "product-link",
    "reference_guid",
    "segments",
    "type",
    "unit",
    "vendor",
)

SEGMENT_KEYS = ("height", "lower-diameter", "upper-diameter")

PRESET_MATERIAL_KEYS = ("category", "query", "use-hardness")

ENDMILL_PRESET_KEYS = (
    "f_n",
    "f_z",
    "guid",
    "material",
    "n",
    "n_ramp",
    "name",
    "ramp-angle",
    "stepdown",
    "stepover",
    "tool-coolant",
    "use-stepdown",
    "use-stepover",
    "v_c",
    "v_f",
    "v_f_leadIn",
    "v_f_leadOut",
    "v_f_plunge",
    "v_f_ramp",
    "v_f_transition",
)

DRILL_PRESET_KEYS = (
    "guid",
    "material",
    "n",
    "name",
    "tool-coolant",
    "use-feed-per-revolution",
    "v_c",
    "v_f_plunge",
    "v_f_retract",
)

UNIT = Units.MM.document_unit


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


def map_geometry(
    geometry: ToolGeometry,
    tool_type: ToolType,
    holder_gauge_length: Optional[float] = None,
) -> dict:
    """Map tool geometry to the exported ``geometry`` block."""
    endmill = not tool_type.is_drill_like
    body_length = round_half_up(geometry.body_length, 2)
    shoulder = geometry.shoulder_length

    values = {
        "DC": geometry.diameter_mm,
        "CSP": False,
        "HAND": True,
        "NOF": geometry.number_of_flutes or None,
        "LCF": geometry.flute_length_mm or None,
        "OAL": geometry.overall_length_mm or None,
        "SFDM": geometry.shank_diameter,
        "SIG": None,
        "HA": None,
        "shoulder-length": shoulder,
        "LB": body_length,
    }

    if endmill:
        # Endmill blocks always carry these, even when trivially zero.
        values["RE"] = geometry.corner_radius_mm if geometry.corner_radius_mm is not None else 0
        values["DCX"] = geometry.diameter_mm
        values["TA"] = 0
        values["upper-radius"] = 0
        if shoulder is not None:
            values["shoulder-diameter"] = geometry.diameter_mm
        if geometry.helix_angle_deg:
            values["HA"] = geometry.helix_angle_deg
    elif geometry.corner_radius_mm is not None:
        values["RE"] = geometry.corner_radius_mm

    if tool_type.takes_point_angle and geometry.point_angle_deg:
        values["SIG"] = geometry.point_angle_deg

    if holder_gauge_length:
        values["assemblyGaugeLength"] = round_half_up(holder_gauge_length + body_length, 2)

    return writer.ordered(GEOMETRY_KEYS, values)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


def build_tool_expressions(
    tool: Tool,
    tool_number: int,
    holder: Optional[ToolHolder] = None,
) -> dict[str, str]:
    """Parametric metadata strings read by the CAM application."""
    geom = tool.geometry
    expressions: dict[str, str] = {}

    if holder is not None:
        expressions["holder_description"] = writer.quote(holder.name)
        if holder.product_id:
            expressions["holder_productId"] = writer.quote(holder.product_id)
        if holder.product_url:
            expressions["holder_productLink"] = writer.quote(holder.product_url)
        if holder.vendor:
            expressions["holder_vendor"] = writer.quote(holder.vendor)

    expressions["tool_bodyLength"] = writer.length_expr(round_half_up(geom.body_length, 2))
    expressions["tool_description"] = writer.quote(tool.name)
    expressions["tool_diameter"] = writer.length_expr(geom.diameter_mm)
    if geom.flute_length_mm:
        expressions["tool_fluteLength"] = writer.length_expr(geom.flute_length_mm)
    if tool.substrate:
        expressions["tool_material"] = writer.quote(tool.substrate)
    expressions["tool_number"] = str(tool_number)
    if geom.overall_length_mm:
        expressions["tool_overallLength"] = writer.length_expr(geom.overall_length_mm)
    if tool.product_id:
        expressions["tool_productId"] = writer.quote(tool.product_id)
    if tool.product_url:
        expressions["tool_productLink"] = writer.quote(tool.product_url)
    expressions["tool_shaftDiameter"] = writer.length_expr(geom.shank_diameter)
    if geom.shoulder_length is not None:
        expressions["tool_shoulderLength"] = writer.length_expr(geom.shoulder_length)
    if tool.vendor:
        expressions["tool_vendor"] = writer.quote(tool.vendor)

    return expressions


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------


def _preset_material() -> dict:
    # Matches any material; hardness matching is not used.
    return writer.ordered(
        PRESET_MATERIAL_KEYS,
        {"category": "all", "query": "", "use-hardness": False},
    )


def create_endmill_preset(
    material: Material,
    params: CuttingParameters,
    coolant: str,
    number_of_flutes: int,
) -> dict:
    # Sub-operation feeds are not modelled separately; they follow v_f.
    return writer.ordered(ENDMILL_PRESET_KEYS, {
        "f_n": params.chip_load_mm * number_of_flutes,
        "f_z": params.chip_load_mm,
        "guid": writer.generate_guid(),
        "material": _preset_material(),
        "n": params.rpm,
        "n_ramp": params.rpm,
        "name": material.name,
        "ramp-angle": RAMP_ANGLE_DEG,
        "stepdown": params.axial_depth_mm,
        "stepover": params.radial_depth_mm,
        "tool-coolant": writer.map_coolant(coolant),
        "use-stepdown": True,
        "use-stepover": True,
        "v_c": params.surface_speed_m_min,
        "v_f": params.feed_mm_min,
        "v_f_leadIn": params.feed_mm_min,
        "v_f_leadOut": params.feed_mm_min,
        "v_f_plunge": params.plunge_feed_mm_min,
        "v_f_ramp": params.feed_mm_min,
        "v_f_transition": params.feed_mm_min,
    })


def create_drill_preset(
    material: Material,
    params: CuttingParameters,
    coolant: str,
) -> dict:
    return writer.ordered(DRILL_PRESET_KEYS, {
        "guid": writer.generate_guid(),
        "material": _preset_material(),
        "n": params.rpm,
        "name": material.name,
        "tool-coolant": writer.map_coolant(coolant),
        "use-feed-per-revolution": False,
        "v_c": params.surface_speed_m_min,
        "v_f_plunge": params.plunge_feed_mm_min,
        "v_f_retract": round_int(params.plunge_feed_mm_min * RETRACT_FEED_MULTIPLIER),
    })


def create_preset(
    material: Material,
    params: CuttingParameters,
    coolant: Optional[str],
    tool_type: ToolType,
    number_of_flutes: int,
) -> dict:
    """Drill-like tools get drill presets, everything else endmill presets."""
    coolant = coolant or "disabled"
    if tool_type.is_drill_like:
        return create_drill_preset(material, params, coolant)
    return create_endmill_preset(material, params, coolant, number_of_flutes)


# ---------------------------------------------------------------------------
# Holder
# ---------------------------------------------------------------------------


def map_holder(holder: ToolHolder) -> dict:
    holder_guid = writer.generate_guid()

    expressions = {
        "tool_description": writer.quote(holder.name),
        "tool_holderGaugeLength": " + ".join(
            f"segment_{i}_height" for i in range(1, len(holder.segments) + 1)
        ),
    }
    if holder.product_id:
        expressions["tool_productId"] = writer.quote(holder.product_id)
    if holder.product_url:
        expressions["tool_productLink"] = writer.quote(holder.product_url)
    if holder.vendor:
        expressions["tool_vendor"] = writer.quote(holder.vendor)

    return writer.ordered(HOLDER_KEYS, {
        "description": holder.name,
        "expressions": expressions,
        "gaugeLength": holder.gauge_length_mm,
        "guid": holder_guid,
        "last_modified": writer.timestamp_ms(),
        "product-id": holder.product_id,
        "product-link": holder.product_url,
        "reference_guid": holder_guid,
        "segments": [
            writer.ordered(SEGMENT_KEYS, {
                "height": s.height,
                "lower-diameter": s.lower_diameter,
                "upper-diameter": s.upper_diameter,
            })
            for s in holder.segments
        ],
        "type": "holder",
        "unit": UNIT,
        "vendor": holder.vendor,
    })


# ---------------------------------------------------------------------------
# Tool + library
# ---------------------------------------------------------------------------


def _post_process_block(
    tool: Tool,
    tool_number: int,
    settings: Optional[PostProcessSettings],
) -> dict:
    pp = settings or PostProcessSettings()
    comment = pp.comment if pp.comment is not None else tool.notes
    return writer.ordered(POST_PROCESS_KEYS, {
        "break-control": bool(pp.break_control),
        "comment": comment if comment is not None else "",
        "diameter-offset": pp.diameter_offset if pp.diameter_offset is not None else tool_number,
        "length-offset": pp.length_offset if pp.length_offset is not None else tool_number,
        "live": pp.live if pp.live is not None else True,
        "manual-tool-change": bool(pp.manual_tool_change),
        "number": tool_number,
        "turret": pp.turret if pp.turret is not None else 0,
    })


def generate_tool(
    tool: Tool,
    tool_number: int,
    post_process: Optional[PostProcessSettings],
    machine: Machine,
    materials: Sequence[Material],
    presets: Mapping[str, MachineMaterialPreset],
    holder: Optional[ToolHolder] = None,
    product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID,
) -> dict:
    """Build one tool document, with one preset per material in order."""
    flutes = tool.geometry.number_of_flutes or 1
    start_presets = []
    for material in materials:
        preset = presets.get(material.id)
        params = calculate_cutting_parameters(
            tool.geometry, tool.tool_type, machine, material, preset
        )
        coolant = preset.coolant_type if preset is not None else None
        start_presets.append(
            create_preset(material, params, coolant, tool.tool_type, flutes)
        )

    # Both guid keys must carry the same value.
    tool_guid = writer.generate_guid()

    if product_id_source is ProductIdSource.INTERNAL_REFERENCE:
        product_id = tool.internal_reference
    else:
        product_id = tool.product_id

    return writer.ordered(TOOL_KEYS, {
        "BMC": tool.substrate or None,
        "description": tool.name,
        "expressions": build_tool_expressions(tool, tool_number, holder),
        "geometry": map_geometry(
            tool.geometry,
            tool.tool_type,
            holder.gauge_length_mm if holder is not None else None,
        ),
        "guid": tool_guid,
        "holder": map_holder(holder) if holder is not None else None,
        "last_modified": writer.timestamp_ms(),
        "post-process": _post_process_block(tool, tool_number, post_process),
        "product-id": product_id or None,
        "product-link": tool.product_url or None,
        "reference_guid": tool_guid,
        "start-values": {"presets": start_presets},
        "type": tool.tool_type.fusion_type,
        "unit": UNIT,
        "vendor": tool.vendor or None,
    })


def generate_library(
    library_name: str,
    tools: Sequence[LibraryTool],
    machine: Machine,
    materials: Sequence[Material],
    presets: Mapping[str, MachineMaterialPreset],
    product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID,
) -> dict:
    """Build the whole library document, tools in the order given.

    *library_name* names the export; it is not part of the document.
    """
    data = [
        generate_tool(
            placement.tool,
            placement.tool_number,
            placement.effective_post_process,
            machine,
            materials,
            presets,
            placement.holder,
            product_id_source,
        )
        for placement in tools
    ]
    return {"data": data, "version": FORMAT_VERSION}


def generate_library_from(library: ToolLibrary, machine: Optional[Machine] = None) -> dict:
    """Generate the document for a loaded :class:`ToolLibrary`.

    *machine* overrides the library's own machine. Only the presets recorded
    for the export machine apply.
    """
    machine = machine or library.machine
    if machine is None:
        raise ValueError(f"Library {library.name!r} has no machine assigned")
    return generate_library(
        library.name,
        library.list_tools(),
        machine,
        library.materials,
        library.presets_for(machine.id),
        library.product_id_source,
    )
