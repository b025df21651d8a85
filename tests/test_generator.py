"""Tests for tool library document generation."""

import re

import pytest

from toolsmith.config.machine_profiles import profile_by_name
from toolsmith.core.feeds_speeds import calculate_cutting_parameters, calculate_rpm
from toolsmith.core.holder import HolderSegment, ToolHolder
from toolsmith.core.library import LibraryTool, ProductIdSource, ToolLibrary
from toolsmith.core.machine import Machine
from toolsmith.core.material import MachineMaterialPreset, Material, MaterialCategory
from toolsmith.core.tool import PostProcessSettings, Tool, ToolGeometry, ToolType
from toolsmith.fusion import writer
from toolsmith.fusion.generator import (
    DRILL_PRESET_KEYS,
    ENDMILL_PRESET_KEYS,
    GEOMETRY_KEYS,
    HOLDER_KEYS,
    TOOL_KEYS,
    build_tool_expressions,
    generate_library,
    generate_library_from,
    generate_tool,
    map_geometry,
    map_holder,
)

GUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def machine() -> Machine:
    return Machine(
        id="test-machine",
        name="Test CNC",
        min_rpm=1000,
        max_rpm=24000,
        max_feed_xy_mm_min=10000,
        max_feed_z_mm_min=5000,
    )


@pytest.fixture
def materials() -> list[Material]:
    return [
        Material(id="al", name="6061 Aluminum", category=MaterialCategory.ALUMINUM),
        Material(id="st", name="1018 Steel", category=MaterialCategory.STEEL),
    ]


@pytest.fixture
def endmill() -> Tool:
    return Tool(
        id="em-6.35",
        name="1/4in 3FL Endmill",
        tool_type=ToolType.FLAT_ENDMILL,
        geometry=ToolGeometry(
            diameter_mm=6.35,
            number_of_flutes=3,
            flute_length_mm=19.05,
            overall_length_mm=63.5,
            helix_angle_deg=35,
        ),
        vendor="Harvey",
        product_id="EM-1",
        product_url="https://example.com/em-1",
        internal_reference="INT-7",
        substrate="carbide",
    )


@pytest.fixture
def drill() -> Tool:
    return Tool(
        id="dr-6.8",
        name="6.8mm Drill",
        tool_type=ToolType.DRILL,
        geometry=ToolGeometry(
            diameter_mm=6.8,
            number_of_flutes=2,
            flute_length_mm=69.0,
            overall_length_mm=109.0,
            point_angle_deg=118,
        ),
    )


@pytest.fixture
def holder() -> ToolHolder:
    return ToolHolder(
        id="er20",
        name="BT30 ER20",
        gauge_length_mm=40.0,
        segments=[
            HolderSegment(height=25.0, lower_diameter=40.0, upper_diameter=40.0),
            HolderSegment(height=15.0, lower_diameter=34.0, upper_diameter=28.0),
        ],
        vendor="Techniks",
        product_id="H-20",
    )


def _generate(tool, machine, materials, presets=None, number=201, **kw) -> dict:
    return generate_tool(tool, number, None, machine, materials, presets or {}, **kw)


# ---------------------------------------------------------------------------
# Tool document
# ---------------------------------------------------------------------------


class TestToolDocument:
    def test_key_order(self, endmill, machine, materials):
        doc = _generate(endmill, machine, materials)
        assert list(doc) == [k for k in TOOL_KEYS if k != "holder"]

    def test_key_order_with_holder(self, endmill, machine, materials, holder):
        doc = _generate(endmill, machine, materials, holder=holder)
        assert list(doc) == list(TOOL_KEYS)

    def test_guid_shape(self, endmill, machine, materials):
        doc = _generate(endmill, machine, materials)
        assert GUID_RE.match(doc["guid"])

    def test_reference_guid_matches(self, endmill, machine, materials):
        doc = _generate(endmill, machine, materials)
        assert doc["reference_guid"] == doc["guid"]

    def test_guids_are_unique(self, endmill, machine, materials):
        a = _generate(endmill, machine, materials)
        b = _generate(endmill, machine, materials)
        assert a["guid"] != b["guid"]

    def test_basic_fields(self, endmill, machine, materials):
        doc = _generate(endmill, machine, materials)
        assert doc["BMC"] == "carbide"
        assert doc["description"] == "1/4in 3FL Endmill"
        assert doc["type"] == "flat end mill"
        assert doc["unit"] == "millimeters"
        assert doc["vendor"] == "Harvey"
        assert doc["product-id"] == "EM-1"
        assert doc["product-link"] == "https://example.com/em-1"
        assert isinstance(doc["last_modified"], int)

    def test_internal_reference_as_product_id(self, endmill, machine, materials):
        doc = _generate(
            endmill, machine, materials,
            product_id_source=ProductIdSource.INTERNAL_REFERENCE,
        )
        assert doc["product-id"] == "INT-7"

    def test_optional_fields_omitted(self, drill, machine, materials):
        doc = _generate(drill, machine, materials)
        for key in ("BMC", "vendor", "product-id", "product-link", "holder"):
            assert key not in doc

    @pytest.mark.parametrize("tool_type,expected", [
        (ToolType.FLAT_ENDMILL, "flat end mill"),
        (ToolType.BALL_ENDMILL, "ball end mill"),
        (ToolType.BULL_ENDMILL, "bull nose end mill"),
        (ToolType.DRILL, "drill"),
        (ToolType.SPOT_DRILL, "spot drill"),
        (ToolType.CHAMFER_MILL, "chamfer mill"),
        (ToolType.FACE_MILL, "face mill"),
        (ToolType.THREAD_MILL, "thread mill"),
        (ToolType.REAMER, "reamer"),
        (ToolType.TAP, "tap right hand"),
        (ToolType.ENGRAVING_TOOL, "tapered mill"),
    ])
    def test_type_strings(self, tool_type, expected):
        assert tool_type.fusion_type == expected


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class TestGeometry:
    def test_endmill_keys(self, endmill):
        geom = map_geometry(endmill.geometry, endmill.tool_type)
        assert list(geom) == [
            "DC", "CSP", "HAND", "NOF", "LCF", "OAL", "SFDM", "RE", "DCX", "TA",
            "upper-radius", "HA", "shoulder-length", "shoulder-diameter", "LB",
        ]

    def test_endmill_values(self, endmill):
        geom = map_geometry(endmill.geometry, endmill.tool_type)
        assert geom["DC"] == 6.35
        assert geom["CSP"] is False
        assert geom["HAND"] is True
        assert geom["NOF"] == 3
        assert geom["SFDM"] == 6.35
        assert geom["RE"] == 0
        assert geom["DCX"] == 6.35
        assert geom["HA"] == 35
        assert geom["shoulder-length"] == pytest.approx(21.05)
        assert geom["shoulder-diameter"] == 6.35
        assert geom["LB"] == pytest.approx(23.05)

    def test_drill_keys(self, drill):
        geom = map_geometry(drill.geometry, drill.tool_type)
        assert list(geom) == [
            "DC", "CSP", "HAND", "NOF", "LCF", "OAL", "SFDM", "SIG",
            "shoulder-length", "LB",
        ]
        assert geom["SIG"] == 118

    def test_point_angle_ignored_for_milling_tools(self):
        geometry = ToolGeometry(diameter_mm=6, flute_length_mm=10, point_angle_deg=90)
        geom = map_geometry(geometry, ToolType.CHAMFER_MILL)
        assert "SIG" not in geom

    def test_explicit_corner_radius(self):
        geometry = ToolGeometry(diameter_mm=6, flute_length_mm=10, corner_radius_mm=0.5)
        geom = map_geometry(geometry, ToolType.BULL_ENDMILL)
        assert geom["RE"] == 0.5

    def test_assembly_gauge_length(self, endmill):
        geom = map_geometry(endmill.geometry, endmill.tool_type, holder_gauge_length=40.0)
        assert list(geom)[-1] == "assemblyGaugeLength"
        assert geom["assemblyGaugeLength"] == pytest.approx(63.05)

    def test_explicit_body_length(self):
        geometry = ToolGeometry(diameter_mm=6, flute_length_mm=10, body_length_mm=30)
        geom = map_geometry(geometry, ToolType.FLAT_ENDMILL, holder_gauge_length=40.0)
        assert geom["LB"] == 30
        assert geom["assemblyGaugeLength"] == 70

    def test_keys_follow_declared_order(self, drill):
        geom = map_geometry(drill.geometry, drill.tool_type, 40.0)
        positions = [GEOMETRY_KEYS.index(k) for k in geom]
        assert positions == sorted(positions)


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------


class TestPresets:
    def test_one_preset_per_material(self, endmill, machine, materials):
        doc = _generate(endmill, machine, materials)
        names = [p["name"] for p in doc["start-values"]["presets"]]
        assert names == ["6061 Aluminum", "1018 Steel"]

    def test_endmill_preset_keys(self, endmill, machine, materials):
        preset = _generate(endmill, machine, materials)["start-values"]["presets"][0]
        assert list(preset) == list(ENDMILL_PRESET_KEYS)

    def test_endmill_preset_values(self, endmill, machine, materials):
        preset = _generate(endmill, machine, materials)["start-values"]["presets"][0]
        params = calculate_cutting_parameters(
            endmill.geometry, endmill.tool_type, machine, materials[0]
        )
        assert preset["n"] == params.rpm
        assert preset["n_ramp"] == params.rpm
        assert preset["v_f"] == params.feed_mm_min
        assert preset["v_f_plunge"] == params.plunge_feed_mm_min
        assert preset["f_z"] == params.chip_load_mm
        assert preset["f_n"] == pytest.approx(params.chip_load_mm * 3)
        assert preset["stepdown"] == params.axial_depth_mm
        assert preset["stepover"] == params.radial_depth_mm
        assert preset["ramp-angle"] == 2
        assert preset["use-stepdown"] is True
        assert preset["use-stepover"] is True
        for key in ("v_f_leadIn", "v_f_leadOut", "v_f_ramp", "v_f_transition"):
            assert preset[key] == preset["v_f"]

    def test_preset_material_matches_anything(self, endmill, machine, materials):
        preset = _generate(endmill, machine, materials)["start-values"]["presets"][0]
        assert preset["material"] == {"category": "all", "query": "", "use-hardness": False}

    def test_preset_guids(self, endmill, machine, materials):
        presets = _generate(endmill, machine, materials)["start-values"]["presets"]
        assert all(GUID_RE.match(p["guid"]) for p in presets)
        assert presets[0]["guid"] != presets[1]["guid"]

    def test_drill_preset(self, drill, machine, materials):
        preset = _generate(drill, machine, materials)["start-values"]["presets"][0]
        assert list(preset) == list(DRILL_PRESET_KEYS)
        assert "v_f" not in preset
        assert "stepdown" not in preset
        assert "f_z" not in preset
        assert preset["use-feed-per-revolution"] is False
        assert preset["v_f_retract"] == preset["v_f_plunge"] * 2

    def test_zero_flutes_exports_single_flute_feed_per_rev(self, machine, materials):
        tool = Tool(
            id="x", name="x", tool_type=ToolType.FLAT_ENDMILL,
            geometry=ToolGeometry(diameter_mm=6, flute_length_mm=10),
        )
        preset = _generate(tool, machine, materials)["start-values"]["presets"][0]
        assert preset["f_n"] == preset["f_z"]

    def test_coolant_from_preset(self, endmill, machine, materials):
        presets = {
            "al": MachineMaterialPreset(
                machine_id=machine.id, material_id="al",
                surface_speed_m_min=300, chip_load_mm=0.05, coolant_type="flood",
            ),
        }
        doc = _generate(endmill, machine, materials, presets)
        al, steel = doc["start-values"]["presets"]
        assert al["tool-coolant"] == "flood"
        assert steel["tool-coolant"] == "disabled"

    def test_preset_overrides_defaults(self, endmill, machine, materials):
        presets = {
            "al": MachineMaterialPreset(
                machine_id=machine.id, material_id="al",
                surface_speed_m_min=300, chip_load_mm=0.05,
            ),
        }
        preset = _generate(endmill, machine, materials, presets)["start-values"]["presets"][0]
        assert preset["f_z"] == 0.05


# ---------------------------------------------------------------------------
# Post-process, expressions, holder
# ---------------------------------------------------------------------------


class TestPostProcess:
    def test_defaults(self, endmill, machine, materials):
        pp = _generate(endmill, machine, materials, number=205)["post-process"]
        assert pp == {
            "break-control": False,
            "comment": "",
            "diameter-offset": 205,
            "length-offset": 205,
            "live": True,
            "manual-tool-change": False,
            "number": 205,
            "turret": 0,
        }

    def test_notes_become_comment(self, endmill, machine, materials):
        endmill.notes = "Finishing only"
        pp = _generate(endmill, machine, materials)["post-process"]
        assert pp["comment"] == "Finishing only"

    def test_overrides(self, endmill, machine, materials):
        settings = PostProcessSettings(
            comment="Roughing", diameter_offset=5, manual_tool_change=True, live=False,
        )
        doc = generate_tool(endmill, 201, settings, machine, materials, {})
        pp = doc["post-process"]
        assert pp["comment"] == "Roughing"
        assert pp["diameter-offset"] == 5
        assert pp["length-offset"] == 201
        assert pp["manual-tool-change"] is True
        assert pp["live"] is False

    def test_placement_overrides_tool_defaults(self, endmill):
        endmill.post_process = PostProcessSettings(comment="Tool", turret=1)
        placement = LibraryTool(
            tool=endmill, tool_number=201,
            post_process=PostProcessSettings(comment="Placement"),
        )
        merged = placement.effective_post_process
        assert merged.comment == "Placement"
        assert merged.turret == 1


class TestExpressions:
    def test_tool_expressions(self, endmill):
        expr = build_tool_expressions(endmill, 201)
        assert expr["tool_description"] == "'1/4in 3FL Endmill'"
        assert expr["tool_diameter"] == "(6,35) mm"
        assert expr["tool_fluteLength"] == "(19,05) mm"
        assert expr["tool_overallLength"] == "(63,5) mm"
        assert expr["tool_number"] == "201"
        assert expr["tool_material"] == "'carbide'"
        assert expr["tool_productId"] == "'EM-1'"
        assert expr["tool_vendor"] == "'Harvey'"

    def test_body_and_shoulder_lengths(self):
        tool = Tool(
            id="x", name="x", tool_type=ToolType.FLAT_ENDMILL,
            geometry=ToolGeometry(diameter_mm=10, flute_length_mm=20, overall_length_mm=75),
        )
        expr = build_tool_expressions(tool, 1)
        assert expr["tool_shoulderLength"] == "22 mm"
        assert expr["tool_bodyLength"] == "24 mm"
        assert expr["tool_shaftDiameter"] == "10 mm"

    def test_holder_expressions_first(self, endmill, holder):
        expr = build_tool_expressions(endmill, 201, holder)
        keys = list(expr)
        assert keys[0] == "holder_description"
        assert expr["holder_description"] == "'BT30 ER20'"
        assert expr["holder_vendor"] == "'Techniks'"
        assert max(i for i, k in enumerate(keys) if k.startswith("holder_")) < \
            min(i for i, k in enumerate(keys) if k.startswith("tool_"))


class TestHolder:
    def test_key_order(self, holder):
        doc = map_holder(holder)
        assert list(doc) == [k for k in HOLDER_KEYS if k != "product-link"]

    def test_guids_match(self, holder):
        doc = map_holder(holder)
        assert GUID_RE.match(doc["guid"])
        assert doc["reference_guid"] == doc["guid"]

    def test_gauge_length_expression(self, holder):
        doc = map_holder(holder)
        assert doc["expressions"]["tool_holderGaugeLength"] == (
            "segment_1_height + segment_2_height"
        )

    def test_expression_arity_matches_segments(self, holder):
        holder.segments.append(
            HolderSegment(height=5.0, lower_diameter=28.0, upper_diameter=20.0)
        )
        expr = map_holder(holder)["expressions"]["tool_holderGaugeLength"]
        assert expr.count("+") == len(holder.segments) - 1

    def test_segments(self, holder):
        doc = map_holder(holder)
        assert doc["segments"][1] == {
            "height": 15.0, "lower-diameter": 34.0, "upper-diameter": 28.0,
        }
        assert doc["type"] == "holder"
        assert doc["unit"] == "millimeters"
        assert doc["gaugeLength"] == 40.0

    def test_tool_carries_holder(self, endmill, machine, materials, holder):
        doc = _generate(endmill, machine, materials, holder=holder)
        assert doc["holder"]["description"] == "BT30 ER20"
        assert doc["geometry"]["assemblyGaugeLength"] == pytest.approx(63.05)
        assert doc["holder"]["guid"] != doc["guid"]


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------


class TestLibrary:
    def test_document_shape(self, endmill, drill, machine, materials):
        placements = [LibraryTool(endmill, 201), LibraryTool(drill, 100)]
        doc = generate_library("Shop", placements, machine, materials, {})
        assert list(doc) == ["data", "version"]
        assert doc["version"] == 36
        assert [t["post-process"]["number"] for t in doc["data"]] == [201, 100]

    def test_from_library_sorted_by_number(self, endmill, drill, machine, materials):
        lib = ToolLibrary(name="Shop", machine=machine, materials=materials)
        lib.add(LibraryTool(endmill, 201))
        lib.add(LibraryTool(drill, 100))
        doc = generate_library_from(lib)
        assert [t["type"] for t in doc["data"]] == ["drill", "flat end mill"]

    def test_requires_machine(self, endmill, materials):
        lib = ToolLibrary(name="Shop", materials=materials)
        lib.add(LibraryTool(endmill, 201))
        with pytest.raises(ValueError):
            generate_library_from(lib)

    def test_presets_for_other_machines_ignored(self, endmill, machine, materials):
        lib = ToolLibrary(
            name="Shop",
            machine=machine,
            materials=materials[:1],
            presets=[
                MachineMaterialPreset(
                    machine_id="some-other-machine", material_id="al",
                    surface_speed_m_min=50, chip_load_mm=0.01,
                ),
            ],
        )
        lib.add(LibraryTool(endmill, 201))
        preset = generate_library_from(lib)["data"][0]["start-values"]["presets"][0]
        params = calculate_cutting_parameters(
            endmill.geometry, endmill.tool_type, machine, materials[0]
        )
        assert preset["n"] == params.rpm
        assert preset["f_z"] != 0.01

    def test_presets_resolved_for_export_machine(self, materials):
        tool = Tool(
            id="em6", name="6mm Endmill", tool_type=ToolType.FLAT_ENDMILL,
            geometry=ToolGeometry(diameter_mm=6, number_of_flutes=2, flute_length_mm=12),
        )
        lib = ToolLibrary(
            name="Shop",
            materials=materials[:1],
            presets=[
                MachineMaterialPreset(
                    machine_id="tormach-pcnc-770", material_id="al",
                    surface_speed_m_min=123, chip_load_mm=0.05,
                ),
                MachineMaterialPreset(
                    machine_id="tormach-pcnc-440", material_id="al",
                    surface_speed_m_min=60, chip_load_mm=0.02,
                ),
            ],
        )
        lib.add(LibraryTool(tool, 201))

        on_770 = generate_library_from(lib, profile_by_name("770"))
        preset = on_770["data"][0]["start-values"]["presets"][0]
        assert preset["n"] == calculate_rpm(123, 6)
        assert preset["f_z"] == 0.05

        on_440 = generate_library_from(lib, profile_by_name("440"))
        preset = on_440["data"][0]["start-values"]["presets"][0]
        assert preset["n"] == calculate_rpm(60, 6)
        assert preset["f_z"] == 0.02

    def test_machine_override(self, endmill, machine, materials):
        slow = Machine(id="slow", name="Slow", min_rpm=100, max_rpm=3000)
        lib = ToolLibrary(name="Shop", machine=machine, materials=materials)
        lib.add(LibraryTool(endmill, 201))
        doc = generate_library_from(lib, slow)
        assert all(p["n"] <= 3000 for p in doc["data"][0]["start-values"]["presets"])


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------


class TestWriter:
    @pytest.mark.parametrize("value,expected", [
        (1.7, "(1,7)"),
        (3.175, "(3,175)"),
        (6.0, "6"),
        (6, "6"),
        (12.7, "(12,7)"),
        (1e-05, "(0,00001)"),
        (2.5e-07, "(0,00000025)"),
        (1e20, "100000000000000000000"),
    ])
    def test_fusion_number(self, value, expected):
        assert writer.fusion_number(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (1e-05, "0.00001"),
        (0.1, "0.1"),
        (3.175, "3.175"),
        (6.0, "6"),
    ])
    def test_number_text_is_positional(self, value, expected):
        assert writer.number_text(value) == expected

    def test_length_expr(self):
        assert writer.length_expr(12.7) == "(12,7) mm"
        assert writer.length_expr(0.5, "in") == "(0,5) in"

    @pytest.mark.parametrize("coolant,expected", [
        ("flood", "flood"),
        ("mist", "mist"),
        ("air", "air blast"),
        ("AIR_BLAST", "air blast"),
        ("through_tool", "through tool"),
        ("through", "through tool"),
        ("none", "disabled"),
        (None, "disabled"),
        ("unobtainium", "disabled"),
    ])
    def test_map_coolant(self, coolant, expected):
        assert writer.map_coolant(coolant) == expected

    def test_ordered_drops_none_keeps_false(self):
        out = writer.ordered(("b", "a", "c"), {"a": False, "b": 1, "c": None})
        assert list(out.items()) == [("b", 1), ("a", False)]

    def test_ordered_rejects_unknown_keys(self):
        with pytest.raises(KeyError):
            writer.ordered(("a",), {"a": 1, "z": 2})

    def test_guid(self):
        assert GUID_RE.match(writer.generate_guid())
