"""CLI entry point: ``python -m toolsmith library.json -o library.tools``"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config.defaults import build_default_tool_library
from .config.machine_profiles import profile_by_name
from .config.settings import AppSettings
from .core.feeds_speeds import (
    calculate_chip_thinning_feed,
    calculate_cutting_parameters,
    calculate_mrr,
)
from .core.library import ProductIdSource, ToolLibrary
from .core.machine import Machine
from .core.profile import assembly_envelope
from .core.units import Units
from .fusion.generator import generate_library_from
from .fusion.package import safe_filename, write_tools_file
from .fusion.validate import check_assembly, validate_library


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="toolsmith",
        description="Export a tool library (.json) as a CAM tool library (.tools).",
    )
    p.add_argument("input", type=Path, nargs="?", default=None,
                   help="Library file (JSON)")
    p.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output file (default: <library name>.tools next to the input)",
    )
    p.add_argument("--json", action="store_true",
                   help="Write the raw library JSON instead of a .tools archive")
    p.add_argument("--init", type=Path, default=None, metavar="PATH",
                   help="Write a starter library file to PATH and exit")

    p.add_argument(
        "--machine", choices=["440", "770", "1100"], default=None,
        help="Use a built-in Tormach profile instead of the library's machine",
    )
    p.add_argument(
        "--units", choices=["inch", "mm"], default=None,
        help="Units of library files that do not declare any (default: settings)",
    )
    p.add_argument(
        "--product-id-source",
        choices=[s.value for s in ProductIdSource], default=None,
        help="Tool field exported as product id (default: library setting)",
    )

    p.add_argument("--summary", action="store_true",
                   help="Print the computed cutting parameters")
    p.add_argument("--skip-validate", action="store_true",
                   help="Export even if the library fails validation")

    return p


def _resolve_machine(args, library: ToolLibrary, settings: AppSettings) -> Machine:
    if args.machine is not None:
        return profile_by_name(args.machine)
    if library.machine is not None:
        return library.machine
    return profile_by_name(settings.default_machine)


def _print_summary(library: ToolLibrary, machine: Machine) -> None:
    print(f"Machine: {machine}")
    presets = library.presets_for(machine.id)
    for placement in library.list_tools():
        tool = placement.tool
        geom = tool.geometry
        print(f"T{placement.tool_number}: {tool.name} "
              f"({tool.tool_type.value}, {geom.diameter_mm:g} mm)")

        if placement.holder is not None:
            env = assembly_envelope(placement.holder, geom)
            print(f"  Holder: {placement.holder.name} | reach {env.total_length:.1f} mm"
                  f" | max dia {env.max_diameter:.1f} mm"
                  f" | stick-out {env.stickout:.1f} mm")

        for material in library.materials:
            preset = presets.get(material.id)
            params = calculate_cutting_parameters(
                geom, tool.tool_type, machine, material, preset
            )
            line = (f"  {material.name}: S{params.rpm}"
                    f" F{params.feed_mm_min:g} plunge {params.plunge_feed_mm_min:g}"
                    f" | ap {params.axial_depth_mm:g} ae {params.radial_depth_mm:g} mm"
                    f" | Vc {params.surface_speed_m_min:g} m/min")
            if not tool.tool_type.is_drill_like:
                mrr = calculate_mrr(
                    params.feed_mm_min, params.axial_depth_mm, params.radial_depth_mm
                )
                hsm = calculate_chip_thinning_feed(
                    params.feed_mm_min, geom.diameter_mm, params.radial_depth_mm
                )
                line += f" | MRR {mrr:.2f} cm3/min | HSM feed {hsm:g}"
            print(line)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = AppSettings.load()

    if args.init is not None:
        starter = build_default_tool_library()
        starter.save(args.init)
        print(f"Wrote starter library to {args.init}")
        return 0

    if args.input is None:
        parser.error("a library file is required (or use --init)")

    units = Units(args.units or settings.default_units)

    print(f"Loading {args.input} ...")
    try:
        library = ToolLibrary.load(
            args.input,
            default_units=units,
            default_product_id_source=ProductIdSource(settings.product_id_source),
        )
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.product_id_source is not None:
        library.product_id_source = ProductIdSource(args.product_id_source)

    machine = _resolve_machine(args, library, settings)
    print(f"  {len(library.list_tools())} tools, {len(library.materials)} materials"
          f" on {machine.name}")

    if args.summary:
        _print_summary(library, machine)

    document = generate_library_from(library, machine)

    if not args.skip_validate:
        validation = validate_library(document)
        if not validation.valid:
            print("VALIDATION ERRORS:", file=sys.stderr)
            for error in validation.errors:
                print(f"  ERROR: {error}", file=sys.stderr)
            return 1

    advisory = check_assembly(library, machine)
    for issue in advisory.issues:
        print(f"  Warning: {issue.message}")

    suffix = ".json" if args.json else ".tools"
    output: Path = args.output or (
        args.input.parent / safe_filename(library.name)
    ).with_suffix(suffix)

    if args.json:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
        )
    else:
        write_tools_file(document, output)
    print(f"Wrote {output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
