"""Tool library: numbered tool placements plus the export context.

A library file is JSON::

    {
      "name": "...",
      "units": "mm" | "inch",
      "product_id_source": "product_id" | "internal_reference",
      "machine": {...} | "machine_profile": "PCNC 770",
      "materials": [...], "presets": [...],
      "holders": [...], "tools": [...],
      "placements": [{"tool_id": ..., "tool_number": ..., "holder_id": ...,
                      "post_process": {...}}]
    }

Placements without a ``tool_number`` get the next free number in the
tool's category range.  Presets may cover several machines; the export
machine picks its own with :meth:`ToolLibrary.presets_for`.
"""

from __future__ import annotations

import json
import warnings
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .categories import next_tool_number
from .holder import ToolHolder
from .machine import Machine
from .material import Material, MachineMaterialPreset
from .tool import PostProcessSettings, Tool
from .units import Units


class LibraryFileError(ValueError):
    """A library file refers to something it does not define."""


class ProductIdSource(Enum):
    """Which tool field is exported as the product id."""

    PRODUCT_ID = "product_id"
    INTERNAL_REFERENCE = "internal_reference"


@dataclass
class LibraryTool:
    """One tool placed at a numbered slot of a library."""

    tool: Tool
    tool_number: int
    post_process: Optional[PostProcessSettings] = None
    holder: Optional[ToolHolder] = None

    @property
    def effective_post_process(self) -> Optional[PostProcessSettings]:
        """Tool-level defaults overlaid with this placement's overrides."""
        if self.tool.post_process is None:
            return self.post_process
        return self.tool.post_process.merged(self.post_process)


@dataclass
class ToolLibrary:
    """Persistent tool library backed by a JSON file."""

    name: str
    machine: Optional[Machine] = None
    materials: list[Material] = field(default_factory=list)
    presets: list[MachineMaterialPreset] = field(default_factory=list)
    product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID
    path: Optional[Path] = None
    _tools: dict[int, LibraryTool] = field(default_factory=dict, repr=False)

    def add(self, placement: LibraryTool) -> None:
        self._tools[placement.tool_number] = placement

    def remove(self, number: int) -> None:
        self._tools.pop(number, None)

    def get(self, number: int) -> Optional[LibraryTool]:
        return self._tools.get(number)

    def list_tools(self) -> list[LibraryTool]:
        return sorted(self._tools.values(), key=lambda t: t.tool_number)

    def assign_number(self, tool: Tool) -> int:
        number = next_tool_number(tool.tool_type, self._tools.keys())
        if number is None:
            raise LibraryFileError(
                f"No free tool number left for {tool.tool_type.value} tools"
            )
        return number

    def presets_for(self, machine_id: str) -> dict[str, MachineMaterialPreset]:
        """Presets recorded for *machine_id*, keyed by material id."""
        return {p.material_id: p for p in self.presets if p.machine_id == machine_id}

    def holders(self) -> list[ToolHolder]:
        seen: dict[str, ToolHolder] = {}
        for placement in self.list_tools():
            if placement.holder is not None:
                seen.setdefault(placement.holder.id, placement.holder)
        return list(seen.values())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        placements = self.list_tools()
        tools: dict[str, Tool] = {}
        for p in placements:
            tools.setdefault(p.tool.id, p.tool)

        d: dict = {
            "name": self.name,
            "units": Units.MM.value,
            "product_id_source": self.product_id_source.value,
        }
        if self.machine is not None:
            d["machine"] = self.machine.to_dict()
        d["materials"] = [m.to_dict() for m in self.materials]
        d["presets"] = [p.to_dict() for p in self.presets]
        d["holders"] = [h.to_dict() for h in self.holders()]
        d["tools"] = [t.to_dict() for t in tools.values()]
        d["placements"] = []
        for p in placements:
            entry: dict = {"tool_id": p.tool.id, "tool_number": p.tool_number}
            if p.holder is not None:
                entry["holder_id"] = p.holder.id
            if p.post_process is not None:
                entry["post_process"] = p.post_process.to_dict()
            d["placements"].append(entry)
        return d

    @classmethod
    def from_dict(
        cls,
        d: dict,
        path: Optional[Path] = None,
        default_units: Units = Units.MM,
        default_product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID,
    ) -> ToolLibrary:
        units = Units(d.get("units", default_units.value))

        machine = None
        if d.get("machine") is not None:
            machine = Machine.from_dict(d["machine"])
        elif d.get("machine_profile"):
            from ..config.machine_profiles import profile_by_name
            machine = profile_by_name(d["machine_profile"])

        # Presets for every machine are kept; one per (machine, material).
        by_pair: dict[tuple[str, str], MachineMaterialPreset] = {}
        for raw in d.get("presets") or []:
            preset = MachineMaterialPreset.from_dict(raw)
            pair = (preset.machine_id, preset.material_id)
            if pair in by_pair:
                warnings.warn(
                    f"Duplicate preset for machine {pair[0]!r} and material "
                    f"{pair[1]!r}; the later one is used",
                    UserWarning,
                    stacklevel=2,
                )
            by_pair[pair] = preset

        lib = cls(
            name=d.get("name") or "Untitled",
            machine=machine,
            materials=[Material.from_dict(m) for m in d.get("materials") or []],
            presets=list(by_pair.values()),
            product_id_source=ProductIdSource(
                d.get("product_id_source", default_product_id_source.value)
            ),
            path=path,
        )

        holders = {
            h.id: h for h in (ToolHolder.from_dict(x, units) for x in d.get("holders") or [])
        }
        tools = {t.id: t for t in (Tool.from_dict(x, units) for x in d.get("tools") or [])}

        placements = d.get("placements")
        if placements is None:
            placements = [{"tool_id": tool_id} for tool_id in tools]

        for entry in placements:
            tool = tools.get(entry.get("tool_id"))
            if tool is None:
                raise LibraryFileError(f"Placement refers to unknown tool {entry.get('tool_id')!r}")

            holder_id = entry.get("holder_id") or tool.default_holder_id
            holder = None
            if holder_id is not None:
                holder = holders.get(holder_id)
                if holder is None:
                    raise LibraryFileError(
                        f"Tool {tool.name!r} refers to unknown holder {holder_id!r}"
                    )

            post_process = None
            if entry.get("post_process") is not None:
                post_process = PostProcessSettings.from_dict(entry["post_process"])

            number = entry.get("tool_number")
            if number is None:
                number = lib.assign_number(tool)
            lib.add(LibraryTool(tool, int(number), post_process, holder))

        return lib

    @classmethod
    def load(
        cls,
        path: Path,
        default_units: Units = Units.MM,
        default_product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID,
    ) -> ToolLibrary:
        path = Path(path)
        return cls.from_dict(
            json.loads(path.read_text(encoding="utf-8")),
            path=path,
            default_units=default_units,
            default_product_id_source=default_product_id_source,
        )

    def save(self, path: Optional[Path] = None) -> None:
        path = Path(path) if path is not None else self.path
        if path is None:
            raise ValueError("Library has no file path")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        self.path = path
