"""Built-in machine profiles (Tormach PCNC 440 / 770 / 1100).

Limits are converted from Tormach's inch specifications to mm/min.
"""

from __future__ import annotations

from enum import Enum

from ..core.machine import Machine


class TormachModel(Enum):
    PCNC_440 = "PCNC 440"
    PCNC_770 = "PCNC 770"
    PCNC_1100 = "PCNC 1100"


def _ipm(value: float) -> float:
    return round(value * 25.4, 1)


_PROFILES: dict[TormachModel, Machine] = {
    TormachModel.PCNC_440: Machine(
        id="tormach-pcnc-440",
        name="Tormach PCNC 440",
        manufacturer="Tormach",
        model="PCNC 440",
        min_rpm=100,
        max_rpm=10000,
        max_feed_xy_mm_min=_ipm(110.0),
        max_feed_z_mm_min=_ipm(90.0),
        spindle_power_kw=0.75,
    ),
    TormachModel.PCNC_770: Machine(
        id="tormach-pcnc-770",
        name="Tormach PCNC 770",
        manufacturer="Tormach",
        model="PCNC 770",
        min_rpm=175,
        max_rpm=10000,
        max_feed_xy_mm_min=_ipm(110.0),
        max_feed_z_mm_min=_ipm(90.0),
        spindle_power_kw=1.1,
    ),
    TormachModel.PCNC_1100: Machine(
        id="tormach-pcnc-1100",
        name="Tormach PCNC 1100",
        manufacturer="Tormach",
        model="PCNC 1100",
        min_rpm=175,
        max_rpm=10000,
        max_feed_xy_mm_min=_ipm(135.0),
        max_feed_z_mm_min=_ipm(110.0),
        spindle_power_kw=1.5,
    ),
}


def get_profile(model: TormachModel) -> Machine:
    # Callers may tweak the returned record; hand out a copy.
    return Machine(**_PROFILES[model].to_dict())


def list_profiles() -> list[Machine]:
    return [get_profile(m) for m in TormachModel]


def profile_by_name(name: str) -> Machine:
    """Look up a profile by model name ("PCNC 770") or short form ("770")."""
    key = name.strip().upper()
    for model in TormachModel:
        if key in (model.value.upper(), model.value.split()[-1]):
            return get_profile(model)
    raise ValueError(f"Unknown machine profile {name!r}")
