"""Low-level value formatting for the exported tool library."""

from __future__ import annotations

import time
import uuid
from decimal import Decimal
from typing import Iterable, Optional


def generate_guid() -> str:
    """Random version-4 identifier, e.g. ``1b4e28ba-2fa1-41d2-883f-0016d3cca427``.

    The consuming CAM application rejects anything not shaped like a v4
    UUID (version nibble ``4``, variant nibble ``8``-``b``).
    """
    return str(uuid.uuid4())


def timestamp_ms() -> int:
    """Milliseconds since the epoch, as used for ``last_modified``."""
    return int(time.time() * 1000)


def number_text(value: float) -> str:
    """Shortest positional text for *value*; integral floats lose their ``.0``.

    Never uses exponent notation: ``1e-05`` -> ``"0.00001"``.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        return format(Decimal(repr(value)), "f")
    return str(value)


def fusion_number(value: float) -> str:
    """Expression number: decimal comma, parenthesised when fractional.

    ``1.7`` -> ``"(1,7)"``, ``3.175`` -> ``"(3,175)"``, ``6.0`` -> ``"6"``.
    """
    text = number_text(value)
    if "." in text:
        return f"({text.replace('.', ',')})"
    return text


def length_expr(value: float, unit: str = "mm") -> str:
    return f"{fusion_number(value)} {unit}"


def quote(text: str) -> str:
    """Wrap *text* as an expression string literal."""
    return f"'{text}'"


def map_coolant(coolant_type: Optional[str]) -> str:
    """Translate a stored coolant type to the exported coolant mode."""
    return _COOLANT_MODES.get((coolant_type or "").lower(), "disabled")


_COOLANT_MODES = {
    "flood": "flood",
    "mist": "mist",
    "air": "air blast",
    "air_blast": "air blast",
    "through": "through tool",
    "through_tool": "through tool",
}


def ordered(keys: Iterable[str], values: dict) -> dict:
    """Build a dict whose keys follow *keys*, skipping absent (None) values.

    Consumers of the exported file parse it order-sensitively, so every
    emitted object goes through here rather than relying on the order the
    values happened to be assigned in.
    """
    keys = tuple(keys)
    unknown = values.keys() - set(keys)
    if unknown:
        raise KeyError(f"Keys not in emission order: {sorted(unknown)}")
    return {k: values[k] for k in keys if values.get(k) is not None}
