"""``.tools`` archive packaging: a zip holding a single ``tools.json``."""

from __future__ import annotations

import io
import json
import re
import zipfile
from pathlib import Path

ENTRY_NAME = "tools.json"


def tools_file_bytes(document: dict) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        zf.writestr(ENTRY_NAME, json.dumps(document, indent=2, ensure_ascii=False))
    return buf.getvalue()


def write_tools_file(document: dict, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tools_file_bytes(document))
    return path


def read_tools_file(path: Path) -> dict:
    with zipfile.ZipFile(path) as zf:
        return json.loads(zf.read(ENTRY_NAME))


def safe_filename(library_name: str) -> str:
    """Download name for a library: unsafe characters become ``_``."""
    return re.sub(r"[^a-zA-Z0-9\-_]", "_", library_name) + ".tools"
