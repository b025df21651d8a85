"""Export of tool libraries to the CAM application's ``.tools`` format."""

from .generator import generate_library, generate_library_from, generate_tool
from .package import read_tools_file, safe_filename, write_tools_file
from .validate import LibraryValidation, check_assembly, validate_library

__all__ = [
    "generate_library",
    "generate_library_from",
    "generate_tool",
    "read_tools_file",
    "safe_filename",
    "write_tools_file",
    "LibraryValidation",
    "check_assembly",
    "validate_library",
]
