"""Import and export of the shared state as portable files."""

from .file_transfer import (
    EXPORT_FORMAT_VERSION,
    build_export_filename,
    export_state,
    load_export,
)

__all__ = [
    "EXPORT_FORMAT_VERSION",
    "build_export_filename",
    "export_state",
    "load_export",
]
