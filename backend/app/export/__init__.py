"""Download utilities for the saved-paper list."""

from backend.app.export.saved import (
    CSV_HEADERS,
    ExportFormat,
    SavedExport,
    export_saved,
    render_saved_csv,
    render_saved_json,
)

__all__ = [
    "CSV_HEADERS",
    "ExportFormat",
    "SavedExport",
    "export_saved",
    "render_saved_csv",
    "render_saved_json",
]
