"""JSON and CSV downloads for the saved-paper list."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence

from backend.app.contracts import PaperRecord

CSV_HEADERS = ("Title", "Year", "Authors", "Abstract", "Research Gap")


class ExportFormat(str, Enum):
    """Download formats offered for saved papers."""

    JSON = "json"
    CSV = "csv"


@dataclass(frozen=True)
class SavedExport:
    """Rendered export ready to be served as a file download."""

    filename: str
    media_type: str
    content: str


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def render_saved_json(records: Iterable[PaperRecord]) -> str:
    """Return saved papers as a pretty-printed JSON array."""

    return json.dumps([record.to_payload() for record in records], indent=2)


def render_saved_csv(records: Iterable[PaperRecord]) -> str:
    """Return saved papers as CSV.

    Text columns are always double-quoted with embedded quotes doubled; the
    year column is bare and empty when unknown. Authors are joined by ``"; "``.
    """

    rows: List[str] = [",".join(CSV_HEADERS)]
    for record in records:
        row = [
            _quote(record.title or ""),
            str(record.year) if record.year else "",
            _quote("; ".join(record.author_names)),
            _quote(record.abstract or ""),
            _quote(record.research_gap or ""),
        ]
        rows.append(",".join(row))
    return "\n".join(rows)


def export_saved(records: Sequence[PaperRecord], fmt: ExportFormat) -> SavedExport:
    """Render ``records`` in the requested download format."""

    if fmt is ExportFormat.JSON:
        return SavedExport(
            filename="saved_papers.json",
            media_type="application/json",
            content=render_saved_json(records),
        )
    return SavedExport(
        filename="saved_papers.csv",
        media_type="text/csv",
        content=render_saved_csv(records),
    )


__all__ = [
    "CSV_HEADERS",
    "ExportFormat",
    "SavedExport",
    "export_saved",
    "render_saved_csv",
    "render_saved_json",
]
