#!/usr/bin/env python3
"""CLI utility to run a search against the GapGraph relay and print the graph."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from backend.app.export.saved import ExportFormat
from backend.app.ui.session import ExplorationSession, HTTPResearchAPI


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments for the exploration utility.

    Returns:
        argparse.Namespace: Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("query", help="Research topic to search for")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Base URL for the relay API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--expand",
        action="store_true",
        help="Expand the first paper with its citing papers",
    )
    parser.add_argument("--min-year", type=int, default=None, help="Hide papers older than this year")
    parser.add_argument(
        "--save-all",
        type=Path,
        default=None,
        help="Save every visible paper and write them to this .json or .csv file",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    api = HTTPResearchAPI(args.base_url)
    session = ExplorationSession(api)
    try:
        await session.search(args.query)
        if session.error:
            print(f"Search failed: {session.error}. Showing mock data.", file=sys.stderr)
        if args.expand and session.store.visible_papers:
            first = session.store.visible_papers[0]
            added = await session.expand(first.paper_id)
            print(f"Expanded {first.paper_id}: {len(added)} new papers")
        if args.min_year:
            session.set_year_filter(args.min_year)

        layout = session.store.layout
        print(f"{layout.center.label}: {layout.node_count} nodes, {layout.edge_count} edges")
        for paper in session.store.visible_papers:
            gap = paper.research_gap or "-"
            print(f"  [{paper.year or '????'}] {paper.title}\n      gap: {gap}")

        if args.save_all is not None:
            for paper in session.store.visible_papers:
                session.toggle_save(paper)
            fmt = ExportFormat.CSV if args.save_all.suffix.lower() == ".csv" else ExportFormat.JSON
            export = session.export_saved(fmt)
            args.save_all.write_text(export.content, encoding="utf-8")
            print(f"Wrote {len(session.selection.saved)} saved papers to {args.save_all}")
    finally:
        await api.aclose()
    return 0


def main() -> int:
    """Entry point for the CLI exploration utility.

    Returns:
        int: Exit status code where ``0`` indicates success.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
