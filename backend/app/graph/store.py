"""In-memory state store for the exploration graph."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from backend.app.contracts import PaperRecord
from backend.app.graph.layout import (
    GraphEdge,
    GraphLayout,
    GraphNode,
    RadialGeometry,
    compute_radial_layout,
)

LOGGER = logging.getLogger(__name__)


class GraphStateStore:
    """Own the paper list behind the graph and re-derive its layout.

    The store keeps every paper that has been loaded, in insertion order, plus
    the active query and year filter. Nodes and edges are never mutated
    directly: every operation updates the inputs and recomputes the layout, so
    the visible graph is always a pure function of those inputs. Saved papers
    live elsewhere and are not touched here.
    """

    def __init__(self, geometry: Optional[RadialGeometry] = None) -> None:
        self._geometry = geometry or RadialGeometry()
        self._papers: List[PaperRecord] = []
        self._query = ""
        self._year_filter: Optional[int] = None
        self._layout = compute_radial_layout([], self._query, self._geometry)

    @property
    def query(self) -> str:
        return self._query

    @property
    def year_filter(self) -> Optional[int]:
        return self._year_filter

    @property
    def papers(self) -> Tuple[PaperRecord, ...]:
        """All loaded papers, regardless of the year filter."""

        return tuple(self._papers)

    @property
    def visible_papers(self) -> Tuple[PaperRecord, ...]:
        """Papers passing the active year filter, in display order."""

        return tuple(self._visible())

    @property
    def layout(self) -> GraphLayout:
        return self._layout

    @property
    def nodes(self) -> Tuple[GraphNode, ...]:
        return self._layout.nodes

    @property
    def edges(self) -> Tuple[GraphEdge, ...]:
        return self._layout.edges

    def get_paper(self, paper_id: str) -> Optional[PaperRecord]:
        """Return the loaded record for ``paper_id``, visible or not."""

        for record in self._papers:
            if record.paper_id == paper_id:
                return record
        return None

    def set_papers(
        self,
        records: Iterable[PaperRecord],
        query: str,
        year_filter: Optional[int] = None,
    ) -> GraphLayout:
        """Replace the paper list after a fresh search.

        Args:
            records: Papers returned for ``query``.
            query: Search text shown on the center node.
            year_filter: Optional minimum publication year.

        Returns:
            GraphLayout: Layout for the new visible set.
        """

        self._papers = _unique_by_id(records)
        self._query = query
        self._year_filter = _normalize_threshold(year_filter)
        return self._relayout()

    def add_papers(self, records: Iterable[PaperRecord]) -> List[PaperRecord]:
        """Merge expanded papers, skipping ids that are already loaded.

        Args:
            records: Citing papers returned by an expand request.

        Returns:
            List[PaperRecord]: Records actually appended, in input order.
        """

        known = {record.paper_id for record in self._papers}
        added: List[PaperRecord] = []
        for record in records:
            if record.paper_id in known:
                continue
            known.add(record.paper_id)
            added.append(record)
        if added:
            self._papers.extend(added)
            LOGGER.debug("Added %d papers to graph (total=%d)", len(added), len(self._papers))
        self._relayout()
        return added

    def remove_paper(self, paper_id: str) -> bool:
        """Drop a paper together with its gap node and incident edges.

        Returns:
            bool: ``True`` when the paper was present.
        """

        remaining = [record for record in self._papers if record.paper_id != paper_id]
        if len(remaining) == len(self._papers):
            return False
        self._papers = remaining
        self._relayout()
        return True

    def set_filter(self, threshold: Optional[int]) -> GraphLayout:
        """Show only papers published in or after ``threshold``.

        ``None`` (or ``0``) clears the filter. Papers without a year are hidden
        while a filter is active.
        """

        self._year_filter = _normalize_threshold(threshold)
        return self._relayout()

    def clear(self) -> None:
        self._papers = []
        self._query = ""
        self._year_filter = None
        self._relayout()

    def _visible(self) -> List[PaperRecord]:
        threshold = self._year_filter
        if threshold is None:
            return list(self._papers)
        return [
            record
            for record in self._papers
            if record.year is not None and record.year >= threshold
        ]

    def _relayout(self) -> GraphLayout:
        self._layout = compute_radial_layout(self._visible(), self._query, self._geometry)
        return self._layout


def _normalize_threshold(threshold: Optional[int]) -> Optional[int]:
    if not threshold:
        return None
    return int(threshold)


def _unique_by_id(records: Iterable[PaperRecord]) -> List[PaperRecord]:
    """Collapse records sharing a ``paper_id``; the newest one wins in place."""

    positions: Dict[str, int] = {}
    unique: List[PaperRecord] = []
    for record in records:
        index = positions.get(record.paper_id)
        if index is None:
            positions[record.paper_id] = len(unique)
            unique.append(record)
        else:
            unique[index] = record
    return unique


__all__ = ["GraphStateStore"]
