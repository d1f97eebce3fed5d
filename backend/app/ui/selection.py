"""Selection, summary caching and saved-paper tracking for the detail view."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Dict, Iterator, List, Optional, Protocol

from backend.app.contracts import PaperRecord

LOGGER = logging.getLogger(__name__)

SUMMARY_FAILURE_TEXT = "Failed to generate summary."


class SummaryState(str, Enum):
    """Summary lifecycle for the currently open paper."""

    IDLE = "idle"
    REQUESTING = "requesting"
    CACHED = "cached"
    FAILED = "failed"


class Summarizer(Protocol):
    """Anything able to summarize an abstract asynchronously."""

    async def summarize(self, abstract: str) -> str:
        """Return a summary or raise on failure."""


class SavedPapers:
    """Saved papers keyed by id, in the order they were saved.

    The set is independent of the graph: removing a paper from the graph
    leaves it saved until it is toggled off.
    """

    def __init__(self) -> None:
        self._records: Dict[str, PaperRecord] = {}

    def __contains__(self, paper_id: object) -> bool:
        return paper_id in self._records

    def __iter__(self) -> Iterator[PaperRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[PaperRecord]:
        return list(self._records.values())

    def get(self, paper_id: str) -> Optional[PaperRecord]:
        return self._records.get(paper_id)

    def toggle(self, paper: PaperRecord) -> bool:
        """Flip membership of ``paper`` and return whether it is now saved."""

        if paper.paper_id in self._records:
            del self._records[paper.paper_id]
            return False
        self._records[paper.paper_id] = paper
        return True


class SelectionController:
    """Track the open paper and its summary, plus the saved-paper set.

    Every call to :meth:`select` or :meth:`clear_selection` starts a new
    selection generation. A summary response is only applied when it belongs
    to the generation that requested it, so a late answer for a paper the user
    has moved away from is dropped.
    """

    def __init__(self, summarizer: Summarizer, saved: Optional[SavedPapers] = None) -> None:
        self._summarizer = summarizer
        self._saved = saved if saved is not None else SavedPapers()
        self._selected: Optional[PaperRecord] = None
        self._summary: Optional[str] = None
        self._state = SummaryState.IDLE
        self._generation = 0

    @property
    def selected(self) -> Optional[PaperRecord]:
        return self._selected

    @property
    def summary(self) -> Optional[str]:
        return self._summary

    @property
    def summary_state(self) -> SummaryState:
        return self._state

    @property
    def saved(self) -> SavedPapers:
        return self._saved

    def select(self, paper: PaperRecord) -> None:
        """Open ``paper`` for detail viewing with a fresh summary state."""

        self._reset(paper)

    def clear_selection(self) -> None:
        """Close the detail view and discard any summary."""

        self._reset(None)

    def toggle_save(self, paper: PaperRecord) -> bool:
        return self._saved.toggle(paper)

    def is_saved(self, paper_id: str) -> bool:
        return paper_id in self._saved

    async def request_summary(self, paper: Optional[PaperRecord] = None) -> Optional[str]:
        """Fetch a summary for the open paper.

        Nothing is requested when no paper is open, when ``paper`` is not the
        open one, when the open paper has no abstract, or when a summary is
        already cached or in flight.

        Args:
            paper: Optional paper the caller believes is open.

        Returns:
            Optional[str]: The summary text now shown for the open paper, or
                ``None`` when the response was discarded or nothing was shown.
        """

        selected = self._selected
        if selected is None:
            return None
        if paper is not None and paper.paper_id != selected.paper_id:
            return None
        if not selected.has_abstract or self._state is not SummaryState.IDLE:
            return self._summary

        generation = self._generation
        self._state = SummaryState.REQUESTING
        try:
            summary = await self._summarizer.summarize(selected.abstract or "")
        except asyncio.CancelledError:
            if generation == self._generation and self._state is SummaryState.REQUESTING:
                self._state = SummaryState.IDLE
            raise
        except Exception as exc:  # noqa: BLE001 - any failure becomes the failure text
            LOGGER.warning("Summary request failed for paper %s: %s", selected.paper_id, exc)
            if generation != self._generation:
                return None
            self._state = SummaryState.FAILED
            self._summary = SUMMARY_FAILURE_TEXT
            return self._summary

        if generation != self._generation:
            LOGGER.debug("Discarding stale summary for paper %s", selected.paper_id)
            return None
        self._state = SummaryState.CACHED
        self._summary = summary
        return summary

    def _reset(self, paper: Optional[PaperRecord]) -> None:
        self._generation += 1
        self._selected = paper
        self._summary = None
        self._state = SummaryState.IDLE


__all__ = [
    "SUMMARY_FAILURE_TEXT",
    "SavedPapers",
    "SelectionController",
    "Summarizer",
    "SummaryState",
]
