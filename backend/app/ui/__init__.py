"""UI state: paper selection, saved papers and the exploration session."""

from .selection import SUMMARY_FAILURE_TEXT, SavedPapers, SelectionController, SummaryState
from .session import ExplorationSession, HTTPResearchAPI, RelayRequestError, ResearchAPI, mock_papers

__all__ = [
    "ExplorationSession",
    "HTTPResearchAPI",
    "RelayRequestError",
    "ResearchAPI",
    "SUMMARY_FAILURE_TEXT",
    "SavedPapers",
    "SelectionController",
    "SummaryState",
    "mock_papers",
]
