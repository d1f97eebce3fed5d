"""Headless exploration session mirroring the browser workflow.

The session wires the relay API, the graph store and the selection controller
together: searching replaces the graph (falling back to a small demo dataset
when the relay fails), expanding merges citing papers, and the detail view
requests summaries through the same relay.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from backend.app.contracts import Author, PaperRecord
from backend.app.errors import GapGraphError
from backend.app.export.saved import ExportFormat, SavedExport, export_saved
from backend.app.graph.layout import PaperNode, edge_to_payload, node_to_payload
from backend.app.graph.store import GraphStateStore
from backend.app.ui.selection import SelectionController

LOGGER = logging.getLogger(__name__)

INVALID_RESPONSE_MESSAGE = "Invalid response from server"


class RelayRequestError(GapGraphError):
    """Raised when a relay call fails or returns an unusable body."""


class ResearchAPI(Protocol):
    """Client-side view of the relay routes."""

    async def search_gaps(self, query: str) -> List[PaperRecord]:
        """Call ``/api/search-gaps``."""

    async def expand_paper(self, paper_id: str) -> List[PaperRecord]:
        """Call ``/api/expand-paper``."""

    async def summarize(self, abstract: str) -> str:
        """Call ``/api/summarize-paper``."""


def mock_papers() -> List[PaperRecord]:
    """Return the demo dataset shown when a search fails."""

    return [
        PaperRecord(
            paper_id="mock-1",
            title="Attention Is All You Need",
            year=2017,
            authors=[Author(name="Ashish Vaswani"), Author(name="Noam Shazeer")],
            abstract=(
                "The dominant sequence transduction models are based on complex recurrent "
                "or convolutional neural networks..."
            ),
            research_gap=(
                "Future work could explore extending this model to handle longer sequences "
                "more efficiently and applying it to other modalities like images or audio."
            ),
        ),
        PaperRecord(
            paper_id="mock-2",
            title="BERT: Pre-training of Deep Bidirectional Transformers",
            year=2018,
            authors=[Author(name="Jacob Devlin"), Author(name="Ming-Wei Chang")],
            abstract="We introduce a new language representation model called BERT...",
            research_gap=(
                "Limitations include high computational cost during pre-training. Future "
                "research might focus on more efficient pre-training objectives."
            ),
        ),
    ]


class HTTPResearchAPI:
    """``ResearchAPI`` implementation talking to the relay over HTTP."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def search_gaps(self, query: str) -> List[PaperRecord]:
        payload = await self._post("/api/search-gaps", {"searchQuery": query})
        return _parse_records(payload)

    async def expand_paper(self, paper_id: str) -> List[PaperRecord]:
        payload = await self._post("/api/expand-paper", {"paperId": paper_id})
        return _parse_records(payload)

    async def summarize(self, abstract: str) -> str:
        payload = await self._post("/api/summarize-paper", {"abstract": abstract})
        if not isinstance(payload, dict) or not isinstance(payload.get("summary"), str):
            raise RelayRequestError(INVALID_RESPONSE_MESSAGE)
        return payload["summary"]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, path: str, body: Dict[str, Any]) -> Any:
        try:
            response = await self._client.post(path, json=body)
        except httpx.HTTPError as exc:
            raise RelayRequestError(str(exc) or "Failed to reach server") from exc
        if not response.is_success:
            message = f"Server error: {response.status_code}"
            try:
                error_payload = response.json()
            except ValueError:
                error_payload = None
            if isinstance(error_payload, dict) and error_payload.get("error"):
                message = str(error_payload["error"])
            raise RelayRequestError(message)
        try:
            return json.loads(response.text)
        except ValueError as exc:
            raise RelayRequestError(INVALID_RESPONSE_MESSAGE) from exc


def _parse_records(payload: Any) -> List[PaperRecord]:
    if not isinstance(payload, list):
        raise RelayRequestError(INVALID_RESPONSE_MESSAGE)
    try:
        return [PaperRecord.from_scholar(item) for item in payload if isinstance(item, dict)]
    except PydanticValidationError as exc:
        raise RelayRequestError(INVALID_RESPONSE_MESSAGE) from exc


class ExplorationSession:
    """State for one browser-like exploration session."""

    def __init__(
        self,
        api: ResearchAPI,
        store: Optional[GraphStateStore] = None,
        selection: Optional[SelectionController] = None,
    ) -> None:
        self._api = api
        self.store = store or GraphStateStore()
        self.selection = selection or SelectionController(api)
        self.error: Optional[str] = None
        self.is_loading = False

    async def search(self, query: str) -> List[PaperRecord]:
        """Run a fresh search and replace the graph.

        On failure the error message is kept in :attr:`error` and the demo
        dataset is shown instead, so the graph stays usable.
        """

        if not query.strip():
            return list(self.store.papers)
        self.is_loading = True
        self.error = None
        try:
            records = await self._api.search_gaps(query)
        except GapGraphError as exc:
            LOGGER.error("Search failed for %r: %s", query, exc)
            self.error = str(exc) or "Failed to fetch data"
            records = mock_papers()
        finally:
            self.is_loading = False
        self.store.set_papers(records, query, self.store.year_filter)
        return records

    async def expand(self, paper_id: str) -> List[PaperRecord]:
        """Add papers citing ``paper_id``; returns the ones actually added."""

        self.is_loading = True
        try:
            records = await self._api.expand_paper(paper_id)
        except GapGraphError as exc:
            LOGGER.error("Expand failed for %s: %s", paper_id, exc)
            self.error = str(exc) or "Failed to expand paper"
            return []
        finally:
            self.is_loading = False
        return self.store.add_papers(records)

    def remove(self, paper_id: str) -> bool:
        return self.store.remove_paper(paper_id)

    def toggle_save(self, paper: PaperRecord) -> bool:
        return self.selection.toggle_save(paper)

    def set_year_filter(self, threshold: Optional[int]) -> None:
        self.store.set_filter(threshold)

    def select(self, paper_id: str) -> Optional[PaperRecord]:
        """Open ``paper_id`` in the detail view.

        Papers removed from the graph can still be opened while they are saved.
        """

        paper = self.store.get_paper(paper_id) or self.selection.saved.get(paper_id)
        if paper is None:
            return None
        self.selection.select(paper)
        return paper

    def close_details(self) -> None:
        self.selection.clear_selection()

    async def summarize(self) -> Optional[str]:
        return await self.selection.request_summary()

    def export_saved(self, fmt: ExportFormat) -> SavedExport:
        return export_saved(self.selection.saved.records, fmt)

    def graph_payload(self) -> Dict[str, object]:
        """Return renderer-ready nodes and edges with saved flags."""

        nodes: List[Dict[str, object]] = []
        for node in self.store.nodes:
            payload = node_to_payload(node)
            if isinstance(node, PaperNode):
                data = dict(payload["data"])  # type: ignore[arg-type]
                data["isSaved"] = self.selection.is_saved(node.paper_id)
                payload["data"] = data
            nodes.append(payload)
        return {
            "nodes": nodes,
            "edges": [edge_to_payload(edge) for edge in self.store.edges],
        }


__all__ = [
    "ExplorationSession",
    "HTTPResearchAPI",
    "INVALID_RESPONSE_MESSAGE",
    "RelayRequestError",
    "ResearchAPI",
    "mock_papers",
]
