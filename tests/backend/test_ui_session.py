"""Tests for the headless exploration session and its HTTP relay client."""

from __future__ import annotations

import asyncio
import json
from typing import Dict, List, Optional

import httpx
import pytest

from backend.app.contracts import PaperRecord
from backend.app.export.saved import ExportFormat
from backend.app.ui.session import (
    INVALID_RESPONSE_MESSAGE,
    ExplorationSession,
    HTTPResearchAPI,
    RelayRequestError,
)


def _paper(paper_id: str, *, gap: Optional[str] = None, year: int = 2020) -> PaperRecord:
    return PaperRecord(
        paper_id=paper_id,
        title=f"Title {paper_id}",
        year=year,
        abstract=f"Abstract {paper_id}",
        research_gap=gap,
    )


class _StubAPI:
    """In-memory relay returning canned records or raising configured errors."""

    def __init__(
        self,
        *,
        search_results: Optional[List[PaperRecord]] = None,
        citations: Optional[Dict[str, List[PaperRecord]]] = None,
        search_error: Optional[str] = None,
        expand_error: Optional[str] = None,
    ) -> None:
        self.search_results = search_results or []
        self.citations = citations or {}
        self.search_error = search_error
        self.expand_error = expand_error
        self.summaries: List[str] = []

    async def search_gaps(self, query: str) -> List[PaperRecord]:
        if self.search_error:
            raise RelayRequestError(self.search_error)
        return list(self.search_results)

    async def expand_paper(self, paper_id: str) -> List[PaperRecord]:
        if self.expand_error:
            raise RelayRequestError(self.expand_error)
        return list(self.citations.get(paper_id, []))

    async def summarize(self, abstract: str) -> str:
        self.summaries.append(abstract)
        return "short summary"


def test_search_populates_graph() -> None:
    api = _StubAPI(search_results=[_paper("a", gap="gap a"), _paper("b")])
    session = ExplorationSession(api)

    asyncio.run(session.search("transformers"))

    assert session.error is None
    assert session.is_loading is False
    assert session.store.query == "transformers"
    assert session.store.layout.node_count == 4
    assert session.store.layout.edge_count == 3


def test_search_failure_falls_back_to_mock_dataset() -> None:
    api = _StubAPI(search_error="Semantic Scholar API rate limit exceeded. Please try again in a few minutes.")
    session = ExplorationSession(api)

    records = asyncio.run(session.search("anything"))

    assert session.error == api.search_error
    assert [paper.paper_id for paper in records] == ["mock-1", "mock-2"]
    assert session.store.layout.node_count == 5


def test_blank_search_is_ignored() -> None:
    api = _StubAPI(search_results=[_paper("a")])
    session = ExplorationSession(api)

    asyncio.run(session.search("   "))

    assert session.store.papers == ()
    assert session.store.query == ""


def test_expand_merges_without_duplicates() -> None:
    api = _StubAPI(
        search_results=[_paper("a"), _paper("b")],
        citations={"a": [_paper("b"), _paper("c"), _paper("d")]},
    )
    session = ExplorationSession(api)
    asyncio.run(session.search("q"))

    added = asyncio.run(session.expand("a"))

    assert [paper.paper_id for paper in added] == ["c", "d"]
    assert [paper.paper_id for paper in session.store.papers] == ["a", "b", "c", "d"]


def test_expand_failure_keeps_graph_and_records_error() -> None:
    api = _StubAPI(search_results=[_paper("a")], expand_error="Semantic Scholar API error (404): Paper not found")
    session = ExplorationSession(api)
    asyncio.run(session.search("q"))

    assert asyncio.run(session.expand("a")) == []
    assert session.error == "Semantic Scholar API error (404): Paper not found"
    assert [paper.paper_id for paper in session.store.papers] == ["a"]


def test_removed_paper_stays_saved_and_exportable() -> None:
    api = _StubAPI(search_results=[_paper("a", gap='He said "more data"'), _paper("b")])
    session = ExplorationSession(api)
    asyncio.run(session.search("q"))
    paper = session.store.get_paper("a")
    assert paper is not None

    session.toggle_save(paper)
    session.remove("a")

    assert session.store.get_paper("a") is None
    csv_export = session.export_saved(ExportFormat.CSV)
    assert csv_export.filename == "saved_papers.csv"
    assert '"He said ""more data"""' in csv_export.content
    json_export = session.export_saved(ExportFormat.JSON)
    assert json.loads(json_export.content)[0]["paperId"] == "a"


def test_select_and_summarize_through_relay() -> None:
    api = _StubAPI(search_results=[_paper("a")])
    session = ExplorationSession(api)
    asyncio.run(session.search("q"))

    assert session.select("missing") is None
    assert session.select("a") is not None
    assert asyncio.run(session.summarize()) == "short summary"
    assert api.summaries == ["Abstract a"]

    session.close_details()
    assert session.selection.summary is None


def test_saved_paper_opens_after_removal_from_graph() -> None:
    api = _StubAPI(search_results=[_paper("a"), _paper("b")])
    session = ExplorationSession(api)
    asyncio.run(session.search("q"))
    session.toggle_save(session.store.get_paper("a"))  # type: ignore[arg-type]
    session.remove("a")

    opened = session.select("a")

    assert opened is not None and opened.paper_id == "a"
    assert session.selection.selected == opened
    assert asyncio.run(session.summarize()) == "short summary"
    assert [paper.paper_id for paper in session.store.papers] == ["b"]

    session.toggle_save(opened)
    session.close_details()
    assert session.select("a") is None


def test_graph_payload_marks_saved_papers() -> None:
    api = _StubAPI(search_results=[_paper("a"), _paper("b")])
    session = ExplorationSession(api)
    asyncio.run(session.search("q"))
    session.toggle_save(session.store.get_paper("b"))  # type: ignore[arg-type]

    payload = session.graph_payload()

    saved_flags = {
        node["data"]["paperId"]: node["data"]["isSaved"]  # type: ignore[index]
        for node in payload["nodes"]  # type: ignore[union-attr]
        if node["type"] == "paper"
    }
    assert saved_flags == {"a": False, "b": True}
    assert len(payload["edges"]) == 2  # type: ignore[arg-type]


def test_year_filter_persists_across_searches() -> None:
    api = _StubAPI(search_results=[_paper("a", year=2010), _paper("b", year=2022)])
    session = ExplorationSession(api)
    session.set_year_filter(2020)

    asyncio.run(session.search("q"))

    assert [paper.paper_id for paper in session.store.visible_papers] == ["b"]


def _relay_client(handler) -> HTTPResearchAPI:
    transport = httpx.MockTransport(handler)
    return HTTPResearchAPI(client=httpx.AsyncClient(transport=transport, base_url="http://relay"))


def test_http_api_parses_records() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/search-gaps"
        assert json.loads(request.content) == {"searchQuery": "graphs"}
        return httpx.Response(
            200,
            json=[
                {
                    "paperId": "p1",
                    "title": "Graphs",
                    "year": 2019,
                    "authors": [{"authorId": "1", "name": "Ada"}],
                    "abstract": "text",
                    "openAccessPdf": {"url": "https://example.org/p1.pdf"},
                    "researchGap": "gap",
                }
            ],
        )

    records = asyncio.run(_relay_client(handler).search_gaps("graphs"))

    assert records[0].paper_id == "p1"
    assert records[0].open_access_pdf_url == "https://example.org/p1.pdf"
    assert records[0].research_gap == "gap"


def test_http_api_surfaces_error_field() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Semantic Scholar API error (503): down"})

    with pytest.raises(RelayRequestError) as excinfo:
        asyncio.run(_relay_client(handler).expand_paper("p1"))
    assert str(excinfo.value) == "Semantic Scholar API error (503): down"


def test_http_api_falls_back_to_status_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    with pytest.raises(RelayRequestError) as excinfo:
        asyncio.run(_relay_client(handler).summarize("abstract"))
    assert str(excinfo.value) == "Server error: 502"


def test_http_api_rejects_non_json_success() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    with pytest.raises(RelayRequestError) as excinfo:
        asyncio.run(_relay_client(handler).search_gaps("q"))
    assert str(excinfo.value) == INVALID_RESPONSE_MESSAGE
