"""Tests for the relay service fanning out gap extraction per paper."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from backend.app.contracts import PaperRecord
from backend.app.errors import UpstreamRateLimited, ValidationError
from backend.app.research.service import ResearchGapService


class _StubSource:
    def __init__(
        self,
        papers: Optional[List[PaperRecord]] = None,
        citations: Optional[Dict[str, List[PaperRecord]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.papers = papers or []
        self.citations = citations or {}
        self.error = error
        self.queries: List[str] = []

    async def search_papers(self, query: str) -> List[PaperRecord]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.papers)

    async def fetch_citations(self, paper_id: str) -> List[PaperRecord]:
        if self.error:
            raise self.error
        return list(self.citations.get(paper_id, []))


class _StubAssistant:
    """Extracts gaps concurrently; abstracts containing 'boom' fail."""

    def __init__(self) -> None:
        self.abstracts: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def extract_gap(self, abstract: str) -> Optional[str]:
        self.abstracts.append(abstract)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        if "boom" in abstract:
            raise RuntimeError("extraction failed")
        return f"gap for {abstract}"

    async def summarize(self, abstract: str) -> str:
        return f"summary for {abstract}"


def _paper(paper_id: str, abstract: Optional[str]) -> PaperRecord:
    return PaperRecord(paper_id=paper_id, title=paper_id, abstract=abstract)


def test_search_attaches_gaps_only_where_abstracts_exist() -> None:
    papers = [
        _paper("a", "alpha"),
        _paper("b", None),
        _paper("c", "gamma"),
        _paper("d", ""),
        _paper("e", "epsilon"),
    ]
    assistant = _StubAssistant()
    service = ResearchGapService(_StubSource(papers), assistant)

    results = asyncio.run(service.search_gaps("transformers"))

    assert [record.research_gap for record in results] == [
        "gap for alpha",
        None,
        "gap for gamma",
        None,
        "gap for epsilon",
    ]
    assert sorted(assistant.abstracts) == ["alpha", "epsilon", "gamma"]
    assert assistant.max_in_flight == 3


def test_one_failed_extraction_does_not_fail_the_batch() -> None:
    papers = [_paper("a", "fine"), _paper("b", "boom"), _paper("c", "also fine")]
    service = ResearchGapService(_StubSource(papers), _StubAssistant())

    results = asyncio.run(service.search_gaps("q"))

    assert [record.research_gap for record in results] == ["gap for fine", None, "gap for also fine"]


def test_search_failure_propagates() -> None:
    service = ResearchGapService(_StubSource(error=UpstreamRateLimited()), _StubAssistant())

    with pytest.raises(UpstreamRateLimited):
        asyncio.run(service.search_gaps("q"))


@pytest.mark.parametrize("query", [None, ""])
def test_missing_query_is_rejected(query: Optional[str]) -> None:
    source = _StubSource()
    service = ResearchGapService(source, _StubAssistant())

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(service.search_gaps(query))
    assert excinfo.value.message == "searchQuery is required"
    assert excinfo.value.status_code == 400
    assert source.queries == []


def test_whitespace_query_is_forwarded_unchanged() -> None:
    source = _StubSource()
    service = ResearchGapService(source, _StubAssistant())

    assert asyncio.run(service.search_gaps("  ")) == []
    assert source.queries == ["  "]


def test_expand_annotates_citing_papers() -> None:
    source = _StubSource(citations={"p1": [_paper("c1", "one"), _paper("c2", None)]})
    service = ResearchGapService(source, _StubAssistant())

    results = asyncio.run(service.expand_paper("p1"))

    assert [(record.paper_id, record.research_gap) for record in results] == [
        ("c1", "gap for one"),
        ("c2", None),
    ]
    with pytest.raises(ValidationError):
        asyncio.run(service.expand_paper(None))


def test_summarize_requires_abstract() -> None:
    service = ResearchGapService(_StubSource(), _StubAssistant())

    assert asyncio.run(service.summarize_paper("text")) == "summary for text"
    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(service.summarize_paper(""))
    assert excinfo.value.message == "abstract is required"
