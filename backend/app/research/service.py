"""Relay service combining paper search with AI research-gap extraction."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

from backend.app.contracts import PaperRecord
from backend.app.errors import ValidationError

LOGGER = logging.getLogger(__name__)


class PaperSource(Protocol):
    """Academic search backend consumed by the relay."""

    async def search_papers(self, query: str) -> List[PaperRecord]:
        """Return ranked papers for ``query``."""

    async def fetch_citations(self, paper_id: str) -> List[PaperRecord]:
        """Return papers citing ``paper_id``."""


class ResearchAssistant(Protocol):
    """Generative-AI backend consumed by the relay."""

    async def extract_gap(self, abstract: str) -> Optional[str]:
        """Return the research gap for an abstract, or ``None``."""

    async def summarize(self, abstract: str) -> str:
        """Return a short summary for an abstract."""


def require_field(value: Optional[str], field_name: str) -> str:
    """Return ``value``, raising when it is missing or empty."""

    if not value:
        raise ValidationError(f"{field_name} is required")
    return value


class ResearchGapService:
    """Fetch papers and annotate each one with an extracted research gap."""

    def __init__(self, source: PaperSource, assistant: ResearchAssistant) -> None:
        self._source = source
        self._assistant = assistant

    async def search_gaps(self, search_query: Optional[str]) -> List[PaperRecord]:
        """Search for papers and attach research gaps.

        Args:
            search_query: Free-text topic.

        Returns:
            List[PaperRecord]: Top matches, each with ``research_gap`` set when
                the paper has an abstract and extraction succeeded.

        Raises:
            ValidationError: If ``search_query`` is missing.
            UpstreamError: If the paper search itself fails.
        """

        query = require_field(search_query, "searchQuery")
        papers = await self._source.search_papers(query)
        LOGGER.info("Search for %r returned %d papers", query, len(papers))
        return await self.annotate(papers)

    async def expand_paper(self, paper_id: Optional[str]) -> List[PaperRecord]:
        """Fetch papers citing ``paper_id`` and attach research gaps."""

        resolved_id = require_field(paper_id, "paperId")
        citing = await self._source.fetch_citations(resolved_id)
        LOGGER.info("Paper %s has %d citing papers in this page", resolved_id, len(citing))
        return await self.annotate(citing)

    async def summarize_paper(self, abstract: Optional[str]) -> str:
        text = require_field(abstract, "abstract")
        return await self._assistant.summarize(text)

    async def annotate(self, papers: Sequence[PaperRecord]) -> List[PaperRecord]:
        """Extract gaps for all papers concurrently.

        A failure for one paper leaves its gap ``None`` and does not affect the
        others. Papers without an abstract are never sent to the assistant.
        """

        results = await asyncio.gather(
            *(self._gap_for(paper) for paper in papers),
            return_exceptions=True,
        )
        annotated: List[PaperRecord] = []
        for paper, result in zip(papers, results):
            if isinstance(result, Exception):
                LOGGER.warning("Gap extraction failed for paper %s: %s", paper.paper_id, result)
                result = None
            elif isinstance(result, BaseException):
                raise result
            annotated.append(paper.with_research_gap(result))
        return annotated

    async def _gap_for(self, paper: PaperRecord) -> Optional[str]:
        if not paper.has_abstract:
            return None
        return await self._assistant.extract_gap(paper.abstract or "")


__all__ = ["PaperSource", "ResearchAssistant", "ResearchGapService", "require_field"]
