"""Immutable data contracts for GapGraph paper records."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _FrozenBaseModel(BaseModel):
    """Base model enforcing immutability and camelCase wire names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Author(_FrozenBaseModel):
    """Author entry as returned by the academic search service."""

    author_id: Optional[str] = Field(None, alias="authorId")
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: object) -> str:
        return "" if value is None else str(value)


class PaperRecord(_FrozenBaseModel):
    """Canonical paper shape shared by the relay, graph store and exports.

    Records are immutable once fetched. The only derived annotation,
    ``research_gap``, is attached afterwards through :meth:`with_research_gap`,
    which returns a new record.
    """

    paper_id: str = Field(..., min_length=1, alias="paperId")
    title: str = ""
    year: Optional[int] = None
    authors: List[Author] = Field(default_factory=list)
    abstract: Optional[str] = None
    citation_count: Optional[int] = Field(None, alias="citationCount")
    open_access_pdf_url: Optional[str] = Field(None, alias="openAccessPdfUrl")
    research_gap: Optional[str] = Field(None, alias="researchGap")

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator("authors", mode="before")
    @classmethod
    def _coerce_authors(cls, value: object) -> object:
        if value is None:
            return []
        return value

    @classmethod
    def from_scholar(cls, raw: Mapping[str, Any]) -> "PaperRecord":
        """Normalize a raw Semantic Scholar paper payload.

        Accepts both the upstream ``openAccessPdf: {url}`` object and the
        flattened ``openAccessPdfUrl`` key, so relay responses can be parsed
        with the same entry point.

        Args:
            raw: Paper mapping from a search result or a citation's ``citingPaper``.

        Returns:
            PaperRecord: Normalized record.

        Raises:
            pydantic.ValidationError: If the payload lacks a usable ``paperId``.
        """

        payload: Dict[str, Any] = {
            "paperId": raw.get("paperId"),
            "title": raw.get("title"),
            "year": raw.get("year"),
            "authors": raw.get("authors"),
            "abstract": raw.get("abstract"),
            "citationCount": raw.get("citationCount"),
            "openAccessPdfUrl": raw.get("openAccessPdfUrl") or _pdf_url(raw.get("openAccessPdf")),
            "researchGap": raw.get("researchGap"),
        }
        return cls.model_validate(payload)

    @property
    def has_abstract(self) -> bool:
        """Return whether the record carries a non-blank abstract."""

        return bool(self.abstract and self.abstract.strip())

    @property
    def author_names(self) -> List[str]:
        return [author.name for author in self.authors]

    def with_research_gap(self, gap: Optional[str]) -> "PaperRecord":
        """Return a copy annotated with the extracted research gap."""

        return self.model_copy(update={"research_gap": gap})

    def to_payload(self) -> Dict[str, Any]:
        """Return the camelCase JSON payload served to clients."""

        payload = self.model_dump(by_alias=True)
        payload["openAccessPdf"] = (
            {"url": self.open_access_pdf_url} if self.open_access_pdf_url else None
        )
        return payload


def _pdf_url(value: object) -> Optional[str]:
    if isinstance(value, Mapping):
        url = value.get("url")
        if isinstance(url, str) and url:
            return url
    return None


__all__ = ["Author", "PaperRecord"]
