"""Async client for the Semantic Scholar Graph API."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from backend.app.config import ScholarConfig
from backend.app.contracts import PaperRecord
from backend.app.errors import UpstreamError, UpstreamRateLimited

LOGGER = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON from Semantic Scholar API"


class SemanticScholarClient:
    """Fetch papers and citing papers from Semantic Scholar.

    The service is rate limited and occasionally answers with non-JSON error
    bodies, so every response goes through :meth:`_get_json`, which turns HTTP
    429 into :class:`UpstreamRateLimited` and every other failure into
    :class:`UpstreamError` with the best message it can extract.
    """

    def __init__(
        self,
        config: ScholarConfig,
        *,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        headers: Dict[str, str] = {}
        if api_key:
            headers["x-api-key"] = api_key
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout_seconds,
            headers=headers,
        )

    async def search_papers(self, query: str, *, limit: Optional[int] = None) -> List[PaperRecord]:
        """Return the top papers matching a free-text query.

        Args:
            query: Search text.
            limit: Maximum number of results; defaults to ``scholar.search_limit``.

        Returns:
            List[PaperRecord]: Ranked records without research gaps attached.
        """

        payload = await self._get_json(
            "/paper/search",
            params={
                "query": query,
                "limit": limit or self._config.search_limit,
                "fields": self._config.fields_param,
            },
        )
        return _records_from(_data_items(payload))

    async def fetch_citations(self, paper_id: str, *, limit: Optional[int] = None) -> List[PaperRecord]:
        """Return papers citing ``paper_id``."""

        payload = await self._get_json(
            f"/paper/{quote(paper_id, safe=':')}/citations",
            params={
                "fields": self._config.fields_param,
                "limit": limit or self._config.citation_limit,
            },
        )
        citing = (
            item.get("citingPaper")
            for item in _data_items(payload)
            if isinstance(item, Mapping)
        )
        return _records_from(citing)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, path: str, *, params: Mapping[str, Any]) -> Any:
        try:
            response = await self._client.get(path, params=dict(params))
        except httpx.HTTPError as exc:
            LOGGER.error(
                "Semantic Scholar request raised an error",
                extra={"path": path, "error": str(exc)},
            )
            raise UpstreamError(f"Semantic Scholar API request failed: {exc}") from exc

        if response.status_code == 429:
            LOGGER.warning("Semantic Scholar rate limit hit", extra={"path": path})
            raise UpstreamRateLimited()
        if not response.is_success:
            detail = _extract_error_text(response)
            LOGGER.warning(
                "Semantic Scholar request failed with status",
                extra={"path": path, "status_code": response.status_code, "detail": detail},
            )
            raise UpstreamError(
                f"Semantic Scholar API error ({response.status_code}): {detail}",
                upstream_status=response.status_code,
            )

        try:
            return json.loads(response.text)
        except ValueError as exc:
            LOGGER.warning("Semantic Scholar returned non-JSON payload", extra={"path": path})
            raise UpstreamError(INVALID_JSON_MESSAGE) from exc


def _extract_error_text(response: httpx.Response) -> str:
    """Prefer ``message`` then ``error`` from a JSON body, else the raw text."""

    text = response.text or ""
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, Mapping):
        for key in ("message", "error"):
            value = parsed.get(key)
            if value:
                return str(value)
    return text or response.reason_phrase


def _data_items(payload: Any) -> List[Any]:
    if not isinstance(payload, Mapping):
        return []
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    return data


def _records_from(items: Iterable[Any]) -> List[PaperRecord]:
    records: List[PaperRecord] = []
    for item in items:
        if not isinstance(item, Mapping) or not item.get("paperId"):
            continue
        try:
            records.append(PaperRecord.from_scholar(item))
        except PydanticValidationError:
            LOGGER.warning("Skipping malformed Semantic Scholar paper %s", item.get("paperId"))
    return records


__all__ = ["INVALID_JSON_MESSAGE", "SemanticScholarClient"]
