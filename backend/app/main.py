"""FastAPI application factory for GapGraph backend."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from backend.app.ai import GeminiResearchAssistant, shared_gemini_client
from backend.app.config import AppConfig, load_config, scholar_api_key
from backend.app.contracts import PaperRecord
from backend.app.errors import GapGraphError, ValidationError
from backend.app.export.saved import ExportFormat, export_saved
from backend.app.graph import GraphStateStore, RadialGeometry
from backend.app.graph.layout import edge_to_payload, node_to_payload
from backend.app.research import ResearchGapService
from backend.app.scholar import SemanticScholarClient

LOGGER = logging.getLogger(__name__)


class SearchGapsRequest(BaseModel):
    """Request payload for the search endpoint."""

    searchQuery: Optional[str] = Field(default=None, description="Free-text research topic")


class ExpandPaperRequest(BaseModel):
    """Request payload for fetching citing papers."""

    paperId: Optional[str] = Field(default=None, description="Semantic Scholar paper identifier")


class SummarizePaperRequest(BaseModel):
    """Request payload for abstract summarization."""

    abstract: Optional[str] = Field(default=None, description="Abstract text to summarize")


class SummaryResponse(BaseModel):
    summary: str


class GraphLayoutRequest(BaseModel):
    """Paper list to lay out around a query."""

    papers: List[Dict[str, Any]] = Field(default_factory=list)
    searchQuery: str = ""
    yearFilter: Optional[int] = None


class GraphLayoutResponse(BaseModel):
    """Positioned nodes and edges consumed by the frontend graph."""

    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    node_count: int
    edge_count: int


class SavedExportRequest(BaseModel):
    """Saved papers to render as a download."""

    papers: List[Dict[str, Any]] = Field(default_factory=list)
    format: str = Field("json", description="Either 'json' or 'csv'")


def create_app(
    config: AppConfig | None = None,
    service: Optional[ResearchGapService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        config: Optional pre-loaded configuration. If omitted, the default
            configuration defined in config.yaml is used.
        service: Optional relay service. When omitted the factory builds one
            backed by Semantic Scholar and the shared Gemini client.

    Returns:
        FastAPI: Configured FastAPI application.
    """

    resolved_config = config or load_config()
    app = FastAPI(title=f"{resolved_config.app.name} API", version=resolved_config.app.version)
    app.state.app_config = resolved_config

    allowed_origins = resolved_config.app.allowed_origins
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    scholar_client: Optional[SemanticScholarClient] = None
    if service is None:
        service, scholar_client = _build_default_service(resolved_config)
    app.state.research_service = service
    app.state.scholar_client = scholar_client
    geometry = RadialGeometry.from_config(resolved_config.layout)

    @app.exception_handler(GapGraphError)
    async def _handle_gapgraph_error(request: Request, exc: GapGraphError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("Error in %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = _request_error_message(exc)
        LOGGER.info("Rejected request to %s: %s", request.url.path, message)
        return JSONResponse(status_code=400, content={"error": message})

    @app.get("/health", tags=["system"], summary="Service health check")
    def health() -> dict[str, str]:
        """Return service health information."""

        return {"status": "ok", "version": resolved_config.app.version}

    @app.post("/api/search-gaps", tags=["research"], summary="Search papers and extract research gaps")
    async def search_gaps(payload: Optional[SearchGapsRequest] = None) -> List[Dict[str, Any]]:
        """Return the top matches for a topic, each annotated with its research gap."""

        query = payload.searchQuery if payload else None
        try:
            records = await service.search_gaps(query)
        except GapGraphError:
            raise
        except Exception as exc:
            LOGGER.exception("Unexpected failure in /api/search-gaps")
            raise GapGraphError(str(exc) or "Internal server error") from exc
        return [record.to_payload() for record in records]

    @app.post("/api/expand-paper", tags=["research"], summary="Fetch papers citing a paper")
    async def expand_paper(payload: Optional[ExpandPaperRequest] = None) -> List[Dict[str, Any]]:
        """Return citing papers, each annotated with its research gap."""

        paper_id = payload.paperId if payload else None
        try:
            records = await service.expand_paper(paper_id)
        except GapGraphError:
            raise
        except Exception as exc:
            LOGGER.exception("Unexpected failure in /api/expand-paper")
            raise GapGraphError(str(exc) or "Internal server error") from exc
        return [record.to_payload() for record in records]

    @app.post("/api/summarize-paper", tags=["research"], summary="Summarize an abstract")
    async def summarize_paper(payload: Optional[SummarizePaperRequest] = None) -> SummaryResponse:
        """Return a short plain-language summary of an abstract."""

        abstract = payload.abstract if payload else None
        try:
            summary = await service.summarize_paper(abstract)
        except GapGraphError:
            raise
        except Exception as exc:
            LOGGER.exception("Unexpected failure in /api/summarize-paper")
            raise GapGraphError(str(exc) or "Internal server error") from exc
        return SummaryResponse(summary=summary)

    @app.post("/api/graph-layout", tags=["graph"], summary="Lay out papers around a query")
    def graph_layout(payload: GraphLayoutRequest) -> GraphLayoutResponse:
        """Return radial node positions and edges for the supplied papers."""

        store = GraphStateStore(geometry)
        layout = store.set_papers(_parse_papers(payload.papers), payload.searchQuery, payload.yearFilter)
        return GraphLayoutResponse(
            nodes=[node_to_payload(node) for node in layout.nodes],
            edges=[edge_to_payload(edge) for edge in layout.edges],
            node_count=layout.node_count,
            edge_count=layout.edge_count,
        )

    @app.post("/api/export/saved", tags=["export"], summary="Download saved papers")
    def export_saved_papers(payload: SavedExportRequest) -> Response:
        """Render saved papers as a JSON or CSV attachment."""

        try:
            fmt = ExportFormat(payload.format.strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unsupported export format: {payload.format}") from exc
        export = export_saved(_parse_papers(payload.papers), fmt)
        return Response(
            content=export.content,
            media_type=export.media_type,
            headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - network resource cleanup
        client = getattr(app.state, "scholar_client", None)
        if client is not None:
            try:
                await client.aclose()
            except Exception:  # noqa: BLE001 - best effort shutdown
                LOGGER.exception("Failed to close Semantic Scholar client")

    return app


def _build_default_service(
    config: AppConfig,
) -> tuple[ResearchGapService, SemanticScholarClient]:
    scholar_client = SemanticScholarClient(config.scholar, api_key=scholar_api_key())
    ai_client = shared_gemini_client()
    if not ai_client.available:
        LOGGER.warning("GEMINI_API_KEY not set; research gaps and summaries are disabled")
    assistant = GeminiResearchAssistant(config.ai, ai_client)
    return ResearchGapService(scholar_client, assistant), scholar_client


def _parse_papers(raw_papers: List[Dict[str, Any]]) -> List[PaperRecord]:
    records: List[PaperRecord] = []
    for raw in raw_papers:
        try:
            records.append(PaperRecord.from_scholar(raw))
        except PydanticValidationError as exc:
            raise ValidationError("Each paper requires a paperId") from exc
    return records


def _request_error_message(exc: RequestValidationError) -> str:
    """Return a single client-facing message for a malformed request body."""

    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    if first.get("type") == "missing" and location:
        return f"{location[-1]} is required"
    message = str(first.get("msg") or "Invalid value")
    if location:
        return f"{'.'.join(location)}: {message}"
    return message
