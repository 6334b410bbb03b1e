"""FastAPI application factory for the NetGraph visual engine."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, Field

from netgraph.app.config import AppConfig, load_config
from netgraph.app.contracts import LayoutSettings, RowShape, Viewport
from netgraph.app.export import render_graph_html
from netgraph.app.observability import ObservabilityService
from netgraph.app.orchestration import SettleResult, UpdateResult, VisualOrchestrator

LOGGER = logging.getLogger(__name__)

SVG_MEDIA_TYPE = "image/svg+xml"


class ViewportPayload(BaseModel):
    """Drawing surface size sent by the host."""

    width: float = Field(..., ge=0, description="Surface width in pixels")
    height: float = Field(..., ge=0, description="Surface height in pixels")


class GraphRequest(BaseModel):
    """Request payload for the layout and render endpoints."""

    viewport: ViewportPayload
    rows: List[Any] = Field(default_factory=list)
    layout: Optional[LayoutSettings] = None
    shape: Optional[RowShape] = None
    max_steps: Optional[int] = Field(default=None, ge=0)


class UpdateSummary(BaseModel):
    """Diagnostics for the snapshot built from a request."""

    node_count: int
    edge_count: int
    shape: Optional[RowShape]
    skipped_rows: int
    warnings: List[str]
    steps: int
    settled: bool


class SettingsResponse(BaseModel):
    """Engine defaults sourced from the configuration file."""

    version: str
    layout: Dict[str, float]
    simulation: Dict[str, Any]
    rendering: Dict[str, Any]
    animation: Dict[str, Any]
    max_rows: int


def _summary(update: UpdateResult, settle: SettleResult) -> UpdateSummary:
    return UpdateSummary(
        node_count=update.node_count,
        edge_count=update.edge_count,
        shape=update.shape,
        skipped_rows=update.skipped_rows,
        warnings=list(update.warnings),
        steps=settle.steps,
        settled=settle.settled,
    )


def _build_observability(config: AppConfig) -> Optional[ObservabilityService]:
    if not config.observability.enabled:
        return None
    return ObservabilityService(config.observability)


def create_app(
    config: AppConfig | None = None,
    observability: Optional[ObservabilityService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        config: Optional pre-loaded configuration. If omitted, the default
            configuration defined in config.yaml is used.
        observability: Optional manifest writer. When omitted one is created
            if the configuration enables observability.

    Returns:
        FastAPI: Configured FastAPI application.
    """

    resolved_config = config or load_config()
    app = FastAPI(title="NetGraph API", version=resolved_config.pipeline.version)
    app.state.app_config = resolved_config
    app.state.observability = observability or _build_observability(resolved_config)

    allowed_origins = resolved_config.api.allowed_origins
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _run(request: Request, payload: GraphRequest) -> tuple[VisualOrchestrator, UpdateSummary]:
        api_config = resolved_config.api
        if len(payload.rows) > api_config.max_rows:
            raise HTTPException(
                status_code=413,
                detail=f"Too many rows; the limit is {api_config.max_rows}",
            )
        viewport = payload.viewport
        if max(viewport.width, viewport.height) > api_config.max_viewport:
            raise HTTPException(status_code=422, detail="Viewport exceeds the maximum size")
        orchestrator = VisualOrchestrator(resolved_config, request.app.state.observability)
        try:
            update = orchestrator.update(
                Viewport(width=viewport.width, height=viewport.height),
                payload.rows,
                layout=payload.layout,
                shape=payload.shape,
            )
            settle = orchestrator.run_until_settled(payload.max_steps)
        except ValueError as exc:
            LOGGER.exception("Failed to lay out graph")
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return orchestrator, _summary(update, settle)

    @app.get("/health", tags=["system"], summary="Service health probe")
    def health() -> dict[str, str]:
        """Return service health information."""

        return {"status": "ok", "version": resolved_config.pipeline.version}

    @app.get("/api/settings", tags=["graph"], summary="Engine configuration defaults")
    def settings() -> SettingsResponse:
        """Return layout and rendering defaults sourced from the configuration file."""

        layout = LayoutSettings.from_config(resolved_config.layout)
        return SettingsResponse(
            version=resolved_config.pipeline.version,
            layout=layout.model_dump(by_alias=True),
            simulation=resolved_config.simulation.model_dump(),
            rendering=resolved_config.rendering.model_dump(),
            animation=resolved_config.animation.model_dump(),
            max_rows=resolved_config.api.max_rows,
        )

    @app.post("/api/graph/layout", tags=["graph"], summary="Compute a settled layout")
    def graph_layout(payload: GraphRequest, request: Request) -> Dict[str, Any]:
        """Build the graph from rows, run the simulation, and return positions."""

        orchestrator, summary = _run(request, payload)
        layout = orchestrator.export_layout()
        layout["summary"] = summary.model_dump(mode="json")
        return layout

    @app.post("/api/graph/render", tags=["graph"], summary="Render the graph as SVG or HTML")
    def graph_render(
        payload: GraphRequest,
        request: Request,
        output: Literal["svg", "html"] = Query("svg", alias="format", description="Output document type"),
    ) -> Response:
        """Build, settle, and serialise the graph."""

        orchestrator, summary = _run(request, payload)
        svg = orchestrator.render_svg()
        headers = {
            "X-Graph-Nodes": str(summary.node_count),
            "X-Graph-Edges": str(summary.edge_count),
            "X-Graph-Skipped-Rows": str(summary.skipped_rows),
        }
        if output == "html":
            page = render_graph_html(
                svg,
                orchestrator.export_layout(),
                version=resolved_config.pipeline.version,
            )
            return HTMLResponse(content=page, headers=headers)
        return Response(content=svg, media_type=SVG_MEDIA_TYPE, headers=headers)

    return app


__all__ = ["GraphRequest", "SVG_MEDIA_TYPE", "create_app"]
