"""FastAPI application feeding live chart payloads into the merge engine."""

from __future__ import annotations

import asyncio
import logging
import threading
import webbrowser
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from uvicorn import Config, Server

from livecharts.errors import ChartError, MalformedPayload, UnknownInstance
from livecharts.merge import MergeEngine
from livecharts.payloads import parse_bulk, parse_update
from livecharts.settings import ConfigurationError, load_config, resolve_log_level, setup_logging
from livecharts.variants import describe

from .render import SnapshotRenderer
from .schemas import ChartSummary, ErrorResponse, SeriesResponse, UpdateResponse

LOGGER = logging.getLogger(__name__)


def _error(status_code: int, kind: str, exc: Exception) -> JSONResponse:
    payload = ErrorResponse(error=str(exc), kind=kind)
    return JSONResponse(payload.model_dump(), status_code=status_code)


def build_router(engine: MergeEngine, renderer: SnapshotRenderer) -> APIRouter:
    router = APIRouter()

    def _rejected(kind: str, exc: ChartError, raw: Any, status_code: int) -> JSONResponse:
        engine.report(kind, exc, raw)
        return _error(status_code, kind, exc)

    @router.get("/ui/api/variants", response_class=JSONResponse)
    async def api_variants() -> JSONResponse:
        return JSONResponse({"variants": describe(engine.variants.values())})

    @router.get("/ui/api/stats", response_class=JSONResponse)
    async def api_stats() -> JSONResponse:
        stats = engine.stats
        return JSONResponse(
            {
                "charts": len(engine.store),
                "bulk": stats.bulk,
                "updates": stats.updates,
                "malformed": stats.malformed,
                "unknown": stats.unknown,
            }
        )

    @router.get("/ui/api/charts", response_model=List[ChartSummary])
    async def api_list_charts() -> List[ChartSummary]:
        summaries: List[ChartSummary] = []
        for chart_id in engine.store.ids():
            instance = engine.store.get(chart_id)
            if instance is None:
                continue
            summaries.append(
                ChartSummary(
                    id=instance.id,
                    title=instance.title,
                    variant=instance.variant.name,
                    points={role: len(series) for role, series in instance.series.items()},
                )
            )
        return summaries

    @router.post("/ui/api/charts", status_code=201, response_model=SeriesResponse)
    async def api_mount_chart(request: Request, variant: Optional[str] = Query(None)) -> Any:
        raw = await request.body()
        try:
            chart_variant = engine.resolve_variant(variant)
        except ConfigurationError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        try:
            instance = engine.apply_bulk(parse_bulk(raw), chart_variant)
        except MalformedPayload as exc:
            return _rejected("malformed", exc, raw, 422)
        return renderer.snapshot(instance.id)

    @router.post("/ui/api/charts/{chart_id}/events", response_model=UpdateResponse)
    async def api_chart_event(chart_id: str, request: Request) -> Any:
        raw = await request.body()
        try:
            event = parse_update(raw)
            if event.id != chart_id:
                raise MalformedPayload(f"Payload id '{event.id}' does not match chart '{chart_id}'")
            result = engine.apply_update(event)
        except MalformedPayload as exc:
            return _rejected("malformed", exc, raw, 422)
        except UnknownInstance as exc:
            return _rejected("unknown_instance", exc, raw, 404)
        return UpdateResponse(revision=renderer.revision(chart_id), **result.as_dict())

    @router.get("/ui/api/charts/{chart_id}", response_model=SeriesResponse)
    async def api_chart(chart_id: str) -> SeriesResponse:
        snapshot = renderer.snapshot(chart_id)
        if snapshot is None or chart_id not in engine.store:
            raise HTTPException(status_code=404, detail=f"Unknown chart '{chart_id}'")
        return snapshot

    @router.delete("/ui/api/charts/{chart_id}", status_code=204)
    async def api_destroy_chart(chart_id: str) -> Response:
        if not engine.destroy(chart_id):
            raise HTTPException(status_code=404, detail=f"Unknown chart '{chart_id}'")
        renderer.forget(chart_id)
        return Response(status_code=204)

    return router


def create_app(
    engine: Optional[MergeEngine] = None,
    renderer: Optional[SnapshotRenderer] = None,
    config: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """Build the API around one engine; a fresh engine is configured when none is given."""
    if renderer is None and engine is not None and isinstance(engine.renderer, SnapshotRenderer):
        renderer = engine.renderer
    renderer = renderer or SnapshotRenderer()
    if engine is None:
        engine = MergeEngine.from_config(config if config is not None else load_config(), renderer=renderer)
    elif renderer is not engine.renderer:
        engine.renderer = renderer

    app = FastAPI(title="livecharts")
    app.state.engine = engine
    app.state.renderer = renderer
    app.include_router(build_router(engine, renderer))

    @app.get("/", include_in_schema=False)
    async def root_redirect() -> RedirectResponse:
        return RedirectResponse(url="/ui/api/charts")

    return app


def start_ui(host: str, port: int, open_browser: bool = False, config: Optional[Dict[str, Any]] = None) -> None:
    """Start the FastAPI server via uvicorn."""

    cfg = config if config is not None else load_config()
    setup_logging(resolve_log_level(cfg.get("log_level")))
    app = create_app(config=cfg)
    server_config = Config(app=app, host=host, port=port, log_level="info")
    server = Server(config=server_config)

    if open_browser:
        url = f"http://{host}:{port}/ui/api/charts"
        timer = threading.Timer(1.0, webbrowser.open, args=(url,))
        timer.daemon = True
        timer.start()

    LOGGER.info("Serving live charts on http://%s:%d", host, port)
    asyncio.run(server.serve())
