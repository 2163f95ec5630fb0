"""FastAPI Web application — route, tracking and push endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from parade_tracker import __version__
from parade_tracker.config import Settings, configure_logging
from parade_tracker.errors import (
    AuthError,
    ConfigurationError,
    InternalError,
    RouteBuildError,
    TrackerError,
    ValidationError,
)
from parade_tracker.tracking.hub import Subscription
from parade_tracker.web.schemas import (
    HealthResponse,
    OkResponse,
    ReloadResponse,
    ResetResponse,
    SyncStateResponse,
)
from parade_tracker.web.service import TrackerService

load_dotenv()  # loads .env from project root; must run before env vars are consumed

_logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, AuthError):
        return JSONResponse(status_code=401, content={"error": "unauthorized"})
    if isinstance(exc, ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})
    if isinstance(exc, (ConfigurationError, RouteBuildError)):
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to build route.", "reason": str(exc)},
        )
    return JSONResponse(status_code=500, content={"error": "internal error"})


async def _tracker_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, (ConfigurationError, RouteBuildError)):
        _logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error_response(exc)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


async def _json_body(request: Request) -> Any:
    """Parsed JSON body, or None when it is empty or not JSON.

    Write endpoints read the body themselves so that a malformed request
    still reaches the token check and gets a 401 or 400.
    """
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def _token_of(body: Any) -> Any:
    return body.get("token") if isinstance(body, dict) else None


# ---------------------------------------------------------------------------
# Push channel
# ---------------------------------------------------------------------------


async def _pump(websocket: WebSocket, sub: Subscription) -> None:
    while True:
        event = await sub.get()
        await websocket.send_json(event.to_message())


async def _drain(websocket: WebSocket) -> None:
    # Viewers send nothing; reading is how a disconnect is noticed.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(service: TrackerService | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the application around *service* (or one wired from *settings*)."""
    if service is None:
        settings = settings or Settings.from_env()
        configure_logging(settings.log_level)
        service = TrackerService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        service.hub.close()

    app = FastAPI(title="Parade Tracker", version=__version__, lifespan=lifespan)
    app.state.tracker = service
    app.add_exception_handler(TrackerError, _tracker_error_handler)

    @app.middleware("http")
    async def no_store(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response

    # -----------------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.get("/api/route")
    async def get_route() -> dict[str, Any]:
        """Cached road-following path as a GeoJSON FeatureCollection."""
        route = await service.routes.get()
        return route.to_geojson()

    @app.post("/api/route/reload", response_model=ReloadResponse)
    async def reload_route(request: Request) -> ReloadResponse:
        """Rebuild the path; the previous path stays cached if this fails."""
        service.authorize(_token_of(await _json_body(request)))
        route = await service.routes.reload()
        _logger.info("Route reloaded from %s (%d points)", route.source, len(route.path))
        return ReloadResponse(
            built_at=route.built_at,
            source=route.source,
            points=len(route.path),
            total_km=route.path.total_km,
        )

    @app.post("/api/route-debug")
    async def route_debug(request: Request) -> JSONResponse:
        """Force a rebuild and report per-batch diagnostics."""
        service.authorize(_token_of(await _json_body(request)))
        try:
            route = await service.routes.reload()
        except (ConfigurationError, RouteBuildError) as exc:
            diag = service.routes.diagnostics
            return JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "error": str(exc),
                    "diag": diag.to_dict() if diag else None,
                },
            )
        diag = service.routes.diagnostics if route.source == "osrm" else None
        return JSONResponse(
            content={
                "ok": True,
                "source": route.source,
                "diag": diag.to_dict() if diag else None,
                "sample": [p.as_lnglat() for p in route.path.points[:5]],
            }
        )

    @app.get("/api/progress")
    async def get_progress() -> dict[str, Any]:
        """Path split at the current fix into completed and upcoming parts."""
        split, state = await service.progress()
        body = split.to_geojson()
        body["properties"].update(state)
        return body

    @app.get("/api/location")
    def get_location() -> dict[str, Any]:
        """Current fix, or an empty object when there is none."""
        fix = service.store.current().fix
        return fix.to_dict() if fix is not None else {}

    @app.get("/api/state", response_model=SyncStateResponse)
    def get_state() -> SyncStateResponse:
        """Epoch and location flag for polling viewers."""
        return SyncStateResponse(**service.sync_state())

    @app.post("/api/update-location", response_model=OkResponse)
    async def update_location(request: Request) -> OkResponse:
        """Submit a fix: ``{lat, lng, accuracy?, ts?, token}``."""
        payload = await _json_body(request)
        try:
            service.store.update(payload, _token_of(payload))
        except TrackerError:
            raise
        except Exception as exc:
            _logger.exception("Storing location failed")
            raise InternalError("store error") from exc
        return OkResponse()

    @app.post("/api/reset", response_model=ResetResponse)
    async def reset(request: Request) -> ResetResponse:
        """Clear the fix and start a new epoch."""
        token = _token_of(await _json_body(request))
        try:
            epoch = service.store.reset(token)
        except TrackerError:
            raise
        except Exception as exc:
            _logger.exception("Reset failed")
            raise InternalError("reset failed") from exc
        return ResetResponse(new_epoch=epoch)

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        """Push ``state`` on connect, then ``location`` and ``reset`` events."""
        await websocket.accept()
        sub = service.hub.subscribe()
        pump = asyncio.create_task(_pump(websocket, sub))
        drain = asyncio.create_task(_drain(websocket))
        try:
            done, _ = await asyncio.wait({pump, drain}, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    _logger.debug("Push channel closed: %s", task.exception())
        finally:
            for task in (pump, drain):
                task.cancel()
            await asyncio.gather(pump, drain, return_exceptions=True)
            service.hub.unsubscribe(sub)

    return app


app = create_app()
