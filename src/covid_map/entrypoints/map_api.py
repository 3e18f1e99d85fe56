"""
Map view API - HTTP host for the neighbourhood case map.
The browser map posts its surface events here; the view answers with popups
and status.
"""

import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel

from covid_map.adapters.map_surface import RenderError
from covid_map.entrypoints.map_view import MapView

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ClickRequest(BaseModel):
    lng: float
    lat: float
    layer_id: Optional[str] = None
    feature_name: Optional[str] = None


class MoveRequest(BaseModel):
    lng: float
    lat: float
    zoom: float


class ErrorRequest(BaseModel):
    status: int
    message: str = ""


def create_app(view: Optional[MapView] = None, autostart: bool = True) -> FastAPI:
    view = view or MapView.from_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if autostart and view.open():
            threading.Thread(target=view.load, name="map-data-load", daemon=True).start()
            logger.info("Map data load started")
        yield
        view.close()

    app = FastAPI(
        title="Neighbourhood Case Map",
        description="Toronto COVID-19 cases per neighbourhood on a live map",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.view = view

    def _require_surface():
        if view.surface is None:
            raise HTTPException(status_code=503, detail=view.error or "Map view not open")
        return view.surface

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "covid-map",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/")
    def index():
        container = view.ctx.settings.map_settings.get("container")
        if not container or view.surface is None:
            raise HTTPException(status_code=404, detail="Map is not rendered to a file")
        return FileResponse(container)

    @app.get("/api/v1/view")
    def get_view_status():
        return view.status()

    @app.get("/api/v1/areas")
    def get_areas():
        return view.ctx.delivered.to_feature_collection()

    @app.post("/api/v1/events/click")
    def post_click(request: ClickRequest):
        _require_surface()
        popup = view.click(request.lng, request.lat, request.layer_id, request.feature_name)
        if popup is None:
            raise HTTPException(status_code=500, detail="Click could not be resolved")
        return popup.to_dict()

    @app.post("/api/v1/events/move")
    def post_move(request: MoveRequest):
        _require_surface()
        view.move(request.lng, request.lat, request.zoom)
        return list(view.ctx.camera)

    @app.post("/api/v1/events/error")
    def post_error(request: ErrorRequest):
        surface = _require_surface()
        surface.emit("error", RenderError.from_status(request.status, request.message))
        return {"status": "accepted"}

    @app.post("/api/v1/view/center")
    def post_center():
        _require_surface()
        view.center_map()
        return list(view.ctx.camera)

    return app


app = create_app()
