"""
Hosting view for the neighbourhood case map.

Owns one ViewContext for its lifetime: fetches the token, creates the
surface, wires the surface events into the message bus and runs the data
load. Closing the view cancels the load before its next page or flush.
"""
import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from covid_map.adapters.map_surface import ClickEvent, DeckMapSurface, RenderError
from covid_map.adapters.repository import InMemoryAreaRepository
from covid_map.adapters.toronto_client import HTTPDataGateway
from covid_map.adapters.token_client import AccessTokenStore, CredentialError, HTTPCredentialManager
from covid_map.domain import commands, events
from covid_map.service_layer import messagebus, pipeline
from covid_map.service_layer.context import PipelineSettings, ViewContext
from covid_map.service_layer.interaction import Popup
from covid_map.service_layer.renderer import IncrementalRenderer

logger = logging.getLogger(__name__)

# Keys of get_map_settings() that are not surface options
_CAMERA_KEYS = ("center", "zoom", "container")


class MapView:
    def __init__(self, ctx: ViewContext):
        self.ctx = ctx
        self.error = ""
        self.last_popup = None  # type: Optional[Popup]

    @classmethod
    def from_config(cls) -> "MapView":
        settings = PipelineSettings.from_config()
        store = AccessTokenStore()
        renderer = IncrementalRenderer(
            lambda **kwargs: DeckMapSurface(token_provider=store, **kwargs)
        )
        ctx = ViewContext(
            settings=settings,
            gateway=HTTPDataGateway(base_url=settings.api_url),
            credentials=HTTPCredentialManager(store, base_url=settings.api_url),
            renderer=renderer,
            areas=InMemoryAreaRepository(),
        )
        return cls(ctx)

    @property
    def surface(self):
        return self.ctx.handle.surface if self.ctx.handle else None

    def open(self) -> bool:
        """Fetch the token and create the surface. Returns False when the token is unavailable."""
        try:
            messagebus.handle(commands.FetchAccessToken(), self.ctx)
        except CredentialError as e:
            self.error = str(e) or "Could not obtain a map access token"
            return False

        settings = self.ctx.settings.map_settings
        options = {k: v for k, v in settings.items() if k not in _CAMERA_KEYS}
        self.ctx.handle = self.ctx.renderer.initialize(
            settings.get("container"), settings["center"], settings["zoom"], options
        )
        surface = self.ctx.handle.surface
        surface.on("move", self._on_move)
        surface.on("click", self._on_click)
        surface.on("error", self._on_error)
        return True

    def load(self):
        if self.ctx.handle is None:
            logger.warning("Map view not open, nothing to load")
            return None
        return pipeline.run(self.ctx)

    def close(self) -> None:
        self.ctx.liveness.cancel()
        if self.ctx.handle is not None:
            self.ctx.handle.surface.remove()
        logger.info("Map view closed")

    def center_map(self) -> None:
        if self.surface is not None:
            settings = self.ctx.settings.map_settings
            self.surface.fly_to(settings["center"], settings["zoom"])

    def move(self, lng: float, lat: float, zoom: float) -> None:
        """Record where the browser map moved to; the rendered page already shows it."""
        self.surface.sync_camera(replace(self.surface.camera, lng=lng, lat=lat, zoom=zoom))

    def resize(self) -> None:
        if self.surface is not None:
            self.surface.resize()

    def click(self, lng: float, lat: float, layer_id: str = None,
              feature_name: str = None) -> Optional[Popup]:
        self.last_popup = None
        self.surface.emit("click", ClickEvent(lng=lng, lat=lat, layer_id=layer_id,
                                              feature_name=feature_name))
        return self.last_popup

    def status(self) -> Dict[str, Any]:
        ctx = self.ctx
        return {
            "state": ctx.machine.state.value,
            "error": self.error,
            "reported_date": ctx.reported_date,
            "is_data_loaded": ctx.is_data_loaded,
            "camera": list(ctx.camera) if ctx.camera else None,
            "areas": len(ctx.delivered),
            "snapshot_hash": ctx.handle.last_hash if ctx.handle else None,
            "unmatched_cases": ctx.aggregator.unmatched_cases,
            "failures": [f.reason for f in ctx.failures],
        }

    def _on_move(self, camera):
        messagebus.handle(events.CameraMoved(lng=camera.lng, lat=camera.lat, zoom=camera.zoom), self.ctx)

    def _on_click(self, click: ClickEvent):
        [self.last_popup] = messagebus.handle(
            commands.ResolvePopup(
                lng=click.lng, lat=click.lat,
                layer_id=click.layer_id, feature_name=click.feature_name,
            ),
            self.ctx,
        )

    def _on_error(self, error: RenderError):
        messagebus.handle(events.RenderErrorRaised(status=error.status, message=str(error)), self.ctx)
