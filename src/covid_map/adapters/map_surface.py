"""
Map surface adapters.

The surface is the live rendering target: it owns the camera, the GeoJSON
sources and the layers, and emits discrete events (``load``, ``move``,
``click``, ``error``) that the hosting view subscribes to.
"""
import abc
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

import pydeck as pdk

logger = logging.getLogger(__name__)

POLYGON_TYPES = ("Polygon", "MultiPolygon")


@dataclass(frozen=True)
class Camera:
    lng: float
    lat: float
    zoom: float
    pitch: float = 0
    bearing: float = 0


@dataclass(frozen=True)
class ClickEvent:
    lng: float
    lat: float
    layer_id: Optional[str] = None  # None for a click on bare map background
    feature_name: Optional[str] = None


class RenderError(Exception):
    """Error reported by the map surface."""

    def __init__(self, status: int, message: str = ""):
        super().__init__(message or f"Map surface error {status}")
        self.status = status

    @classmethod
    def from_status(cls, status: int, message: str = "") -> "RenderError":
        if status == 401:
            return RenderAuthError(status, message)
        return cls(status, message)


class RenderAuthError(RenderError):
    """The surface rejected the access token (HTTP 401)."""
    pass


@dataclass(frozen=True)
class NavigationControl:
    visualize_pitch: bool = True


class AbstractMapSurface(abc.ABC):
    """Event-emitting render target."""

    def __init__(self, camera: Camera):
        self._handlers = defaultdict(list)  # type: Dict[str, List[Callable]]
        self._camera = camera

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self._handlers[event].append(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for handler in list(self._handlers[event]):
            try:
                handler(payload)
            except Exception:
                logger.exception("Exception handling map %s event", event)

    @abc.abstractmethod
    def add_control(self, control: NavigationControl, position: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def add_source(self, source_id: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def add_layer(self, layer: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def set_source_data(self, source_id: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _paint(self) -> None:
        raise NotImplementedError

    @property
    def camera(self) -> Camera:
        return self._camera

    def jump_to(self, camera: Camera) -> None:
        self._camera = camera
        self.emit("move", camera)
        self._paint()

    def fly_to(self, center: Tuple[float, float], zoom: float) -> None:
        self.jump_to(replace(self.camera, lng=center[0], lat=center[1], zoom=zoom))

    def sync_camera(self, camera: Camera) -> None:
        """Adopt a camera the client already shows. Emits ``move`` without repainting."""
        self._camera = camera
        self.emit("move", camera)

    def refresh_credentials(self) -> None:
        """Repaint with the current access token; sources are left as delivered."""
        self._paint()

    def resize(self) -> None:
        pass

    def remove(self) -> None:
        self._handlers.clear()


class DeckMapSurface(AbstractMapSurface):
    """
    pydeck-backed surface.

    Every data change rebuilds the deck and, when a container path is given,
    rewrites the HTML the browser displays.
    """

    def __init__(self, container: Optional[str], style: str, center: Tuple[float, float],
                 zoom: float, pitch: float = 0, bearing: float = 0,
                 token_provider: Callable[[], Optional[str]] = lambda: None, **options):
        super().__init__(Camera(lng=center[0], lat=center[1], zoom=zoom, pitch=pitch, bearing=bearing))
        self.container = container
        self.style = style
        self.token_provider = token_provider
        self.options = options
        self.sources = {}  # type: Dict[str, Dict[str, Any]]
        self.layers = []  # type: List[Dict[str, Any]]
        self.controls = []  # type: List[Tuple[NavigationControl, str]]
        self.deck = None  # type: Optional[pdk.Deck]
        self._paint_lock = threading.Lock()

    def add_control(self, control, position):
        self.controls.append((control, position))

    def add_source(self, source_id, data):
        self.sources[source_id] = data

    def add_layer(self, layer):
        self.layers.append(layer)

    def set_source_data(self, source_id, data):
        if source_id not in self.sources:
            raise KeyError(f"Unknown source {source_id}")
        self.sources[source_id] = data
        self._paint()

    def build_deck(self) -> pdk.Deck:
        layers = [self._build_layer(layer) for layer in self.layers]
        return pdk.Deck(
            layers=[layer for layer in layers if layer is not None],
            initial_view_state=pdk.ViewState(
                longitude=self._camera.lng,
                latitude=self._camera.lat,
                zoom=self._camera.zoom,
                pitch=self._camera.pitch,
                bearing=self._camera.bearing,
            ),
            map_provider="mapbox",
            map_style=self.style,
            api_keys={"mapbox": self.token_provider()},
            tooltip={"html": "<b>{name}</b><br/>Active cases: {covidActiveCases}"},
        )

    def _build_layer(self, layer: Dict[str, Any]) -> Optional[pdk.Layer]:
        features = self.sources.get(layer["source"], {}).get("features", [])

        if layer["type"] == "fill-extrusion":
            polygons = [f for f in features if f["geometry"]["type"] in POLYGON_TYPES]
            return pdk.Layer(
                "GeoJsonLayer",
                id=layer["id"],
                data={"type": "FeatureCollection", "features": polygons},
                pickable=True,
                extruded=True,
                filled=True,
                get_fill_color="properties.fillColor",
                get_elevation="properties.covidActiveCases",
                opacity=layer["paint"]["fill-extrusion-opacity"],
            )

        if layer["type"] == "symbol":
            labels = [
                {"position": f["properties"]["labelAnchor"], "name": f["properties"]["name"]}
                for f in features
                if f["properties"].get("labelAnchor")
            ]
            return pdk.Layer(
                "TextLayer",
                id=layer["id"],
                data=labels,
                get_position="position",
                get_text="name",
                get_color=[255, 255, 255],
                get_size=12,
                outline_width=1,
                outline_color=[34, 34, 34],
            )

        logger.warning(f"Unsupported layer type {layer['type']} for layer {layer['id']}")
        return None

    def _paint(self):
        # loader and request threads both repaint; one writer per container file
        with self._paint_lock:
            self.deck = self.build_deck()
            if self.container:
                self.deck.to_html(self.container, open_browser=False, notebook_display=False)
                logger.debug(f"Map written to {self.container}")
