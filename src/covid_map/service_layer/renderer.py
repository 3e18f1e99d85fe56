"""
Incremental renderer.

Pushes full Dataset snapshots to the map surface. Each push replaces the
whole feature collection; a snapshot structurally equal to the last one
painted is skipped.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from covid_map.adapters.map_surface import AbstractMapSurface, Camera, NavigationControl
from covid_map.domain import style
from covid_map.domain.model import Dataset
from covid_map.service_layer.interaction import pole_of_inaccessibility

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[..., AbstractMapSurface]

EMPTY_COLLECTION = {"type": "FeatureCollection", "features": []}


@dataclass
class MapHandle:
    surface: AbstractMapSurface
    camera: Camera
    loaded: bool = False
    delivered: Dataset = field(default_factory=Dataset)
    last_hash: Optional[str] = None
    set_data_calls: int = 0
    paint_count: int = 0


class IncrementalRenderer:
    def __init__(self, surface_factory: SurfaceFactory):
        self.surface_factory = surface_factory

    def initialize(self, container: Optional[str], initial_center: Tuple[float, float],
                   initial_zoom: float, options: Optional[Dict[str, Any]] = None) -> MapHandle:
        """Create the surface with the initial camera, navigation control and area layers."""
        options = dict(options or {})
        surface = self.surface_factory(
            container=container, center=initial_center, zoom=initial_zoom, **options
        )
        surface.add_control(NavigationControl(visualize_pitch=True), "bottom-right")

        handle = MapHandle(surface=surface, camera=surface.camera)
        surface.on("move", lambda camera: setattr(handle, "camera", camera))

        surface.resize()
        surface.add_source(style.AREA_SOURCE_ID, EMPTY_COLLECTION)
        surface.add_layer(style.AREA_LAYER)
        surface.add_layer(style.LABEL_LAYER)
        handle.loaded = True
        surface.emit("load")

        logger.info(f"Map surface initialized at {initial_center} zoom {initial_zoom}")
        return handle

    def set_data(self, handle: MapHandle, dataset: Dataset) -> bool:
        """Replace the rendered collection. Returns False when nothing changed."""
        handle.set_data_calls += 1
        digest = dataset.structural_hash()
        if digest == handle.last_hash:
            logger.debug("Snapshot unchanged, skipping paint")
            return False

        handle.surface.set_source_data(style.AREA_SOURCE_ID, to_render_collection(dataset))
        handle.delivered = dataset
        handle.last_hash = digest
        handle.paint_count += 1
        logger.info(f"Rendered snapshot with {len(dataset)} areas")
        return True


def to_render_collection(dataset: Dataset) -> Dict[str, Any]:
    """Feature collection with the derived paint properties filled in."""
    collection = dataset.to_feature_collection()
    for feature, area in zip(collection["features"], dataset):
        props = feature["properties"]
        ratio = style.density_ratio(area.active_cases, area.shape_area)
        props["fillColor"] = style.ramp_color(ratio)
        anchor = pole_of_inaccessibility(area.geometry)
        props["labelAnchor"] = list(anchor) if anchor else None
    return collection
