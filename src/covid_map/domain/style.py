"""
Paint and layout rules of the area layers.

The colour ramp runs over active cases per square kilometre
(``covidActiveCases / (shapeArea / 1_000_000)``). The stops are a density
normalisation; keep their order and breakpoints.
"""
import math
from typing import List, Sequence, Tuple

from covid_map.domain.model import ACTIVE_CASES

AREA_SOURCE_ID = "toronto-neighbourhoods"
AREA_LAYER_ID = "toronto-neighbourhoods"
LABEL_LAYER_ID = "neighbourhood-labels"

SQUARE_METRES_PER_KM2 = 1_000_000

COLOR_STOPS: Tuple[Tuple[float, str], ...] = (
    (0, "black"),
    (1, "yellow"),
    (20, "orange"),
    (50, "red"),
)

NAMED_COLORS = {
    "black": (0, 0, 0),
    "yellow": (255, 255, 0),
    "orange": (255, 165, 0),
    "red": (255, 0, 0),
}

EXTRUSION_OPACITY = 0.5

FILL_EXTRUSION_PAINT = {
    "fill-extrusion-color": [
        "interpolate",
        ["linear"],
        ["/", ["get", ACTIVE_CASES], ["/", ["get", "shapeArea"], SQUARE_METRES_PER_KM2]],
        *[item for stop in COLOR_STOPS for item in stop],
    ],
    "fill-extrusion-height": ["get", ACTIVE_CASES],
    "fill-extrusion-base": 0,
    "fill-extrusion-opacity": EXTRUSION_OPACITY,
}

AREA_LAYER = {
    "id": AREA_LAYER_ID,
    "type": "fill-extrusion",
    "source": AREA_SOURCE_ID,
    "paint": FILL_EXTRUSION_PAINT,
    "filter": ["==", "$type", "Polygon"],
}

LABEL_LAYER = {
    "id": LABEL_LAYER_ID,
    "type": "symbol",
    "source": AREA_SOURCE_ID,
    "layout": {
        "text-field": ["get", "name"],
        "text-variable-anchor": ["top", "bottom", "left", "right"],
        "text-radial-offset": 0.5,
        "text-justify": "center",
        "text-size": ["interpolate", ["linear"], ["zoom"], 11, 10, 15, 20],
    },
    "paint": {
        "text-color": "#ffffff",
        "text-halo-width": 1,
        "text-halo-color": "#222222",
        "text-halo-blur": 1,
    },
}


def density_ratio(active_cases: float, shape_area: float) -> float:
    """Active cases per km2, the input of the colour ramp."""
    if shape_area <= 0:
        return math.inf if active_cases else 0.0
    return active_cases / (shape_area / SQUARE_METRES_PER_KM2)


def ramp_color(ratio: float, stops: Sequence[Tuple[float, str]] = COLOR_STOPS) -> List[int]:
    """Evaluate the linear colour interpolation at ``ratio`` as an RGB triple."""
    if ratio <= stops[0][0]:
        return list(NAMED_COLORS[stops[0][1]])
    for (low, low_color), (high, high_color) in zip(stops, stops[1:]):
        if ratio <= high:
            t = (ratio - low) / (high - low)
            start, end = NAMED_COLORS[low_color], NAMED_COLORS[high_color]
            return [round(a + (b - a) * t) for a, b in zip(start, end)]
    return list(NAMED_COLORS[stops[-1][1]])
