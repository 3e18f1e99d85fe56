"""
Click handling: popup anchor and case summary for an area.

Anchors use the pole of inaccessibility rather than the centroid so the
popup stays inside concave neighbourhoods.
"""
import html
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import polylabel

from covid_map.adapters.map_surface import ClickEvent
from covid_map.domain.model import AreaSnapshot, Dataset

# Degrees; roughly ten metres at Toronto's latitude
ANCHOR_TOLERANCE = 1e-4

NO_NAME = "No Name"


def pole_of_inaccessibility(geometry: BaseGeometry,
                            tolerance: float = ANCHOR_TOLERANCE) -> Optional[Tuple[float, float]]:
    """Point inside ``geometry`` farthest from its boundary, or None for non-areal shapes."""
    if isinstance(geometry, MultiPolygon):
        geometry = max(geometry.geoms, key=lambda part: part.area)
    if not isinstance(geometry, Polygon) or geometry.is_empty:
        return None
    point = polylabel(geometry, tolerance=tolerance)
    return (point.x, point.y)


def resolve_anchor(area: Optional[AreaSnapshot], click: ClickEvent) -> Tuple[float, float]:
    if area is not None:
        anchor = pole_of_inaccessibility(area.geometry)
        if anchor is not None:
            return anchor
    return (click.lng, click.lat)


@dataclass(frozen=True)
class PopupSummary:
    title: str
    total: int
    active: int
    hospitalized: int

    @classmethod
    def for_area(cls, area: Optional[AreaSnapshot]) -> "PopupSummary":
        if area is None:
            return cls(title=NO_NAME, total=0, active=0, hospitalized=0)
        return cls(
            title=area.name,
            total=len(area.cases),
            active=sum(1 for case in area.cases if case.is_active),
            hospitalized=sum(1 for case in area.cases if case.is_hospitalized),
        )

    def to_html(self) -> str:
        return (
            f"<h5>{html.escape(self.title)}</h5>\n"
            f"<p>Total Cases: {self.total}</p>\n"
            f"<p>Active Cases: {self.active}</p>\n"
            f"<p>Hospitalized: {self.hospitalized}</p>"
        )


@dataclass(frozen=True)
class Popup:
    anchor: Tuple[float, float]
    summary: PopupSummary

    @property
    def html(self) -> str:
        return self.summary.to_html()

    def to_dict(self):
        return dict(asdict(self.summary), anchor=list(self.anchor), html=self.html)


def build_popup(dataset: Dataset, click: ClickEvent) -> Popup:
    area = dataset.get(click.feature_name) if click.layer_id is not None else None
    return Popup(anchor=resolve_anchor(area, click), summary=PopupSummary.for_area(area))
