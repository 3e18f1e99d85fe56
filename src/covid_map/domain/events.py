"""Domain events for the neighbourhood case map."""

from dataclasses import dataclass

from shared.domain.commands import Event


@dataclass
class ReportedDateChanged(Event):
    """Event raised when a metadata query reports the resource modification date."""
    last_modified: str


@dataclass
class NeighbourhoodsLoaded(Event):
    area_count: int


@dataclass
class CasesLoaded(Event):
    """Event raised when the case stream has been fully consumed."""
    matched: int
    unmatched: int


@dataclass
class StreamFailed(Event):
    """Event raised when pagination for one package was aborted."""
    package_id: str
    reason: str


@dataclass
class CameraMoved(Event):
    lng: float
    lat: float
    zoom: float


@dataclass
class RenderErrorRaised(Event):
    """Event raised when the map surface reports an error (401 = expired token)."""
    status: int
    message: str = ""
