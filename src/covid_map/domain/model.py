"""
Neighbourhood case map domain model.

Areas are created once from the geometry stream and only ever mutated by
the aggregator. Everything handed to the renderer is a frozen Dataset built
from copies of the working areas.
"""
import hashlib
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

ACTIVE_CASES = "covidActiveCases"

# "Annex (95)" -> "Annex"
_NUMERIC_SUFFIX = re.compile(r" \(\d+\)")


class Outcome(str, Enum):
    """Case outcome classification reported by the city."""
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    FATAL = "FATAL"


HOSPITALIZED_YES = "Yes"


class MetricRule(Enum):
    """Which case records increment the active-case metric."""
    NON_ACTIVE = "non-active"  # default
    ACTIVE = "active"

    def counts(self, record: "CaseRecord") -> bool:
        if self is MetricRule.ACTIVE:
            return record.outcome == Outcome.ACTIVE.value
        return record.outcome != Outcome.ACTIVE.value


def clean_area_name(name: str) -> str:
    """Strip the parenthesized area number from a neighbourhood name."""
    return _NUMERIC_SUFFIX.split(name, maxsplit=1)[0]


@dataclass(frozen=True)
class CaseRecord:
    neighbourhood_name: str
    outcome: str
    currently_hospitalized: str  # "Yes" / "No" / anything else the source sends

    @property
    def is_active(self) -> bool:
        return self.outcome == Outcome.ACTIVE.value

    @property
    def is_hospitalized(self) -> bool:
        return self.currently_hospitalized == HOSPITALIZED_YES

    def to_dict(self) -> Dict[str, str]:
        return {
            "neighbourhoodName": self.neighbourhood_name,
            "outcome": self.outcome,
            "currentlyHospitalized": self.currently_hospitalized,
        }


@dataclass
class Area:
    """Working (mutable) area owned by the aggregator."""
    name: str
    area_id: Union[int, str]
    geometry: BaseGeometry
    shape_area: float
    metrics: Dict[str, int] = field(default_factory=lambda: {ACTIVE_CASES: 0})
    cases: List[CaseRecord] = field(default_factory=list)

    @property
    def active_cases(self) -> int:
        return self.metrics[ACTIVE_CASES]

    def add_case(self, record: CaseRecord, rule: MetricRule) -> None:
        self.cases.append(record)
        if rule.counts(record):
            self.metrics[ACTIVE_CASES] += 1

    def freeze(self) -> "AreaSnapshot":
        # shapely geometries are immutable, everything else is copied
        return AreaSnapshot(
            name=self.name,
            area_id=self.area_id,
            geometry=self.geometry,
            shape_area=self.shape_area,
            metrics=MappingProxyType(dict(self.metrics)),
            cases=tuple(self.cases),
        )


@dataclass(frozen=True)
class AreaSnapshot:
    name: str
    area_id: Union[int, str]
    geometry: BaseGeometry
    shape_area: float
    metrics: Mapping[str, int]
    cases: Tuple[CaseRecord, ...]

    @property
    def active_cases(self) -> int:
        return self.metrics[ACTIVE_CASES]

    def to_feature(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": json.loads(json.dumps(mapping(self.geometry))),
            "properties": {
                "id": self.area_id,
                "name": self.name,
                "shapeArea": self.shape_area,
                ACTIVE_CASES: self.active_cases,
                "covid": [case.to_dict() for case in self.cases],
            },
        }


@dataclass(frozen=True)
class Dataset:
    """Immutable snapshot of all areas, keyed by cleaned name."""
    areas: Mapping[str, AreaSnapshot] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_areas(cls, areas: Iterable[Area]) -> "Dataset":
        return cls(areas=MappingProxyType({area.name: area.freeze() for area in areas}))

    def __len__(self) -> int:
        return len(self.areas)

    def __iter__(self) -> Iterator[AreaSnapshot]:
        return iter(self.areas.values())

    def __contains__(self, name) -> bool:
        return name in self.areas

    def get(self, name: Optional[str]) -> Optional[AreaSnapshot]:
        if name is None:
            return None
        return self.areas.get(name)

    def to_feature_collection(self) -> Dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [area.to_feature() for area in self.areas.values()],
        }

    def structural_hash(self) -> str:
        payload = json.dumps(self.to_feature_collection(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
