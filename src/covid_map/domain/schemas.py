"""Response schemas for the token endpoint and the Toronto open data proxy."""

import json
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from shapely.geometry import shape

from covid_map.domain.model import Area, CaseRecord, clean_area_name

Model = TypeVar("Model", bound=BaseModel)


class ParseError(Exception):
    """Raised when a response does not match the expected schema."""
    pass


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TokenResponse(_Schema):
    token: str


class Resource(_Schema):
    datastore_active: bool = Field(alias="datastoreActive")
    id: str
    format: Optional[str] = None
    last_modified: Optional[str] = Field(default=None, alias="lastModified")
    total: Optional[int] = None


class PackageShow(_Schema):
    title: Optional[str] = None
    resources: List[Resource] = Field(default_factory=list)

    def active_resource(self) -> Optional[Resource]:
        """First resource flagged as queryable through the datastore."""
        return next((r for r in self.resources if r.datastore_active), None)


class PackageShowResponse(_Schema):
    result: PackageShow


class NeighbourhoodRecord(_Schema):
    geometry: Dict[str, Any]
    area_id: Union[int, str] = Field(alias="areaId")
    area_name: str = Field(alias="areaName")
    shape_area: float = Field(alias="shapeArea")

    @field_validator("geometry", mode="before")
    @classmethod
    def _decode_geometry(cls, value):
        # The datastore ships geometry as a GeoJSON string
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(f"geometry is not valid JSON: {e}") from e
        return value

    def to_area(self) -> Area:
        try:
            geometry = shape(self.geometry)
        except Exception as e:
            raise ParseError(f"Invalid geometry for area {self.area_name}: {e}") from e
        return Area(
            name=clean_area_name(self.area_name),
            area_id=self.area_id,
            geometry=geometry,
            shape_area=self.shape_area,
        )


class CovidRecord(_Schema):
    neighbourhood_name: Optional[str] = Field(default=None, alias="neighbourhoodName")
    outcome: str
    currently_hospitalized: Optional[str] = Field(default=None, alias="currentlyHospitalized")

    def to_case(self) -> CaseRecord:
        return CaseRecord(
            neighbourhood_name=self.neighbourhood_name or "",
            outcome=self.outcome,
            currently_hospitalized=self.currently_hospitalized or "",
        )


class DataStore(_Schema):
    neighbourhoods_records: Optional[List[NeighbourhoodRecord]] = Field(
        default=None, alias="neighbourhoodsRecords"
    )
    covid_records: Optional[List[CovidRecord]] = Field(default=None, alias="covidRecords")


class DataStoreResponse(_Schema):
    result: DataStore


def parse(model: Type[Model], payload: Any) -> Model:
    """Validate a decoded JSON payload against ``model``."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"Unexpected {model.__name__} payload: {e}") from e
