"""Unit tests for response schemas"""
import json

import pytest

from covid_map.domain.schemas import (
    DataStoreResponse,
    NeighbourhoodRecord,
    PackageShowResponse,
    ParseError,
    TokenResponse,
    parse,
)
from conftest import square


def test_neighbourhood_record_decodes_geometry_string():
    record = parse(NeighbourhoodRecord, {
        "geometry": json.dumps(square(0, 0)),
        "areaId": 95,
        "areaName": "Annex (95)",
        "shapeArea": 2_000_000,
    })

    area = record.to_area()

    assert area.name == "Annex"
    assert area.area_id == 95
    assert area.geometry.geom_type == "Polygon"
    assert area.shape_area == 2_000_000.0


def test_invalid_geometry_json_is_a_parse_error():
    with pytest.raises(ParseError):
        parse(NeighbourhoodRecord, {
            "geometry": "{not json",
            "areaId": 1,
            "areaName": "Annex (95)",
            "shapeArea": 1,
        })


def test_missing_field_is_a_parse_error():
    with pytest.raises(ParseError):
        parse(NeighbourhoodRecord, {"geometry": square(0, 0), "areaName": "Annex"})


def test_package_show_selects_first_active_resource():
    response = parse(PackageShowResponse, {
        "result": {
            "title": "Neighbourhoods",
            "resources": [
                {"datastoreActive": False, "id": "a", "format": "ZIP", "total": 0},
                {"datastoreActive": True, "id": "b", "format": "JSON", "total": 140,
                 "lastModified": "2021-03-01T10:00:00"},
                {"datastoreActive": True, "id": "c", "format": "CSV", "total": 140},
            ],
        }
    })

    resource = response.result.active_resource()

    assert resource.id == "b"
    assert resource.total == 140
    assert resource.last_modified == "2021-03-01T10:00:00"


def test_package_show_without_active_resource():
    response = parse(PackageShowResponse, {
        "result": {"resources": [{"datastoreActive": False, "id": "a"}]}
    })

    assert response.result.active_resource() is None


def test_datastore_case_records():
    response = parse(DataStoreResponse, {
        "result": {
            "covidRecords": [
                {"neighbourhoodName": "Annex", "outcome": "ACTIVE", "currentlyHospitalized": "Yes"},
                {"neighbourhoodName": None, "outcome": "RESOLVED", "currentlyHospitalized": None},
            ]
        }
    })

    first, second = [r.to_case() for r in response.result.covid_records]
    assert first.is_active and first.is_hospitalized
    assert second.neighbourhood_name == ""
    assert not second.is_hospitalized
    assert response.result.neighbourhoods_records is None


def test_token_response_requires_token():
    assert parse(TokenResponse, {"token": "pk.abc"}).token == "pk.abc"
    with pytest.raises(ParseError):
        parse(TokenResponse, {"access": "pk.abc"})
