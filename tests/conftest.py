# pylint: disable=redefined-outer-name
import pytest

from covid_map.adapters.map_surface import AbstractMapSurface, Camera
from covid_map.adapters.repository import InMemoryAreaRepository
from covid_map.adapters.toronto_client import AbstractDataGateway, PageFetchError
from covid_map.adapters.token_client import AbstractCredentialManager, AccessTokenStore, CredentialError
from covid_map.domain.model import MetricRule
from covid_map.domain.schemas import CovidRecord, NeighbourhoodRecord, PackageShow
from covid_map.service_layer.context import PipelineSettings, ViewContext
from covid_map.service_layer.renderer import IncrementalRenderer

NEIGHBOURHOODS_PACKAGE = "neighbourhoods-package"
COVID_PACKAGE = "covid-package"


def square(x, y, size=1.0):
    """GeoJSON polygon with its lower-left corner at (x, y)."""
    return {
        "type": "Polygon",
        "coordinates": [[[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]],
    }


def neighbourhood(name, area_id=1, geometry=None, shape_area=2_000_000.0):
    return NeighbourhoodRecord.model_validate({
        "geometry": geometry or square(area_id, 0),
        "areaId": area_id,
        "areaName": name,
        "shapeArea": shape_area,
    })


def case(name, outcome="RESOLVED", hospitalized="No"):
    return CovidRecord.model_validate({
        "neighbourhoodName": name,
        "outcome": outcome,
        "currentlyHospitalized": hospitalized,
    })


def package(resource_id, total, active=True, last_modified="2021-03-01"):
    return PackageShow.model_validate({
        "title": resource_id,
        "resources": [
            {"datastoreActive": False, "id": f"{resource_id}-csv", "format": "CSV", "total": total},
            {"datastoreActive": active, "id": resource_id, "format": "JSON",
             "lastModified": last_modified, "total": total},
        ],
    })


class FakeGateway(AbstractDataGateway):
    """Serves pre-built pages and records every call in order."""

    def __init__(self):
        self.packages = {}
        self.pages = {}
        self.failing_pages = set()
        self.calls = []

    def add_package(self, package_id, resource_id, pages, total=None, active=True):
        if total is None:
            total = sum(len(p) for p in pages)
        self.packages[package_id] = package(resource_id, total, active=active)
        self.pages[resource_id] = pages

    def package_show(self, package_id):
        self.calls.append(("package_show", package_id))
        return self.packages.get(package_id, PackageShow(resources=[]))

    def neighbourhood_page(self, resource_id, page):
        return self._page(resource_id, page)

    def covid_page(self, resource_id, page):
        return self._page(resource_id, page)

    def _page(self, resource_id, page):
        self.calls.append(("page", resource_id, page))
        if (resource_id, page) in self.failing_pages:
            raise PageFetchError(f"page {page} of {resource_id} failed")
        pages = self.pages.get(resource_id, [])
        return list(pages[page]) if page < len(pages) else []

    def page_calls(self, resource_id):
        return [call[2] for call in self.calls if call[0] == "page" and call[1] == resource_id]


class FakeCredentialManager(AbstractCredentialManager):
    def __init__(self, store=None, fail=False):
        super().__init__(store or AccessTokenStore())
        self.fail = fail
        self.calls = 0

    def _request_token(self):
        self.calls += 1
        if self.fail:
            raise CredentialError("token endpoint unavailable")
        return f"token-{self.calls}"


class FakeMapSurface(AbstractMapSurface):
    def __init__(self, container=None, center=(0.0, 0.0), zoom=0, **options):
        super().__init__(Camera(lng=center[0], lat=center[1], zoom=zoom,
                                pitch=options.get("pitch", 0), bearing=options.get("bearing", 0)))
        self.container = container
        self.options = options
        self.controls = []
        self.sources = {}
        self.layers = []
        self.painted = []
        self.repaints = 0
        self.removed = False

    def add_control(self, control, position):
        self.controls.append((control, position))

    def add_source(self, source_id, data):
        self.sources[source_id] = data

    def add_layer(self, layer):
        self.layers.append(layer)

    def set_source_data(self, source_id, data):
        self.sources[source_id] = data
        self.painted.append(data)

    def _paint(self):
        self.repaints += 1

    def remove(self):
        super().remove()
        self.removed = True


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def fake_credentials():
    return FakeCredentialManager()


@pytest.fixture
def settings():
    return PipelineSettings(
        api_url="http://backend.test",
        resource_ids={"neighbourhoods": NEIGHBOURHOODS_PACKAGE, "covid": COVID_PACKAGE},
        page_size=100,
        flush_every=5,
        metric_rule=MetricRule.NON_ACTIVE,
        map_settings={
            "style": "mapbox://styles/mapbox/dark-v10",
            "center": (-79.404, 43.698),
            "zoom": 10,
            "pitch": 40,
            "bearing": 20,
            "antialias": True,
            "container": None,
        },
    )


@pytest.fixture
def make_context(settings, fake_gateway, fake_credentials):
    """Build a ViewContext wired to the fakes; keyword overrides replace settings fields."""
    def _make(**overrides):
        ctx_settings = settings
        if overrides:
            from dataclasses import replace
            ctx_settings = replace(settings, **overrides)
        return ViewContext(
            settings=ctx_settings,
            gateway=fake_gateway,
            credentials=fake_credentials,
            renderer=IncrementalRenderer(FakeMapSurface),
            areas=InMemoryAreaRepository(),
        )
    return _make
