"""Unit tests for the pagination engine"""
import pytest

from covid_map.adapters.toronto_client import PageFetchError
from covid_map.service_layer.pagination import (
    PaginationEngine,
    covid_records,
    neighbourhood_records,
    page_count,
)
from covid_map.service_layer.state import (
    LivenessToken,
    PipelineCancelled,
    PipelineState,
    PipelineStateMachine,
)
from conftest import case, neighbourhood


def engine_for(gateway, liveness=None, on_metadata=None):
    return PaginationEngine(gateway, PipelineStateMachine(liveness), on_metadata=on_metadata)


def test_page_count_is_not_rounded():
    assert page_count(250, 100) == 2.5
    assert page_count(200, 100) == 2
    assert page_count(150, 100) == 1.5


def test_fractional_page_count_fetches_the_trailing_page(fake_gateway):
    # page < total / page_size: 250 records -> pages 0, 1 and 2
    fake_gateway.add_package("pkg", "res", pages=[[case("A")] * 100, [case("A")] * 100, [case("A")] * 50])

    batches = list(engine_for(fake_gateway).fetch_all_pages("pkg", 100, covid_records))

    assert fake_gateway.page_calls("res") == [0, 1, 2]
    assert [len(b) for b in batches] == [100, 100, 50]


def test_exact_page_count(fake_gateway):
    fake_gateway.add_package("pkg", "res", pages=[[case("A")] * 100, [case("A")] * 100])

    list(engine_for(fake_gateway).fetch_all_pages("pkg", 100, covid_records))

    assert fake_gateway.page_calls("res") == [0, 1]


def test_metadata_query_comes_first(fake_gateway):
    fake_gateway.add_package("pkg", "res", pages=[[neighbourhood("Annex (95)")]])

    list(engine_for(fake_gateway).fetch_all_pages("pkg", 100, neighbourhood_records))

    assert fake_gateway.calls[0] == ("package_show", "pkg")
    assert fake_gateway.calls[1] == ("page", "res", 0)


def test_pages_are_requested_one_at_a_time(fake_gateway):
    fake_gateway.add_package("pkg", "res", pages=[[case("A")] * 100, [case("A")] * 100, [case("A")] * 100])

    batches = engine_for(fake_gateway).fetch_all_pages("pkg", 100, covid_records)
    next(batches)

    assert fake_gateway.page_calls("res") == [0]

    next(batches)
    assert fake_gateway.page_calls("res") == [0, 1]


def test_missing_active_resource_skips_pagination(fake_gateway):
    fake_gateway.add_package("pkg", "res", pages=[[case("A")]], active=False)

    batches = list(engine_for(fake_gateway).fetch_all_pages("pkg", 100, covid_records))

    assert batches == []
    assert fake_gateway.page_calls("res") == []


def test_unknown_package_skips_pagination(fake_gateway):
    assert list(engine_for(fake_gateway).fetch_all_pages("nope", 100, covid_records)) == []


def test_page_failure_aborts_remaining_pages(fake_gateway):
    fake_gateway.add_package("pkg", "res", pages=[[case("A")] * 100] * 4)
    fake_gateway.failing_pages.add(("res", 1))

    received = []
    with pytest.raises(PageFetchError):
        for batch in engine_for(fake_gateway).fetch_all_pages("pkg", 100, covid_records):
            received.append(batch)

    assert len(received) == 1
    assert fake_gateway.page_calls("res") == [0, 1]


def test_closed_view_stops_before_next_page(fake_gateway):
    fake_gateway.add_package("pkg", "res", pages=[[case("A")] * 100] * 3)
    liveness = LivenessToken()
    engine = engine_for(fake_gateway, liveness)

    batches = engine.fetch_all_pages("pkg", 100, covid_records)
    next(batches)
    liveness.cancel()

    with pytest.raises(PipelineCancelled):
        next(batches)
    assert fake_gateway.page_calls("res") == [0]
    assert engine.machine.state is PipelineState.CANCELLED


def test_metadata_callback_receives_active_resource(fake_gateway):
    fake_gateway.add_package("pkg", "res", pages=[[case("A")]])
    seen = []

    list(engine_for(fake_gateway, on_metadata=seen.append).fetch_all_pages("pkg", 100, covid_records))

    assert [r.id for r in seen] == ["res"]
    assert seen[0].last_modified == "2021-03-01"
