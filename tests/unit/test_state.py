"""Unit tests for the pipeline state machine"""
import pytest

from covid_map.service_layer.state import (
    InvalidTransition,
    LivenessToken,
    PipelineCancelled,
    PipelineState,
    PipelineStateMachine,
)


def test_full_run_transitions():
    machine = PipelineStateMachine()

    machine.advance(PipelineState.FETCHING_METADATA)
    machine.advance(PipelineState.FETCHING_PAGE, 0)
    machine.advance(PipelineState.FETCHING_PAGE, 1)
    machine.advance(PipelineState.FLUSHING)
    machine.advance(PipelineState.COMPLETED)

    assert machine.finished
    assert machine.history == [
        (PipelineState.FETCHING_METADATA, None),
        (PipelineState.FETCHING_PAGE, 0),
        (PipelineState.FETCHING_PAGE, 1),
        (PipelineState.FLUSHING, None),
        (PipelineState.COMPLETED, None),
    ]


def test_terminal_states_are_final():
    machine = PipelineStateMachine()
    machine.advance(PipelineState.FETCHING_METADATA)
    machine.advance(PipelineState.COMPLETED)

    with pytest.raises(InvalidTransition):
        machine.advance(PipelineState.FETCHING_PAGE, 0)


def test_idle_cannot_complete_without_work():
    with pytest.raises(InvalidTransition):
        PipelineStateMachine().advance(PipelineState.COMPLETED)


def test_cancelled_token_blocks_page_and_flush():
    for state in (PipelineState.FETCHING_PAGE, PipelineState.FLUSHING):
        liveness = LivenessToken()
        machine = PipelineStateMachine(liveness)
        machine.advance(PipelineState.FETCHING_METADATA)
        liveness.cancel()

        with pytest.raises(PipelineCancelled):
            machine.advance(state, 0)
        assert machine.state is PipelineState.CANCELLED
