"""
Pipeline state machine.

The data load is one sequential task:
Idle -> FetchingMetadata -> FetchingPage(n)... -> Flushing -> ... -> Completed.
Every transition into a working state first checks the liveness token so a
torn-down view never fetches another page or pushes another snapshot.
"""
import logging
import threading
from enum import Enum
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    FETCHING_METADATA = "fetching_metadata"
    FETCHING_PAGE = "fetching_page"
    FLUSHING = "flushing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = {PipelineState.COMPLETED, PipelineState.FAILED, PipelineState.CANCELLED}

_WORKING = {
    PipelineState.FETCHING_METADATA,
    PipelineState.FETCHING_PAGE,
    PipelineState.FLUSHING,
}

TRANSITIONS = {
    PipelineState.IDLE: _WORKING | {PipelineState.FAILED},
    PipelineState.FETCHING_METADATA: _WORKING | {PipelineState.COMPLETED, PipelineState.FAILED},
    PipelineState.FETCHING_PAGE: _WORKING | {PipelineState.COMPLETED, PipelineState.FAILED},
    PipelineState.FLUSHING: _WORKING | {PipelineState.COMPLETED, PipelineState.FAILED},
    PipelineState.COMPLETED: set(),
    PipelineState.FAILED: set(),
    PipelineState.CANCELLED: set(),
}


class LivenessToken:
    """Cancellation signal owned by the hosting view."""

    def __init__(self):
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def alive(self) -> bool:
        return not self._cancelled.is_set()


class PipelineStateMachine:
    def __init__(self, liveness: Optional[LivenessToken] = None):
        self.liveness = liveness or LivenessToken()
        self.state = PipelineState.IDLE
        self.page = None  # type: Optional[int]
        self.history = []  # type: List[Tuple[PipelineState, Optional[int]]]

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, state: PipelineState, page: Optional[int] = None) -> None:
        """
        Move to ``state``.

        Raises:
            PipelineCancelled: If the view was torn down; the machine ends in CANCELLED
            InvalidTransition: If ``state`` is not reachable from the current state
        """
        if state in _WORKING and not self.liveness.alive:
            self._set(PipelineState.CANCELLED, None)
            raise PipelineCancelled(f"View closed before entering {state.value}")

        if state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {state.value}")

        self._set(state, page)

    def _set(self, state, page):
        self.state = state
        self.page = page
        self.history.append((state, page))
        if page is None:
            logger.debug(f"Pipeline state: {state.value}")
        else:
            logger.debug(f"Pipeline state: {state.value}({page})")


class PipelineCancelled(Exception):
    """Raised when the hosting view is torn down mid-pipeline."""
    pass


class InvalidTransition(Exception):
    pass
