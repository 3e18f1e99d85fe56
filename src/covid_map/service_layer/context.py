"""
View context: everything one map view's pipeline needs, built once and
passed into every handler instead of module-level globals.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import config
from covid_map.adapters.repository import AbstractAreaRepository
from covid_map.adapters.toronto_client import AbstractDataGateway
from covid_map.adapters.token_client import AbstractCredentialManager
from covid_map.domain.model import Dataset, MetricRule
from covid_map.service_layer.aggregator import SpatialAggregator
from covid_map.service_layer.renderer import IncrementalRenderer, MapHandle
from covid_map.service_layer.state import LivenessToken, PipelineState, PipelineStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineSettings:
    api_url: str
    resource_ids: Dict[str, str]
    page_size: int = 100
    flush_every: int = 5
    metric_rule: MetricRule = MetricRule.NON_ACTIVE
    map_settings: Dict = field(default_factory=dict)

    @classmethod
    def from_config(cls) -> PipelineSettings:
        return cls(
            api_url=config.get_api_url(),
            resource_ids=config.get_resource_ids(),
            page_size=config.get_page_size(),
            flush_every=config.get_flush_every(),
            metric_rule=MetricRule(config.get_metric_rule()),
            map_settings=config.get_map_settings(),
        )


class ViewContext:
    def __init__(
        self,
        settings: PipelineSettings,
        gateway: AbstractDataGateway,
        credentials: AbstractCredentialManager,
        renderer: IncrementalRenderer,
        areas: Optional[AbstractAreaRepository] = None,
        liveness: Optional[LivenessToken] = None,
    ):
        self.settings = settings
        self.gateway = gateway
        self.credentials = credentials
        self.renderer = renderer
        self.liveness = liveness or LivenessToken()
        self.machine = PipelineStateMachine(self.liveness)
        self.aggregator = SpatialAggregator(areas, settings.metric_rule, settings.flush_every)
        self.handle = None  # type: Optional[MapHandle]
        self.reported_date = ""
        self.is_data_loaded = False
        self.camera = None  # type: Optional[Tuple[float, float, float]]
        self.failures = []  # type: List
        self._local = threading.local()

    @property
    def delivered(self) -> Dataset:
        """Latest snapshot the surface is showing."""
        return self.handle.delivered if self.handle else Dataset()

    def flush(self, dataset: Dataset) -> None:
        self.machine.advance(PipelineState.FLUSHING)
        if self.handle is None:
            logger.warning("No map surface to flush to")
            return
        self.renderer.set_data(self.handle, dataset)

    @property
    def events(self) -> List:
        """Events raised on the calling thread; the loader and request threads each drain their own."""
        if not hasattr(self._local, "events"):
            self._local.events = []
        return self._local.events

    def collect_new_events(self):
        events = self.events
        while events:
            yield events.pop(0)
