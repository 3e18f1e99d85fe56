"""
Spatial join and aggregation.

Geometry records create the areas, case records are then joined onto them
by exact cleaned name. The working areas are never handed out: every flush
produces a new frozen Dataset.
"""
import logging
from typing import Callable, Iterable, List, Optional

from covid_map.adapters.repository import AbstractAreaRepository, InMemoryAreaRepository
from covid_map.domain.model import Dataset, MetricRule
from covid_map.domain.schemas import CovidRecord, NeighbourhoodRecord

logger = logging.getLogger(__name__)

Flush = Callable[[Dataset], None]


class SpatialAggregator:
    def __init__(self, areas: Optional[AbstractAreaRepository] = None,
                 rule: MetricRule = MetricRule.NON_ACTIVE, flush_every: int = 5):
        self.areas = areas if areas is not None else InMemoryAreaRepository()
        self.rule = rule
        self.flush_every = flush_every
        self.matched_cases = 0
        self.unmatched_cases = 0

    def ingest_geometry(self, batches: Iterable[List[NeighbourhoodRecord]]) -> int:
        """Create one area per geometry record. Returns the number of areas added."""
        added = 0
        for batch in batches:
            for record in batch:
                if self.areas.add(record.to_area()):
                    added += 1
        logger.info(f"Ingested {added} areas")
        return added

    def ingest_cases(self, batches: Iterable[List[CovidRecord]], flush: Flush) -> None:
        """
        Join case pages onto the areas.

        ``flush`` receives a fresh snapshot after every ``flush_every`` pages and
        once more when the stream is exhausted.
        """
        pages = 0
        for batch in batches:
            for record in batch:
                self.join(record)
            pages += 1
            if pages % self.flush_every == 0:
                flush(self.snapshot())

        flush(self.snapshot())
        if self.unmatched_cases:
            logger.warning(f"{self.unmatched_cases} case records had no matching area and were dropped")

    def join(self, record: CovidRecord) -> bool:
        case = record.to_case()
        area = self.areas.get(case.neighbourhood_name)
        if area is None:
            logger.debug(f"No area named {case.neighbourhood_name!r}, dropping case")
            self.unmatched_cases += 1
            return False
        area.add_case(case, self.rule)
        self.matched_cases += 1
        return True

    def snapshot(self) -> Dataset:
        return self.areas.snapshot()
