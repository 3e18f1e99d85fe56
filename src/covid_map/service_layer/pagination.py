"""
Pagination engine.

Walks every page of the active resource of a package. The number of pages
is unknown until the metadata query returns the record total.
"""
import logging
from typing import Callable, Iterator, List, Optional, TypeVar

from covid_map.adapters.toronto_client import AbstractDataGateway
from covid_map.domain.schemas import CovidRecord, NeighbourhoodRecord, Resource
from covid_map.service_layer.state import PipelineState, PipelineStateMachine

logger = logging.getLogger(__name__)

Record = TypeVar("Record")
Extractor = Callable[[AbstractDataGateway, str, int], List[Record]]


def neighbourhood_records(gateway: AbstractDataGateway, resource_id: str, page: int) -> List[NeighbourhoodRecord]:
    return gateway.neighbourhood_page(resource_id, page)


def covid_records(gateway: AbstractDataGateway, resource_id: str, page: int) -> List[CovidRecord]:
    return gateway.covid_page(resource_id, page)


def page_count(total: int, page_size: int) -> float:
    """Pages to request: ``total / page_size`` without rounding, compared with ``page < count``."""
    return total / page_size


class PaginationEngine:
    def __init__(self, gateway: AbstractDataGateway, machine: PipelineStateMachine,
                 on_metadata: Optional[Callable[[Resource], None]] = None):
        self.gateway = gateway
        self.machine = machine
        self.on_metadata = on_metadata

    def fetch_all_pages(self, package_id: str, page_size: int,
                        extractor: Extractor) -> Iterator[List[Record]]:
        """
        Yield one batch per page, strictly in order.

        Page n+1 is requested only after the consumer has taken page n.
        Any error aborts the remaining pages of this package.

        Raises:
            MetadataFetchError, PageFetchError: If a request fails
            ParseError: If a response does not match its schema
            PipelineCancelled: If the view was closed between pages
        """
        self.machine.advance(PipelineState.FETCHING_METADATA)
        resource = self.gateway.package_show(package_id).active_resource()

        if resource is None or not resource.total:
            logger.warning(f"Package {package_id} has no active datastore resource, skipping")
            return

        if self.on_metadata:
            self.on_metadata(resource)

        pages = page_count(resource.total, page_size)
        logger.info(
            f"Package {package_id}: resource {resource.id} holds {resource.total} records "
            f"({pages:g} pages of {page_size})"
        )

        page = 0
        while page < pages:
            self.machine.advance(PipelineState.FETCHING_PAGE, page)
            batch = extractor(self.gateway, resource.id, page)
            logger.info(f"Fetched page {page} of {resource.id}: {len(batch)} records")
            yield batch
            page += 1
