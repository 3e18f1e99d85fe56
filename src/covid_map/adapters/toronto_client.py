"""Toronto open data client - Adapter for the package-show and datastore proxy."""

import abc
import logging
from typing import Any, Dict, List, Optional

import requests

import config
from covid_map.domain.schemas import (
    CovidRecord,
    DataStoreResponse,
    NeighbourhoodRecord,
    PackageShow,
    PackageShowResponse,
    ParseError,
    parse,
)

logger = logging.getLogger(__name__)


class AbstractDataGateway(abc.ABC):
    """Abstract base class for dataset gateway implementations."""

    @abc.abstractmethod
    def package_show(self, package_id: str) -> PackageShow:
        """
        Fetch package metadata (resources, totals, modification dates).

        Raises:
            MetadataFetchError: If the request fails
            ParseError: If the response does not match the schema
        """
        raise NotImplementedError

    @abc.abstractmethod
    def neighbourhood_page(self, resource_id: str, page: int) -> List[NeighbourhoodRecord]:
        raise NotImplementedError

    @abc.abstractmethod
    def covid_page(self, resource_id: str, page: int) -> List[CovidRecord]:
        raise NotImplementedError


class HTTPDataGateway(AbstractDataGateway):
    """HTTP-based client for the /toronto GraphQL proxy."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the gateway.

        Args:
            base_url: Base URL of the backend. If None, uses config.
            timeout: Request timeout in seconds. If None, uses config.
        """
        self.base_url = base_url or config.get_api_url()
        self.timeout = timeout or config.get_request_timeout()

    def package_show(self, package_id: str) -> PackageShow:
        query = f"""{{
            result(id: "{package_id}") {{
              title
              resources {{
                datastoreActive
                id
                format
                lastModified
                total
              }}
            }}
          }}"""
        body = self._post("/toronto/package-show", query, MetadataFetchError)
        return parse(PackageShowResponse, body).result

    def neighbourhood_page(self, resource_id: str, page: int) -> List[NeighbourhoodRecord]:
        query = f"""{{
              result(id: "{resource_id}", page: {page}) {{
                neighbourhoodsRecords {{
                  geometry
                  areaId
                  areaName
                  shapeArea
                }}
              }}
            }}"""
        body = self._post("/toronto/datastore", query, PageFetchError)
        records = parse(DataStoreResponse, body).result.neighbourhoods_records
        if records is None:
            raise ParseError(f"Page {page} of {resource_id} has no neighbourhoodsRecords")
        return records

    def covid_page(self, resource_id: str, page: int) -> List[CovidRecord]:
        query = f"""{{
              result(id: "{resource_id}", page: {page}) {{
                covidRecords {{
                  neighbourhoodName
                  outcome
                  currentlyHospitalized
                }}
              }}
            }}"""
        body = self._post("/toronto/datastore", query, PageFetchError)
        records = parse(DataStoreResponse, body).result.covid_records
        if records is None:
            raise ParseError(f"Page {page} of {resource_id} has no covidRecords")
        return records

    def _post(self, path: str, query: str, error_cls) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(f"POST {url}")

        try:
            response = requests.post(
                url,
                json={"query": query},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()

        except requests.exceptions.HTTPError as e:
            logger.error(f"HTTP error from {url}: {e}")
            raise error_cls(f"Request to {path} failed: {e}") from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling {url}: {e}")
            raise error_cls(f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise ParseError(f"Response from {path} is not JSON: {e}") from e

        # GraphQL envelope: {"data": {"result": ...}}
        if isinstance(body, dict) and "result" not in body and isinstance(body.get("data"), dict):
            body = body["data"]
        return body


class GatewayError(Exception):
    """Exception raised for errors talking to the dataset service."""
    pass


class MetadataFetchError(GatewayError):
    pass


class PageFetchError(GatewayError):
    pass
