"""Access token client - acquires the credential consumed by the map surface."""

import abc
import logging
from typing import Optional

import requests

import config
from covid_map.domain.schemas import ParseError, TokenResponse, parse

logger = logging.getLogger(__name__)


class AccessTokenStore:
    """Process-wide holder of the current map access token."""

    def __init__(self, token: Optional[str] = None):
        self.token = token

    def __call__(self) -> Optional[str]:
        return self.token


class AbstractCredentialManager(abc.ABC):
    """Fetches a token and overwrites the store the renderer reads from."""

    def __init__(self, store: AccessTokenStore):
        self.store = store

    def fetch_token(self) -> str:
        """
        Acquire a fresh token and publish it to the store.

        Raises:
            CredentialError: If the token endpoint fails; never retried here
        """
        token = self._request_token()
        self.store.token = token
        logger.info("Map access token refreshed")
        return token

    @abc.abstractmethod
    def _request_token(self) -> str:
        raise NotImplementedError


class HTTPCredentialManager(AbstractCredentialManager):
    def __init__(self, store: AccessTokenStore, base_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        super().__init__(store)
        self.base_url = base_url or config.get_api_url()
        self.timeout = timeout or config.get_request_timeout()

    def _request_token(self) -> str:
        url = f"{self.base_url}/mapbox-token/create"

        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            return parse(TokenResponse, response.json()).token

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to fetch map token from {url}: {e}")
            raise CredentialError(str(e)) from e

        except (ValueError, ParseError) as e:
            logger.error(f"Malformed token response from {url}: {e}")
            raise CredentialError(str(e)) from e


class CredentialError(Exception):
    """Exception raised when no access token could be obtained."""
    pass
