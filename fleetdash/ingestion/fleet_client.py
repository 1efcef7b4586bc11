"""
Fleet telemetry API client.

Handles communication with the upstream REST API, including:
- API-key authentication (x-api-key header)
- "Fetch everything" flight listings via a very large page size
- Response shape tolerance (bare arrays or {"items": [...]})
- Translation of transport and HTTP failures into proxy errors

Upstream resources:
    GET {flights_endpoint}?sort=desc&order_by=date&include_files=false&page_size=N[&page=P]
    GET {vehicles_endpoint}
    GET {vehicles_endpoint}/{vehicle_id}

The client never touches the response cache; caching belongs to the
endpoint layer.
"""

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import requests

from fleetdash.config import UpstreamConfig, config
from fleetdash.errors import (
    ConfigurationError,
    InternalError,
    UpstreamRejected,
    UpstreamUnreachable,
)
from fleetdash.ingestion.normalizer import flights_for_vehicle, normalize_flights

logger = logging.getLogger(__name__)


def extract_items(payload: Any) -> List[dict]:
    """
    Pull the record list out of an upstream payload.

    The fleet API answers either with a bare JSON array or with an
    object wrapping the array under "items".
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        items = payload.get('items') or []
        if isinstance(items, list):
            return items
    raise InternalError('Unexpected response format from the fleet API')


def _error_message(response: requests.Response) -> Optional[str]:
    """Best-effort extraction of the upstream error message."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get('message') or body.get('error')
    return None


class FleetApiClient:
    """
    Client for the fleet telemetry API.

    Handles:
    - GET requests to the flights and vehicles resources
    - Shared-token authentication
    - Error translation (UpstreamRejected / UpstreamUnreachable / InternalError)
    """

    def __init__(
        self,
        api_token: Optional[str],
        flights_endpoint: str = 'https://api.auterion.com/flights',
        vehicles_endpoint: str = 'https://api.auterion.com/vehicles',
        fetch_all_page_size: int = 100000,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        if not api_token or not api_token.strip():
            raise ConfigurationError()

        self._api_token = api_token.strip()
        self.flights_endpoint = flights_endpoint
        self.vehicles_endpoint = vehicles_endpoint.rstrip('/')
        self.fetch_all_page_size = fetch_all_page_size
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'x-api-key': self._api_token,
        })
        self.request_count = 0

        logger.info('Fleet API client initialized with API token')

    @classmethod
    def from_config(cls, upstream: Optional[UpstreamConfig] = None) -> 'FleetApiClient':
        """Create client from application configuration."""
        upstream = upstream or config.upstream
        return cls(
            api_token=upstream.api_token,
            flights_endpoint=upstream.flights_endpoint,
            vehicles_endpoint=upstream.vehicles_endpoint,
            fetch_all_page_size=upstream.fetch_all_page_size,
            timeout=upstream.request_timeout,
        )

    def _get(self, url: str, params: Optional[dict] = None) -> Any:
        """
        Issue a GET and return the decoded JSON body.

        Raises:
            UpstreamRejected: upstream answered with a non-2xx status
            UpstreamUnreachable: no response (DNS, connection, timeout)
            InternalError: any other transport failure or a non-JSON body
        """
        logger.debug(f'Fetching {url} params={params}')

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            self.request_count += 1
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error(f'Fleet API unreachable: {e}')
            raise UpstreamUnreachable() from e
        except requests.exceptions.RequestException as e:
            logger.error(f'Fleet API request failed: {e}')
            raise InternalError() from e

        if not response.ok:
            message = _error_message(response)
            logger.error(f'Fleet API error: {response.status_code} {message or ""}'.rstrip())
            raise UpstreamRejected(response.status_code, message)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f'Fleet API returned a non-JSON body from {url}')
            raise InternalError() from e

    def fetch_flights(
        self,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> List[dict]:
        """
        Fetch flights, newest first.

        Without page_size the request asks for one enormous page, which
        is how the API is coaxed into returning every flight at once.
        """
        params = {
            'sort': 'desc',
            'order_by': 'date',
            'include_files': 'false',
            'page_size': page_size or self.fetch_all_page_size,
        }
        if page is not None:
            params['page'] = page

        flights = extract_items(self._get(self.flights_endpoint, params=params))
        logger.info(f'Received {len(flights)} flights from fleet API')
        return flights

    def fetch_vehicles(self) -> List[dict]:
        """Fetch every vehicle in the fleet."""
        vehicles = extract_items(self._get(self.vehicles_endpoint))
        logger.info(f'Received {len(vehicles)} vehicles from fleet API')
        return vehicles

    def fetch_vehicle(self, vehicle_id) -> dict:
        """Fetch detailed information for a single vehicle."""
        url = f'{self.vehicles_endpoint}/{quote(str(vehicle_id), safe="")}'
        payload = self._get(url)
        if not isinstance(payload, dict):
            raise InternalError('Unexpected response format from the fleet API')
        return payload

    def fetch_flights_for_vehicle(self, vehicle_id) -> List[dict]:
        """
        Fetch the flights flown by one vehicle.

        The API has no per-vehicle flight filter, so this fetches every
        flight and filters on the normalized vehicle id.
        """
        flights = normalize_flights(self.fetch_flights())
        matched = flights_for_vehicle(flights, vehicle_id)
        logger.info(f'Found {len(matched)} flights for vehicle {vehicle_id}')
        return matched

    def close(self) -> None:
        self.session.close()
