"""Shared test fixtures.

Provides a small fleet (five flights, three vehicles), a fake upstream
client that counts calls, a fake geocoder, a controllable clock and a
Flask app wired to all of them. Nothing here touches the network.
"""

import copy
import dataclasses

import pytest

from fleetdash.app import create_app
from fleetdash.cache import TTLCache
from fleetdash.config import (
    AppConfig,
    CacheConfig,
    GeocodingConfig,
    PaginationConfig,
    UpstreamConfig,
)
from fleetdash.errors import UpstreamRejected


# ============================================================================
# Sample data
# ============================================================================

SAMPLE_FLIGHTS = [
    {
        'id': 1,
        'date': '2024-01-15T10:00:00',
        'duration': 3600,
        'distance': 1000,
        'vehicle': {'id': 5, 'name': 'Alpha'},
        'location': {'city': 'Zurich'},
        'flight_url': 'https://suite.test/flights/1',
    },
    {
        'id': 2,
        'date': '2024-06-01T09:00:00',
        'duration': 1800,
        'distance': 500,
        'vehicle': {'id': '5', 'name': 'Alpha'},
        'location': {'city': 'Zurich'},
        'flight_url': 'https://suite.test/flights/2',
    },
    {
        'id': 3,
        'date': '2023-03-10T12:00:00',
        'duration': 600,
        'distance': 200,
        'vehicle': {'id': 42, 'name': 'Bravo'},
        'location': {'city': 'Bern'},
        'flight_url': 'https://suite.test/flights/3',
    },
    {
        # Sunday; no vehicle reference
        'id': 4,
        'date': '2025-02-02T08:00:00',
        'duration': 1200,
        'location': {'city': 'Geneva'},
        'flight_url': 'https://suite.test/flights/4',
    },
    {
        # Monday; vehicle unknown to the vehicles resource
        'id': 5,
        'date': '2025-02-03T08:00:00',
        'duration': 2400,
        'distance': 800,
        'vehicle': {'id': '99'},
        'flight_url': 'https://suite.test/flights/5',
    },
]

SAMPLE_VEHICLES = [
    {'id': 5, 'name': 'Alpha', 'model': 'Skyline', 'serial_number': 'SN-5', 'state': 'active'},
    {'id': 42, 'name': 'Bravo', 'model': 'Skyline', 'serial_number': 'SN-42', 'state': 'active'},
    {'id': '7', 'name': 'Charlie', 'model': 'Skyline', 'serial_number': 'SN-7', 'state': 'retired'},
]


# ============================================================================
# Fakes
# ============================================================================

class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFleetClient:
    """Stands in for FleetApiClient; counts upstream calls."""

    def __init__(self, flights=None, vehicles=None):
        self.flights = copy.deepcopy(SAMPLE_FLIGHTS if flights is None else flights)
        self.vehicles = copy.deepcopy(SAMPLE_VEHICLES if vehicles is None else vehicles)
        self.error = None
        self.flight_calls = 0
        self.vehicle_calls = 0
        self.vehicle_detail_calls = 0

    def fetch_flights(self, page=None, page_size=None):
        self.flight_calls += 1
        if self.error:
            raise self.error
        return copy.deepcopy(self.flights)

    def fetch_vehicles(self):
        self.vehicle_calls += 1
        if self.error:
            raise self.error
        return copy.deepcopy(self.vehicles)

    def fetch_vehicle(self, vehicle_id):
        self.vehicle_detail_calls += 1
        if self.error:
            raise self.error
        for vehicle in self.vehicles:
            if str(vehicle['id']) == str(vehicle_id):
                return copy.deepcopy(vehicle)
        raise UpstreamRejected(404, 'Vehicle not found')

    @property
    def upstream_calls(self) -> int:
        return self.flight_calls + self.vehicle_calls + self.vehicle_detail_calls


class FakeGeocoder:
    """Stands in for GeocodingService; answers from a fixed table."""

    def __init__(self, known=None):
        self.known = known if known is not None else {
            'Zurich': (47.3769, 8.5417),
            'Bern': (46.948, 7.4474),
        }
        self.calls = []

    def geocode_many(self, cities):
        cities = list(cities)
        self.calls.append(cities)
        return {city: self.known.get(city) for city in cities}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def app_config():
    return AppConfig(
        upstream=UpstreamConfig(
            api_token='test-token',
            flights_endpoint='https://fleet.test/flights',
            vehicles_endpoint='https://fleet.test/vehicles',
            timeout_seconds=5,
        ),
        cache=CacheConfig(ttl_seconds=300, check_period_seconds=60),
        geocoding=GeocodingConfig(provider='arcgis', api_key=None, chunk_delay_seconds=0),
        pagination=PaginationConfig(),
        secret_key='test-secret',
        debug=False,
        port=5000,
        static_folder='/nonexistent/fleetdash-build',
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def response_cache(clock):
    return TTLCache(ttl_seconds=300, check_period_seconds=60, clock=clock)


@pytest.fixture
def upstream():
    return FakeFleetClient()


@pytest.fixture
def geocoding():
    return FakeGeocoder()


@pytest.fixture
def app(app_config, upstream, response_cache, geocoding):
    return create_app(
        app_config=app_config,
        client=upstream,
        cache=response_cache,
        geocoding_service=geocoding,
        start_sweeper=False,
    )


@pytest.fixture
def http(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def unconfigured_app(app_config, upstream, response_cache, geocoding):
    """App whose configuration has no API token."""
    app_config = dataclasses.replace(
        app_config,
        upstream=UpstreamConfig(api_token=None),
    )
    return create_app(
        app_config=app_config,
        client=upstream,
        cache=response_cache,
        geocoding_service=geocoding,
        start_sweeper=False,
    )
