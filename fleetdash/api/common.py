"""
Shared plumbing for the API blueprints.

Every data endpoint follows the same read-through shape:

    CacheCheck -> hit  -> respond (cached)
               -> miss -> upstream fetch -> normalize -> aggregate?
                          -> cache store -> respond (fresh)

Collaborators (client, cache, geocoder) live on app.config and are put
there by create_app, so handlers never reach for module-level globals.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from flask import current_app, jsonify, request

from fleetdash.analytics import sort_newest_first
from fleetdash.cache import CacheEntry, TTLCache
from fleetdash.errors import ConfigurationError, InvalidRequest
from fleetdash.ingestion import (
    FleetApiClient,
    normalize_flights,
    normalize_vehicles,
    vehicle_ids_in_flights,
)

logger = logging.getLogger(__name__)


class CacheKeys:
    """Cache key names shared across endpoints."""
    FLIGHTS = 'all_flights'
    VEHICLES = 'all_vehicles'
    TOTAL_BY_VEHICLE = 'flights_total_by_vehicle'
    YEARLY_STATS = 'yearly_stats'
    LOCATION_STATS = 'location_stats'
    ROM_COMPARISON = 'rom_comparison'
    VEHICLE_FLIGHTS = 'vehicle_flights'

    @staticmethod
    def flights_page(page: int, page_size: int) -> str:
        return f'flights_{page}_{page_size}'

    @staticmethod
    def monthly_stats(year: Optional[int]) -> str:
        return f'monthly_stats_{year if year is not None else "latest"}'

    @staticmethod
    def weekly_stats(year: Optional[int]) -> str:
        return f'weekly_stats_{year if year is not None else "all"}'

    @staticmethod
    def vehicle(vehicle_id: str) -> str:
        return f'vehicle_{vehicle_id}'


def get_cache() -> TTLCache:
    return current_app.config['RESPONSE_CACHE']


def get_client() -> FleetApiClient:
    """
    The upstream client, or ConfigurationError if no API token is set.

    Called first by every data endpoint so a missing token fails before
    the cache or the network is touched.
    """
    app_config = current_app.config['FLEETDASH_CONFIG']
    client = current_app.config.get('FLEET_CLIENT')
    if client is None or not app_config.upstream.is_configured:
        logger.error('Request rejected: fleet API token not configured')
        raise ConfigurationError()
    return client


Build = Callable[[], Tuple[Any, Optional[float]]]


def read_through(key: str, build: Build) -> Tuple[Any, CacheEntry, bool]:
    """
    Return (value, entry, hit) for key, building and caching on a miss.

    build returns (value, source_cached_at). Values fetched from upstream
    pass None and are stamped now; values derived from another cached
    entry pass that entry's capture time, so a derived entry never
    outlives the data it was computed from.

    Concurrent misses for the same key may both call build; the last
    writer wins.
    """
    cache = get_cache()
    entry = cache.get_entry(key)
    if entry is not None:
        logger.debug(f'Cache hit: {key}')
        return entry.value, entry, True

    logger.debug(f'Cache miss: {key}')
    value, source_cached_at = build()
    entry = cache.set(key, value, cached_at=source_cached_at)
    return value, entry, False


def cached_response(body: Any, entry: CacheEntry, hit: bool):
    """
    JSON response carrying cache freshness metadata.

    Object bodies get `cached` (and `cacheTime` on hits); every response
    gets X-Cache and X-Cache-Time headers.
    """
    if isinstance(body, dict):
        body = dict(body)
        body['cached'] = hit
        if hit:
            body['cacheTime'] = entry.cached_at_iso

    response = jsonify(body)
    response.headers['X-Cache'] = 'HIT' if hit else 'MISS'
    response.headers['X-Cache-Time'] = entry.cached_at_iso
    return response


def all_flights(client: FleetApiClient) -> Tuple[dict, CacheEntry, bool]:
    """Read-through for the full, normalized, newest-first flight list."""
    def build():
        logger.info('Cache miss - fetching all flights')
        flights = sort_newest_first(normalize_flights(client.fetch_flights()))
        vehicle_ids = vehicle_ids_in_flights(flights)
        logger.info(f'Found {len(vehicle_ids)} unique vehicle IDs in {len(flights)} flights')
        return {
            'items': flights,
            'total': len(flights),
            'uniqueVehicleIds': len(vehicle_ids),
        }, None

    return read_through(CacheKeys.FLIGHTS, build)


def all_vehicles(client: FleetApiClient) -> Tuple[dict, CacheEntry, bool]:
    """Read-through for the full, normalized vehicle list."""
    def build():
        logger.info('Cache miss - fetching all vehicles')
        vehicles = normalize_vehicles(client.fetch_vehicles())
        return {
            'items': vehicles,
            'total': len(vehicles),
        }, None

    return read_through(CacheKeys.VEHICLES, build)


def load_flights(client: FleetApiClient) -> Tuple[List[dict], CacheEntry]:
    """Cached flight records and the cache entry they came from."""
    body, entry, _ = all_flights(client)
    return body['items'], entry


def load_vehicles(client: FleetApiClient) -> Tuple[List[dict], CacheEntry]:
    """Cached vehicle records and the cache entry they came from."""
    body, entry, _ = all_vehicles(client)
    return body['items'], entry


def int_arg(
    name: str,
    default: Optional[int] = None,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> Optional[int]:
    """Parse an integer query parameter, raising InvalidRequest when malformed."""
    raw = request.args.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidRequest(f'{name} must be an integer')
    if minimum is not None and value < minimum:
        raise InvalidRequest(f'{name} must be at least {minimum}')
    if maximum is not None and value > maximum:
        raise InvalidRequest(f'{name} must be at most {maximum}')
    return value
