"""
Flight and vehicle listing API endpoints.

Provides endpoints for:
- GET /api/flights - All flights, or one page with ?page=&pageSize=
- GET /api/vehicles - All vehicles
- GET /api/vehicles/<vehicle_id> - One vehicle's detail record
- GET /api/vehicles/<vehicle_id>/flights - Flights flown by one vehicle
"""

import logging
import math

from flask import Blueprint, current_app, request

from fleetdash.analytics import count_flights_by_vehicle
from fleetdash.api.common import (
    CacheKeys,
    all_flights,
    all_vehicles,
    cached_response,
    get_cache,
    get_client,
    int_arg,
    load_flights,
    read_through,
)
from fleetdash.ingestion import flights_for_vehicle, normalize_vehicle, vehicle_ids_in_flights

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')
vehicles_bp = Blueprint('vehicles', __name__, url_prefix='/api/vehicles')


def _totals_by_vehicle(flights, source_cached_at: float, refresh: bool) -> dict:
    """
    Per-vehicle flight totals for the paginated listing.

    Page 1 recomputes the snapshot; later pages reuse it while it stays
    cached, so within one TTL window every page reports the same numbers.
    The snapshot expires together with the flight set it was counted from.
    """
    cache = get_cache()
    if not refresh:
        snapshot = cache.get(CacheKeys.TOTAL_BY_VEHICLE)
        if snapshot is not None:
            return snapshot

    snapshot = count_flights_by_vehicle(flights)
    cache.set(CacheKeys.TOTAL_BY_VEHICLE, snapshot, cached_at=source_cached_at)
    return snapshot


@flights_bp.route('', methods=['GET'])
def list_flights():
    """
    List flights, newest first.

    Query parameters:
    - page: int, 1-based page number (enables pagination)
    - pageSize: int, flights per page (default 100, enables pagination)

    Without either parameter every flight is returned along with the
    number of distinct vehicles. A page past the end returns no items.
    """
    client = get_client()
    pagination = current_app.config['FLEETDASH_CONFIG'].pagination

    if 'page' not in request.args and 'pageSize' not in request.args:
        body, entry, hit = all_flights(client)
        return cached_response(body, entry, hit)

    page = int_arg('page', default=pagination.default_page, minimum=1)
    page_size = int_arg(
        'pageSize',
        default=pagination.default_page_size,
        minimum=1,
        maximum=pagination.max_page_size,
    )

    def build():
        flights, source = load_flights(client)
        total = len(flights)
        start = (page - 1) * page_size

        return {
            'items': flights[start:start + page_size],
            'total': total,
            'page': page,
            'pageSize': page_size,
            'totalPages': math.ceil(total / page_size),
            'totalByVehicle': _totals_by_vehicle(flights, source.cached_at, refresh=page == 1),
        }, source.cached_at

    body, entry, hit = read_through(CacheKeys.flights_page(page, page_size), build)
    return cached_response(body, entry, hit)


@vehicles_bp.route('', methods=['GET'])
def list_vehicles():
    """List every vehicle in the fleet."""
    client = get_client()
    body, entry, hit = all_vehicles(client)
    return cached_response(body, entry, hit)


@vehicles_bp.route('/<vehicle_id>', methods=['GET'])
def get_vehicle(vehicle_id: str):
    """
    Get detailed information for a single vehicle.

    Proxied from the fleet API's vehicle detail resource; an unknown id
    surfaces the upstream 404.
    """
    client = get_client()

    def build():
        vehicle = normalize_vehicle(client.fetch_vehicle(vehicle_id))
        return {'item': vehicle, 'vehicleId': vehicle_id}, None

    body, entry, hit = read_through(CacheKeys.vehicle(vehicle_id), build)
    return cached_response(body, entry, hit)


@vehicles_bp.route('/<vehicle_id>/flights', methods=['GET'])
def get_vehicle_flights(vehicle_id: str):
    """
    Get flights flown by one vehicle.

    Filters the full flight set on the normalized vehicle id, so numeric
    and string ids on either side still match.
    """
    client = get_client()
    body, entry, hit = all_flights(client)
    flights = body['items']

    matched = flights_for_vehicle(flights, vehicle_id)
    logger.info(f'Found {len(matched)} flights for vehicle {vehicle_id}')

    if not matched:
        known = vehicle_ids_in_flights(flights)
        similar = sorted(i for i in known if vehicle_id in i or i in vehicle_id)
        if similar:
            logger.debug(f'No exact match for vehicle {vehicle_id}; similar IDs: {", ".join(similar[:10])}')

    return cached_response(
        {
            'items': matched,
            'total': len(matched),
            'vehicleId': vehicle_id,
            'allFlightsCount': len(flights),
        },
        entry,
        hit,
    )
