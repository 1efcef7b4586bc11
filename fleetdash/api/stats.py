"""
Aggregated statistics API endpoints.

Provides endpoints for:
- GET /api/yearly-stats - Yearly rollups, most recent year first
- GET /api/monthly-stats - Monthly rollups for one year (?year=)
- GET /api/weekly-stats - Sunday-start weekly rollups (?year=)
- GET /api/rom-comparison - Daily / Monday-weekly / monthly ROM rows
- GET /api/location-stats - Geocoded per-city rollups by year and month
- GET /api/vehicle-flights - Every vehicle with the flights it flew

Each aggregate is computed from the cached full flight set and cached
under its own key, so a warm cache answers without re-aggregating.
Aggregates carry the capture time of the flight set they were computed
from and expire with it.
"""

import logging

from flask import Blueprint, current_app

from fleetdash.analytics import (
    aggregate_by_month,
    aggregate_by_week,
    aggregate_by_year,
    aggregate_daily_weekly_monthly,
    aggregate_locations,
    available_years,
    find_unmatched_vehicle_ids,
    group_by_vehicle,
)
from fleetdash.api.common import (
    CacheKeys,
    cached_response,
    get_client,
    int_arg,
    load_flights,
    load_vehicles,
    read_through,
)
from fleetdash.models import embedded_vehicle_id, to_vehicle_id

logger = logging.getLogger(__name__)

stats_bp = Blueprint('stats', __name__, url_prefix='/api')


@stats_bp.route('/yearly-stats', methods=['GET'])
def get_yearly_stats():
    """
    Get yearly flight statistics.

    Returns a list of {year, totalFlights, totalMinutes, totalDistance,
    uniqueVehicles, flightsPerVehicle, hoursPerVehicle,
    averageFlightDuration, averageDistance}. Ratios are one-decimal
    strings, or null where the denominator is zero.
    """
    client = get_client()

    def build():
        flights, source = load_flights(client)
        return aggregate_by_year(flights), source.cached_at

    body, entry, hit = read_through(CacheKeys.YEARLY_STATS, build)
    return cached_response(body, entry, hit)


@stats_bp.route('/monthly-stats', methods=['GET'])
def get_monthly_stats():
    """
    Get monthly statistics for one year.

    Query parameters:
    - year: int, defaults to the most recent year with flights

    Months are zero-based (January = 0); months without flights are omitted.
    """
    client = get_client()
    year = int_arg('year', minimum=1, maximum=9999)

    def build():
        flights, source = load_flights(client)
        selected = year
        if selected is None:
            years = available_years(flights)
            selected = years[0] if years else None
        months = aggregate_by_month(flights, selected) if selected is not None else []
        return {'year': selected, 'months': months}, source.cached_at

    body, entry, hit = read_through(CacheKeys.monthly_stats(year), build)
    return cached_response(body, entry, hit)


@stats_bp.route('/weekly-stats', methods=['GET'])
def get_weekly_stats():
    """
    Get weekly statistics on Sunday-start weeks.

    Query parameters:
    - year: int, optional; restricts to flights dated in that year
    """
    client = get_client()
    year = int_arg('year', minimum=1, maximum=9999)

    def build():
        flights, source = load_flights(client)
        return {'year': year, 'weeks': aggregate_by_week(flights, year)}, source.cached_at

    body, entry, hit = read_through(CacheKeys.weekly_stats(year), build)
    return cached_response(body, entry, hit)


@stats_bp.route('/rom-comparison', methods=['GET'])
def get_rom_comparison():
    """
    Get rate-of-mission rollups for year-over-year comparison.

    Returns {daily: [{date, year, ...}], weekly: [{weekStart, year, ...}],
    monthly: [{month, year, monthIndex, ...}]}, each row carrying
    totalMinutes and flightCount. Weekly rows start on Mondays.
    """
    client = get_client()

    def build():
        flights, source = load_flights(client)
        return aggregate_daily_weekly_monthly(flights), source.cached_at

    body, entry, hit = read_through(CacheKeys.ROM_COMPARISON, build)
    return cached_response(body, entry, hit)


@stats_bp.route('/location-stats', methods=['GET'])
def get_location_stats():
    """
    Get per-city flight statistics for the heatmap.

    Returns [{year, locations: [...], months: [{month, locations: [...]}]}].
    Each location has city, count, flightCount, totalDuration (seconds),
    totalDistance, intensity and, when geocoding succeeded, lat/lng.
    """
    client = get_client()
    geocoding = current_app.config['GEOCODING_SERVICE']

    def build():
        flights, source = load_flights(client)
        return aggregate_locations(flights, geocoding.geocode_many), source.cached_at

    body, entry, hit = read_through(CacheKeys.LOCATION_STATS, build)
    return cached_response(body, entry, hit)


@stats_bp.route('/vehicle-flights', methods=['GET'])
def get_vehicle_flights_map():
    """
    Get every known vehicle together with the flights it flew.

    Vehicles without flights are included with an empty list. Vehicle
    ids that appear on flights but match no vehicle are reported in
    unmatchedVehicleIds.
    """
    client = get_client()

    def build():
        flights, flights_source = load_flights(client)
        vehicles, vehicles_source = load_vehicles(client)
        groups = group_by_vehicle(flights, vehicles)

        entries = []
        for vehicle in vehicles:
            vehicle_flights = groups.get(to_vehicle_id(vehicle.get('id')), [])
            entries.append({
                'vehicle': vehicle,
                'flights': vehicle_flights,
                'flightCount': len(vehicle_flights),
            })

        assigned = sum(len(group) for group in groups.values())
        with_flights = sum(1 for group in groups.values() if group)
        logger.info(f'{with_flights} of {len(vehicles)} vehicles have at least one flight')

        return {
            'vehicles': entries,
            'totalVehicles': len(vehicles),
            'assignedFlights': assigned,
            'unassignedFlights': sum(1 for f in flights if embedded_vehicle_id(f) is None),
            'unmatchedVehicleIds': find_unmatched_vehicle_ids(flights, vehicles),
        }, min(flights_source.cached_at, vehicles_source.cached_at)

    body, entry, hit = read_through(CacheKeys.VEHICLE_FLIGHTS, build)
    return cached_response(body, entry, hit)
