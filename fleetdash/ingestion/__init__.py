"""
Upstream ingestion for FleetDash.

Fetches raw flight and vehicle records from the fleet telemetry API and
normalizes their identifiers.
"""

from fleetdash.ingestion.fleet_client import FleetApiClient, extract_items
from fleetdash.ingestion.normalizer import (
    flights_for_vehicle,
    normalize,
    normalize_flight,
    normalize_flights,
    normalize_vehicle,
    normalize_vehicles,
    vehicle_ids_in_flights,
)

__all__ = [
    'FleetApiClient',
    'extract_items',
    'flights_for_vehicle',
    'normalize',
    'normalize_flight',
    'normalize_flights',
    'normalize_vehicle',
    'normalize_vehicles',
    'vehicle_ids_in_flights',
]
