"""
Identifier normalization for upstream records.

Runs on every flight and vehicle payload before anything groups or
filters by vehicle id. Records are copied, never mutated in place, and
normalizing already-normalized data returns equal records.
"""

import logging
from typing import Iterable, List, Set, Tuple

from fleetdash.models.identifiers import VehicleId, embedded_vehicle_id, to_vehicle_id

logger = logging.getLogger(__name__)


def normalize_vehicle(vehicle: dict) -> dict:
    """Return a copy of vehicle with its id as a string (if it has one)."""
    normalized = dict(vehicle)
    vehicle_id = to_vehicle_id(vehicle.get('id'))
    if vehicle_id is not None:
        normalized['id'] = vehicle_id
    return normalized


def normalize_flight(flight: dict) -> dict:
    """Return a copy of flight whose embedded vehicle reference has a string id."""
    normalized = dict(flight)
    vehicle = flight.get('vehicle')
    if isinstance(vehicle, dict):
        normalized['vehicle'] = normalize_vehicle(vehicle)
    return normalized


def normalize_flights(flights: Iterable[dict]) -> List[dict]:
    return [normalize_flight(f) for f in flights]


def normalize_vehicles(vehicles: Iterable[dict]) -> List[dict]:
    return [normalize_vehicle(v) for v in vehicles]


def normalize(
    flights: Iterable[dict],
    vehicles: Iterable[dict],
) -> Tuple[List[dict], List[dict]]:
    """Normalize a flight collection and a vehicle collection together."""
    return normalize_flights(flights), normalize_vehicles(vehicles)


def vehicle_ids_in_flights(flights: Iterable[dict]) -> Set[VehicleId]:
    """Distinct vehicle ids referenced by a flight collection."""
    ids = set()
    for flight in flights:
        vehicle_id = embedded_vehicle_id(flight)
        if vehicle_id is not None:
            ids.add(vehicle_id)
    return ids


def flights_for_vehicle(flights: Iterable[dict], vehicle_id) -> List[dict]:
    """
    Filter flights down to those flown by one vehicle.

    vehicle_id may be in any representation; it is normalized before
    comparison. Flights without a vehicle reference never match.
    """
    wanted = to_vehicle_id(vehicle_id)
    if wanted is None:
        return []
    return [f for f in flights if embedded_vehicle_id(f) == wanted]
