"""
Aggregate buckets.

Buckets are ephemeral accumulators: created lazily the first time a flight
lands in their key during one aggregation pass, turned into JSON-ready
dicts, then dropped with the response.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

import numpy as np

from fleetdash.models.identifiers import VehicleId, embedded_vehicle_id


def as_number(value: Any) -> float:
    """Numeric value of an optional upstream field (absent counts as 0)."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def format_ratio(numerator: float, denominator: float) -> Optional[str]:
    """
    Format numerator/denominator with one decimal place.

    A zero denominator produces inf or nan; those are reported as None
    (JSON null) rather than leaking non-finite values into responses.
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        value = np.divide(np.float64(numerator), np.float64(denominator))
    if not np.isfinite(value):
        return None
    return f'{float(value):.1f}'


@dataclass
class AggregateBucket:
    """Flight count, minutes, distance and distinct vehicles for one key."""
    flight_count: int = 0
    total_minutes: float = 0.0
    total_distance: float = 0.0
    vehicles: Set[VehicleId] = field(default_factory=set)

    def add(self, flight: dict) -> None:
        self.flight_count += 1
        self.total_minutes += as_number(flight.get('duration')) / 60
        self.total_distance += as_number(flight.get('distance'))

        vehicle_id = embedded_vehicle_id(flight)
        if vehicle_id is not None:
            self.vehicles.add(vehicle_id)

    @property
    def unique_vehicles(self) -> int:
        return len(self.vehicles)

    def stats_dict(self) -> dict:
        """Totals plus per-vehicle and per-flight ratios."""
        return {
            'totalFlights': self.flight_count,
            'totalMinutes': round_half_up(self.total_minutes),
            'totalDistance': round_half_up(self.total_distance),
            'uniqueVehicles': self.unique_vehicles,
            'flightsPerVehicle': format_ratio(self.flight_count, self.unique_vehicles),
            'hoursPerVehicle': format_ratio(self.total_minutes / 60, self.unique_vehicles),
            'averageFlightDuration': format_ratio(self.total_minutes, self.flight_count),
            'averageDistance': format_ratio(self.total_distance, self.flight_count),
        }

    def rom_dict(self) -> dict:
        """Minutes and flight count, the two numbers ROM comparisons use."""
        return {
            'totalMinutes': round(self.total_minutes, 1),
            'flightCount': self.flight_count,
            'totalDistance': round_half_up(self.total_distance),
            'uniqueVehicles': self.unique_vehicles,
        }


Coordinates = Tuple[float, float]


@dataclass
class LocationBucket:
    """
    Per-city accumulator for the heatmap.

    Duration stays in raw seconds here; the UI converts for display.
    """
    city: str
    count: int = 0
    total_duration: float = 0.0
    total_distance: float = 0.0

    def add(self, flight: dict) -> None:
        self.count += 1
        self.total_duration += as_number(flight.get('duration'))
        self.total_distance += as_number(flight.get('distance'))

    def to_dict(self, coordinates: Optional[Coordinates], saturation: int) -> Dict[str, Any]:
        result = {
            'city': self.city,
            'count': self.count,
            'flightCount': self.count,
            'totalDuration': self.total_duration,
            'totalDistance': self.total_distance,
            'intensity': min(self.count / saturation, 1),
        }
        # Cities that failed to geocode keep their stats but carry no position
        if coordinates is not None:
            result['lat'], result['lng'] = coordinates
        return result
