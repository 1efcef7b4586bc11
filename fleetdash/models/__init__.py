"""
Value objects for FleetDash.

Flights and vehicles travel through the system as the JSON dicts the
fleet API returned (so unknown fields pass through untouched); the only
typed pieces are the canonical vehicle id and the aggregation buckets.
"""

from fleetdash.models.identifiers import VehicleId, to_vehicle_id, embedded_vehicle_id
from fleetdash.models.stats import (
    AggregateBucket,
    Coordinates,
    LocationBucket,
    as_number,
    format_ratio,
    round_half_up,
)

__all__ = [
    'VehicleId',
    'to_vehicle_id',
    'embedded_vehicle_id',
    'AggregateBucket',
    'Coordinates',
    'LocationBucket',
    'as_number',
    'format_ratio',
    'round_half_up',
]
