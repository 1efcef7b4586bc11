"""
Vehicle identifiers.

The fleet API is inconsistent about id types: the vehicles resource may
return numeric ids while flights embed the same vehicle with a string id
(or vice versa). Every id is converted to VehicleId at ingestion so that
grouping and filtering compare strings only.
"""

from typing import Any, NewType, Optional

VehicleId = NewType('VehicleId', str)


def to_vehicle_id(value: Any) -> Optional[VehicleId]:
    """
    Coerce a raw id into its canonical string form.

    None and empty strings mean "no id" and stay None. Integral floats
    (42.0) collapse to their integer form so they match "42".
    """
    if value is None or value == '':
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return VehicleId(str(value))


def embedded_vehicle_id(flight: dict) -> Optional[VehicleId]:
    """Return the vehicle id referenced by a flight record, if any."""
    vehicle = flight.get('vehicle')
    if not isinstance(vehicle, dict):
        return None
    return to_vehicle_id(vehicle.get('id'))
