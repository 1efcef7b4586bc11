"""
Location aggregation for the flight heatmap.

Groups dated flights that carry a `location.city` by year and by month
within the year, then attaches coordinates from the geocoding service.
Each distinct city is geocoded once per pass, never once per flight.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional

from fleetdash.analytics.aggregation import dated_flights
from fleetdash.analytics.partitions import month_index
from fleetdash.models import Coordinates, LocationBucket

logger = logging.getLogger(__name__)

# Flight counts at which a city's heat saturates
YEARLY_SATURATION = 50
MONTHLY_SATURATION = 25

GeocodeMany = Callable[[List[str]], Dict[str, Optional[Coordinates]]]


def flight_city(flight: dict) -> Optional[str]:
    """City name recorded on a flight, or None."""
    location = flight.get('location')
    if not isinstance(location, dict):
        return None
    city = location.get('city')
    if not isinstance(city, str) or not city.strip():
        return None
    return city.strip()


def _add(buckets: Dict[str, LocationBucket], city: str, flight: dict) -> None:
    bucket = buckets.get(city)
    if bucket is None:
        bucket = buckets[city] = LocationBucket(city=city)
    bucket.add(flight)


def _render(
    buckets: Dict[str, LocationBucket],
    coordinates: Dict[str, Optional[Coordinates]],
    saturation: int,
) -> List[dict]:
    ordered = sorted(buckets.values(), key=lambda b: (-b.count, b.city))
    return [b.to_dict(coordinates.get(b.city), saturation) for b in ordered]


def aggregate_locations(flights: Iterable[dict], geocode: GeocodeMany) -> List[dict]:
    """
    Per-city flight statistics by year and month.

    Args:
        flights: normalized flight records
        geocode: maps a list of distinct city names to {city: (lat, lng) or None}

    Returns:
        [{year, locations: [...], months: [{month, locations: [...]}]}],
        most recent year first. Cities that could not be geocoded appear
        without lat/lng.
    """
    yearly: Dict[int, Dict[str, LocationBucket]] = defaultdict(dict)
    monthly: Dict[int, Dict[int, Dict[str, LocationBucket]]] = defaultdict(lambda: defaultdict(dict))

    for moment, flight in dated_flights(flights):
        city = flight_city(flight)
        if city is None:
            continue
        _add(yearly[moment.year], city, flight)
        _add(monthly[moment.year][month_index(moment)], city, flight)

    cities = sorted({city for buckets in yearly.values() for city in buckets})
    coordinates = geocode(cities) if cities else {}

    missing = [city for city in cities if coordinates.get(city) is None]
    if missing:
        logger.warning(f'{len(missing)} of {len(cities)} cities have no coordinates')

    return [
        {
            'year': year,
            'locations': _render(yearly[year], coordinates, YEARLY_SATURATION),
            'months': [
                {
                    'month': month,
                    'locations': _render(monthly[year][month], coordinates, MONTHLY_SATURATION),
                }
                for month in sorted(monthly[year])
            ],
        }
        for year in sorted(yearly, reverse=True)
    ]
