"""
Flight aggregation engine.

Turns a normalized flight collection into the rollups the dashboard
charts: yearly and monthly statistics, Sunday-start weekly statistics,
daily/weekly/monthly ROM ("rate of mission") rows, and flights grouped
by vehicle.

Every time-bucketed aggregate follows the same pass:
1. Derive the partition key from the flight's date (undated flights skipped)
2. Lazily create the bucket for that key
3. Accumulate count, minutes, distance and the distinct vehicle set
4. Finalize buckets into JSON-ready dicts, sorted per endpoint
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from fleetdash.analytics.partitions import (
    MONTH_NAMES,
    day_key,
    month_index,
    month_key,
    parse_flight_date,
    week_start_monday,
    week_start_sunday,
)
from fleetdash.errors import InternalError
from fleetdash.models import AggregateBucket, VehicleId, embedded_vehicle_id, to_vehicle_id

logger = logging.getLogger(__name__)

KeyFunc = Callable[[datetime], Optional[Hashable]]


def dated_flights(flights: Iterable[dict]) -> Iterable[Tuple[datetime, dict]]:
    """Yield (local start time, flight) for every flight with a usable date."""
    for flight in flights:
        if not isinstance(flight, dict):
            raise InternalError('Malformed flight record')
        moment = parse_flight_date(flight.get('date'))
        if moment is not None:
            yield moment, flight


def _bucketize(flights: Iterable[dict], key_func: KeyFunc) -> Dict[Hashable, AggregateBucket]:
    buckets: Dict[Hashable, AggregateBucket] = {}
    for moment, flight in dated_flights(flights):
        key = key_func(moment)
        if key is None:
            continue
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = AggregateBucket()
        bucket.add(flight)
    return buckets


def aggregate_by_year(flights: Iterable[dict]) -> List[dict]:
    """
    Yearly statistics, most recent year first.

    Each entry: year, totalFlights, totalMinutes, totalDistance,
    uniqueVehicles, flightsPerVehicle, hoursPerVehicle,
    averageFlightDuration, averageDistance.
    """
    buckets = _bucketize(flights, lambda moment: moment.year)
    return [
        {'year': year, **buckets[year].stats_dict()}
        for year in sorted(buckets, reverse=True)
    ]


def aggregate_by_month(flights: Iterable[dict], year: int) -> List[dict]:
    """Monthly statistics for one year, January (0) to December (11)."""
    buckets = _bucketize(
        flights,
        lambda moment: month_index(moment) if moment.year == year else None,
    )
    return [
        {
            'year': year,
            'month': month,
            'monthName': MONTH_NAMES[month],
            **buckets[month].stats_dict(),
        }
        for month in sorted(buckets)
    ]


def aggregate_by_week(flights: Iterable[dict], year: Optional[int] = None) -> List[dict]:
    """
    Weekly statistics on Sunday-start weeks, oldest first.

    When year is given, only flights dated in that year are counted and
    every row is labelled with it, even a week that started in the
    previous December. Without a filter, a row's year is the year its
    week starts in.
    """
    def key(moment: datetime):
        if year is not None and moment.year != year:
            return None
        return week_start_sunday(moment.date()).isoformat()

    buckets = _bucketize(flights, key)
    return [
        {
            'weekStart': week,
            'year': year if year is not None else int(week[:4]),
            **buckets[week].stats_dict(),
        }
        for week in sorted(buckets)
    ]


def aggregate_daily_weekly_monthly(flights: Iterable[dict]) -> Dict[str, List[dict]]:
    """
    ROM comparison rollups.

    Returns {'daily': [...], 'weekly': [...], 'monthly': [...]}, each
    ascending by its date key. Weekly rows start on Mondays, and their
    year is the year of that Monday.
    """
    daily: Dict[str, AggregateBucket] = {}
    weekly: Dict[str, AggregateBucket] = {}
    monthly: Dict[str, AggregateBucket] = {}

    for moment, flight in dated_flights(flights):
        keys = (
            (daily, day_key(moment)),
            (weekly, week_start_monday(moment.date()).isoformat()),
            (monthly, month_key(moment)),
        )
        for buckets, key in keys:
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = AggregateBucket()
            bucket.add(flight)

    return {
        'daily': [
            {'date': key, 'year': int(key[:4]), **daily[key].rom_dict()}
            for key in sorted(daily)
        ],
        'weekly': [
            {'weekStart': key, 'year': int(key[:4]), **weekly[key].rom_dict()}
            for key in sorted(weekly)
        ],
        'monthly': [
            {
                'month': key,
                'year': int(key[:4]),
                'monthIndex': int(key[5:7]) - 1,
                **monthly[key].rom_dict(),
            }
            for key in sorted(monthly)
        ],
    }


def available_years(flights: Iterable[dict]) -> List[int]:
    """Years that have at least one dated flight, most recent first."""
    return sorted({moment.year for moment, _ in dated_flights(flights)}, reverse=True)


def sort_newest_first(flights: Iterable[dict]) -> List[dict]:
    """Order flights by start time descending; undated flights go last."""
    dated = []
    undated = []
    for flight in flights:
        moment = parse_flight_date(flight.get('date'))
        if moment is None:
            undated.append(flight)
        else:
            # Aware and naive timestamps can't be compared; order on wall time
            dated.append((moment.replace(tzinfo=None), flight))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [flight for _, flight in dated] + undated


def group_by_vehicle(flights: Iterable[dict], vehicles: Iterable[dict]) -> Dict[VehicleId, List[dict]]:
    """
    Map every known vehicle id to the flights it flew.

    Vehicles without flights map to an empty list. Flights whose vehicle
    id matches no known vehicle are left out (and logged); flights with
    no vehicle reference are left out silently.
    """
    groups: Dict[VehicleId, List[dict]] = OrderedDict()
    for vehicle in vehicles:
        vehicle_id = to_vehicle_id(vehicle.get('id'))
        if vehicle_id is not None:
            groups.setdefault(vehicle_id, [])

    assigned = 0
    unmatched = set()
    for flight in flights:
        vehicle_id = embedded_vehicle_id(flight)
        if vehicle_id is None:
            continue
        if vehicle_id in groups:
            groups[vehicle_id].append(flight)
            assigned += 1
        else:
            unmatched.add(vehicle_id)

    logger.debug(f'Assigned {assigned} flights to {len(groups)} vehicles')
    if unmatched:
        examples = ', '.join(sorted(unmatched)[:5])
        logger.warning(
            f'Found {len(unmatched)} vehicle IDs in flights that match no known vehicle '
            f'(e.g. {examples})'
        )

    return groups


def find_unmatched_vehicle_ids(flights: Iterable[dict], vehicles: Iterable[dict]) -> List[VehicleId]:
    """Vehicle ids referenced by flights but absent from the vehicle list."""
    known = {to_vehicle_id(v.get('id')) for v in vehicles}
    referenced = {embedded_vehicle_id(f) for f in flights}
    referenced.discard(None)
    return sorted(referenced - known)


def count_flights_by_vehicle(flights: Iterable[dict]) -> Dict[VehicleId, int]:
    """Flight totals per vehicle id, for the paginated listing's breakdown."""
    counts: Dict[VehicleId, int] = {}
    for flight in flights:
        vehicle_id = embedded_vehicle_id(flight)
        if vehicle_id is not None:
            counts[vehicle_id] = counts.get(vehicle_id, 0) + 1
    return counts
