"""
Analytics module for FleetDash.

Aggregates fleet flight records into time-bucketed statistics,
vehicle groupings and per-city heatmap data.
"""

from fleetdash.analytics.aggregation import (
    aggregate_by_month,
    aggregate_by_week,
    aggregate_by_year,
    aggregate_daily_weekly_monthly,
    available_years,
    count_flights_by_vehicle,
    find_unmatched_vehicle_ids,
    group_by_vehicle,
    sort_newest_first,
)
from fleetdash.analytics.locations import aggregate_locations

__all__ = [
    'aggregate_by_month',
    'aggregate_by_week',
    'aggregate_by_year',
    'aggregate_daily_weekly_monthly',
    'aggregate_locations',
    'available_years',
    'count_flights_by_vehicle',
    'find_unmatched_vehicle_ids',
    'group_by_vehicle',
    'sort_newest_first',
]
