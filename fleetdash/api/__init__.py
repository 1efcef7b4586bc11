"""
API module for FleetDash.

Provides REST endpoints for:
- Flight and vehicle listings (proxied, cached, normalized)
- Aggregated statistics (yearly, monthly, weekly, ROM, locations)
- Cache management
"""

from fleetdash.api.cache import cache_bp
from fleetdash.api.flights import flights_bp, vehicles_bp
from fleetdash.api.stats import stats_bp

__all__ = ['cache_bp', 'flights_bp', 'stats_bp', 'vehicles_bp']
