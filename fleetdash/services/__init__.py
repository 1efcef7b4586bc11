"""
External integration services.

Handles third-party API calls with caching, rate limiting, and
graceful degradation when services are unavailable.
"""

from fleetdash.services.geocoding import GeocodingService

__all__ = ['GeocodingService']
