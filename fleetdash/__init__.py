"""
FleetDash Backend Package.

Caching proxy and aggregation layer for a fleet telemetry API, built with
Flask, requests, and NumPy.

Modules:
    api/         REST endpoints for flights, vehicles, statistics and cache control
    models/      Canonical vehicle ids and aggregation buckets
    ingestion/   Fleet API client and identifier normalization
    analytics/   Yearly/monthly/weekly/daily rollups, vehicle grouping, heatmap data
    services/    External integrations (city geocoding)
    cache.py     Thread-safe TTL cache for shaped API responses
    config.py    Centralized configuration from environment variables
    errors.py    Error taxonomy mapped to HTTP responses
"""

__version__ = '1.0.0'
