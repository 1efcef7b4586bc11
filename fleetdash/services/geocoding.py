"""
Geocoding service - resolves flight cities to coordinates for the heatmap.

Integrates with the geocoder library, which fronts several providers
(ArcGIS needs no key; Google, Mapbox and others take GEOCODING_API_KEY).

Behaviour:
- Each city is looked up at most once per process while it stays cached
- Failed lookups are retried a bounded number of times with backoff
- Batches are resolved in chunks of parallel lookups with a pause
  between chunks to respect provider rate limits
- A city that still fails is reported as None; callers keep it in
  their output without coordinates
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import geocoder

from fleetdash.config import GeocodingConfig, config
from fleetdash.models import Coordinates

logger = logging.getLogger(__name__)


class GeocodingService:
    """
    City -> (lat, lng) lookups with caching, retries and chunked batches.

    Implements caching so repeated heatmap rebuilds do not re-query the
    provider for cities it already resolved.
    """

    def __init__(
        self,
        provider: str = 'arcgis',
        api_key: Optional[str] = None,
        chunk_size: int = 10,
        chunk_delay_seconds: float = 1.0,
        max_retries: int = 3,
        retry_backoff_seconds: float = 0.5,
        cache_ttl_seconds: int = 24 * 3600,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.api_key = api_key
        self.chunk_size = max(1, chunk_size)
        self.chunk_delay_seconds = chunk_delay_seconds
        self.max_retries = max(1, max_retries)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

        # Cache: city -> (coordinates, timestamp); only successes are kept
        self._cache: Dict[str, Tuple[Coordinates, float]] = {}
        self._cache_ttl = cache_ttl_seconds
        self._lock = threading.RLock()

        # Track provider usage
        self._lookups = 0
        self._failures = 0

    @classmethod
    def from_config(cls, geocoding: Optional[GeocodingConfig] = None) -> 'GeocodingService':
        """Create service from application configuration."""
        geocoding = geocoding or config.geocoding
        return cls(
            provider=geocoding.provider,
            api_key=geocoding.api_key,
            chunk_size=geocoding.chunk_size,
            chunk_delay_seconds=geocoding.chunk_delay_seconds,
            max_retries=geocoding.max_retries,
            retry_backoff_seconds=geocoding.retry_backoff_seconds,
        )

    def _get_cached(self, city: str) -> Optional[Coordinates]:
        """Get cached coordinates if not expired."""
        with self._lock:
            if city in self._cache:
                coordinates, timestamp = self._cache[city]
                if time.time() - timestamp < self._cache_ttl:
                    return coordinates
                del self._cache[city]
        return None

    def _set_cached(self, city: str, coordinates: Coordinates) -> None:
        with self._lock:
            self._cache[city] = (coordinates, time.time())

    def _query_provider(self, city: str) -> Optional[Coordinates]:
        """Single provider round trip."""
        kwargs = {'provider': self.provider}
        if self.api_key:
            kwargs['key'] = self.api_key

        with self._lock:
            self._lookups += 1

        result = geocoder.get(city, **kwargs)
        if result.ok and result.latlng:
            lat, lng = result.latlng[0], result.latlng[1]
            return (float(lat), float(lng))
        return None

    def geocode(self, city: str) -> Optional[Coordinates]:
        """
        Resolve one city name to (lat, lng).

        Returns cached data if available, otherwise queries the provider
        up to max_retries times. Returns None if every attempt fails.
        """
        if not city:
            return None

        cached = self._get_cached(city)
        if cached is not None:
            return cached

        for attempt in range(1, self.max_retries + 1):
            try:
                coordinates = self._query_provider(city)
            except Exception as e:
                logger.warning(f'Geocoding {city!r} failed (attempt {attempt}): {e}')
                coordinates = None

            if coordinates is not None:
                self._set_cached(city, coordinates)
                logger.debug(f'Geocoded {city!r} -> {coordinates}')
                return coordinates

            if attempt < self.max_retries:
                self._sleep(self.retry_backoff_seconds * attempt)

        with self._lock:
            self._failures += 1
        logger.warning(f'Could not geocode {city!r} after {self.max_retries} attempts')
        return None

    def geocode_many(self, cities: Iterable[str]) -> Dict[str, Optional[Coordinates]]:
        """
        Resolve a batch of city names.

        Cached cities are answered immediately; the rest are geocoded in
        chunks of chunk_size parallel lookups, pausing between chunks.
        """
        results: Dict[str, Optional[Coordinates]] = {}
        pending: List[str] = []
        for city in dict.fromkeys(cities):
            cached = self._get_cached(city)
            if cached is not None:
                results[city] = cached
            else:
                pending.append(city)

        if not pending:
            return results

        logger.info(f'Geocoding {len(pending)} cities ({len(results)} cached)')

        chunks = [
            pending[i:i + self.chunk_size]
            for i in range(0, len(pending), self.chunk_size)
        ]
        with ThreadPoolExecutor(max_workers=self.chunk_size) as executor:
            for index, chunk in enumerate(chunks):
                if index > 0 and self.chunk_delay_seconds > 0:
                    self._sleep(self.chunk_delay_seconds)
                for city, coordinates in zip(chunk, executor.map(self.geocode, chunk)):
                    results[city] = coordinates

        return results

    @property
    def stats(self) -> dict:
        """Get service statistics."""
        with self._lock:
            return {
                'provider': self.provider,
                'cache_size': len(self._cache),
                'lookups': self._lookups,
                'failures': self._failures,
                'api_key_configured': bool(self.api_key),
            }
