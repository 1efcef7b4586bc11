"""
Configuration management for FleetDash.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back on bad input."""
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class UpstreamConfig:
    """Fleet telemetry API configuration."""
    api_token: Optional[str] = field(
        default_factory=lambda: (
            os.getenv('FLEET_API_TOKEN') or os.getenv('AUTERION_API_TOKEN') or None
        )
    )
    flights_endpoint: str = field(
        default_factory=lambda: os.getenv('FLIGHTS_ENDPOINT', 'https://api.auterion.com/flights')
    )
    vehicles_endpoint: str = field(
        default_factory=lambda: os.getenv('VEHICLES_ENDPOINT', 'https://api.auterion.com/vehicles')
    )

    # "Fetch everything" page size for the flights resource
    fetch_all_page_size: int = 100000
    timeout_seconds: float = field(
        default_factory=lambda: _env_float('UPSTREAM_TIMEOUT_SECONDS', 120.0)
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_token and self.api_token.strip())

    @property
    def request_timeout(self) -> Optional[float]:
        # 0 means no client-side timeout
        return self.timeout_seconds or None


@dataclass(frozen=True)
class CacheConfig:
    """In-memory response cache settings."""
    ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv('CACHE_TTL_SECONDS', '300'))
    )
    check_period_seconds: int = field(
        default_factory=lambda: int(os.getenv('CACHE_CHECK_PERIOD_SECONDS', '60'))
    )


@dataclass(frozen=True)
class GeocodingConfig:
    """City geocoding settings."""
    provider: str = field(
        default_factory=lambda: os.getenv('GEOCODING_PROVIDER', 'arcgis')
    )
    api_key: Optional[str] = field(
        default_factory=lambda: os.getenv('GEOCODING_API_KEY') or None
    )
    chunk_size: int = 10  # Cities geocoded in parallel per chunk
    chunk_delay_seconds: float = field(
        default_factory=lambda: _env_float('GEOCODING_CHUNK_DELAY_SECONDS', 1.0)
    )
    max_retries: int = 3
    retry_backoff_seconds: float = 0.5


@dataclass(frozen=True)
class PaginationConfig:
    """Flight listing pagination defaults."""
    default_page: int = 1
    default_page_size: int = 100
    max_page_size: int = 1000


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    upstream: UpstreamConfig
    cache: CacheConfig
    geocoding: GeocodingConfig
    pagination: PaginationConfig

    # Flask settings
    secret_key: str
    debug: bool
    port: int
    static_folder: str


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        upstream=UpstreamConfig(),
        cache=CacheConfig(),
        geocoding=GeocodingConfig(),
        pagination=PaginationConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        port=int(os.getenv('PORT', '5000')),
        static_folder=os.getenv('STATIC_FOLDER', '../build'),
    )


# Singleton instance
config = load_config()
