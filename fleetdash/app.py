"""
FleetDash Flask Application.

Main entry point for the web application. Initializes:
- Fleet API client
- Response cache and its background sweeper
- Geocoding service
- API routes
- Static file serving for the dashboard UI

Usage:
    python -m fleetdash.app

Or with gunicorn:
    gunicorn 'fleetdash.app:create_app()'
"""

import logging
import os
from typing import Optional

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from fleetdash.api import cache_bp, flights_bp, stats_bp, vehicles_bp
from fleetdash.cache import TTLCache
from fleetdash.config import AppConfig, config
from fleetdash.errors import FleetDashError, InternalError
from fleetdash.ingestion import FleetApiClient
from fleetdash.services import GeocodingService

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    app_config: Optional[AppConfig] = None,
    client: Optional[FleetApiClient] = None,
    cache: Optional[TTLCache] = None,
    geocoding_service: Optional[GeocodingService] = None,
    start_sweeper: bool = True,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        app_config: Configuration (module-level config if None)
        client: Fleet API client (built from config if None and a token is set)
        cache: Response cache (a fresh TTLCache if None)
        geocoding_service: City geocoder (built from config if None)
        start_sweeper: Whether to start the cache's background sweeper.
                       Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app_config = app_config or config

    # Create Flask app
    app = Flask(
        __name__,
        static_folder=app_config.static_folder,
        static_url_path='',
    )

    # Configuration
    app.config['SECRET_KEY'] = app_config.secret_key
    app.config['FLEETDASH_CONFIG'] = app_config

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Upstream client (absent when no token is configured)
    if client is None and app_config.upstream.is_configured:
        client = FleetApiClient.from_config(app_config.upstream)
    if client is None:
        logger.warning('Fleet API token not configured. Set FLEET_API_TOKEN in .env; data endpoints will return 500')
    app.config['FLEET_CLIENT'] = client

    # Response cache
    if cache is None:
        cache = TTLCache(
            ttl_seconds=app_config.cache.ttl_seconds,
            check_period_seconds=app_config.cache.check_period_seconds,
        )
    if start_sweeper:
        cache.start_sweeper()
    app.config['RESPONSE_CACHE'] = cache

    app.config['GEOCODING_SERVICE'] = geocoding_service or GeocodingService.from_config(app_config.geocoding)

    # Register API blueprints
    app.register_blueprint(flights_bp)
    app.register_blueprint(vehicles_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(cache_bp)

    # -------------------------------------------------------------------------
    # Frontend routes
    # -------------------------------------------------------------------------

    @app.route('/')
    def index():
        """Serve the dashboard."""
        return send_from_directory(app.static_folder, 'index.html')

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {
            'status': 'ok',
            'apiConfigured': app_config.upstream.is_configured,
        }

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(FleetDashError)
    def proxy_error(e: FleetDashError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        # Client-side routes of the single page app fall back to index.html
        index_path = os.path.join(app.static_folder or '', 'index.html')
        if (
            request.method == 'GET'
            and not request.path.startswith('/api/')
            and os.path.isfile(index_path)
        ):
            return send_from_directory(app.static_folder, 'index.html')
        return {'error': 'Not found'}, 404

    @app.errorhandler(Exception)
    def server_error(e: Exception):
        if isinstance(e, HTTPException):
            return {'error': e.description}, e.code
        logger.exception(f'Server error: {e}')
        return jsonify(InternalError().to_dict()), 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = config.port

    logger.info(f'Starting FleetDash on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Disable reloader to prevent a duplicate sweeper thread
    )


if __name__ == '__main__':
    run_development_server()
