"""
Cache management API endpoints.

Provides endpoints for:
- POST /api/cache/clear - Flush every cached response
- GET /api/cache/stats - Entry count, hit rate and TTL
"""

import logging

from flask import Blueprint, jsonify

from fleetdash.api.common import get_cache

logger = logging.getLogger(__name__)

cache_bp = Blueprint('cache', __name__, url_prefix='/api/cache')


@cache_bp.route('/clear', methods=['POST'])
def clear_cache():
    """
    Flush the response cache.

    The next request to any endpoint goes to the fleet API.
    """
    removed = get_cache().flush_all()
    logger.info(f'Cache cleared ({removed} entries)')
    return jsonify({'message': 'Cache cleared successfully', 'removed': removed})


@cache_bp.route('/stats', methods=['GET'])
def cache_stats():
    return jsonify(get_cache().stats)
