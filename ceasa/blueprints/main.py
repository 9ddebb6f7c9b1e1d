"""Health check endpoints (database and cache)."""
from flask import Blueprint, jsonify
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ceasa.database import get_session
from ceasa.services.cache_service import get_cache

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """
    Database health.

    Returns:
        200: SELECT 1 answered
        500: database unreachable or answered something else
    """
    try:
        value = get_session().execute(text("SELECT 1")).scalar()
    except SQLAlchemyError as e:
        return jsonify({
            'status': 'unhealthy',
            'database': 'disconnected',
            'error': str(e),
        }), 500

    if value != 1:
        return jsonify({'status': 'unhealthy', 'database': 'error'}), 500
    return jsonify({'status': 'healthy', 'database': 'connected'}), 200


@main_bp.route('/health/cache')
def health_cache():
    """
    Cache health. Always 200: listings fall back to the database when
    Redis is down, so a missing cache only degrades the service.
    """
    try:
        cache = get_cache()
        if not cache.is_available():
            return jsonify({'status': 'degraded', 'cache': 'unavailable'}), 200

        cache.set(0, 'system', 'health_check', {'ok': True}, ttl=10)
        if (cache.get(0, 'system', 'health_check') or {}).get('ok'):
            return jsonify({'status': 'ok', 'cache': 'connected'}), 200
        return jsonify({'status': 'degraded', 'cache': 'read_write_failed'}), 200

    except (RuntimeError, RedisError) as e:
        return jsonify({'status': 'degraded', 'cache': 'error', 'error': str(e)}), 200
