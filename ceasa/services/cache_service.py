"""
Redis cache for tenant listings (packaging balances, financial titles).

Listings are JSON-safe dicts (amounts already rendered as strings by the
models' to_dict), stored under

    {prefix}:tenant:{tenant_id}:{module}:{key}

When Redis is disabled or unreachable every call degrades to a miss and
the loader runs against the database.
"""

import json
import logging
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask, current_app, has_app_context

logger = logging.getLogger(__name__)

# Cached modules
PACKAGING = 'packaging'
TITLES = 'titles'


class CacheService:
    """Tenant-namespaced Redis cache with graceful degradation."""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._enabled = False
        self._prefix = 'ceasa'
        self._default_ttl = 60

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Connect to REDIS_URL unless CACHE_ENABLED is off."""
        self._enabled = app.config.get('CACHE_ENABLED', True)
        self._prefix = app.config.get('CACHE_KEY_PREFIX', self._prefix)
        self._default_ttl = app.config.get('CACHE_DEFAULT_TTL', self._default_ttl)

        if not self._enabled:
            logger.info("[CACHE] Disabled via config")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            self.client.ping()
            logger.info(f"[CACHE] Redis connected: {redis_url}")
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unavailable ({e}), listings will not be cached")
            self._enabled = False
            self.client = None

    def is_available(self) -> bool:
        if not self._enabled or not self.client:
            return False
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def key_for(self, tenant_id: int, module: str, key: str) -> str:
        return f"{self._prefix}:tenant:{tenant_id}:{module}:{key}"

    def get(self, tenant_id: int, module: str, key: str) -> Optional[Any]:
        """Cached value, or None on miss or Redis failure."""
        if not self.is_available():
            return None
        try:
            raw = self.client.get(self.key_for(tenant_id, module, key))
        except RedisError as e:
            logger.warning(f"[CACHE] Read failed for {module}:{key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"[CACHE] Dropping unreadable entry {module}:{key}")
            return None

    def set(self, tenant_id: int, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.is_available():
            return False
        try:
            self.client.setex(self.key_for(tenant_id, module, key), ttl or self._default_ttl, json.dumps(value))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Write failed for {module}:{key}: {e}")
            return False

    def clear_module(self, tenant_id: int, module: str) -> int:
        """Delete every key of one tenant module. Returns the number removed."""
        if not self.is_available():
            return 0
        pattern = self.key_for(tenant_id, module, '*')
        try:
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if keys:
                self.client.delete(*keys)
                logger.info(f"[CACHE] Invalidated {pattern} ({len(keys)} keys)")
            return len(keys)
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate failed for {pattern}: {e}")
            return 0


_cache_service: Optional[CacheService] = None


def init_cache(app: Flask) -> None:
    """Create the process-wide cache and register it on the app."""
    global _cache_service
    _cache_service = CacheService(app)
    app.extensions['cache'] = _cache_service


def get_cache() -> CacheService:
    if _cache_service is None:
        raise RuntimeError("Cache not initialized.")
    return _cache_service


def build_key(**filters) -> str:
    """Stable cache key from a filter set (None values dropped)."""
    parts = [f"{name}={filters[name]}" for name in sorted(filters) if filters[name] is not None]
    return ':'.join(parts) or 'all'


def cached(tenant_id: int, module: str, key: str, loader: Callable[[], Any], ttl_setting: str) -> Any:
    """
    Cache-aside read of a listing.

    Outside an app context (scripts, some tests) the loader is called
    directly.
    """
    if _cache_service is None or not has_app_context():
        return loader()

    hit = _cache_service.get(tenant_id, module, key)
    if hit is not None:
        return hit

    value = loader()
    _cache_service.set(tenant_id, module, key, value, current_app.config.get(ttl_setting))
    return value


def invalidate(tenant_id: int, *modules: str) -> None:
    """Drop cached listings after a committed mutation."""
    if _cache_service is None:
        return
    for module in modules:
        _cache_service.clear_module(tenant_id, module)
