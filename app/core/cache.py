"""Redis cache manager with connection pooling and retry logic."""

import json
import logging
from typing import Any, Optional

import redis
from redis.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config import Settings

logger = logging.getLogger(__name__)

# Transient network failures are retried briefly, then the caller degrades
redis_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    retry=retry_if_exception_type((ConnectionError, TimeoutError)),
    reraise=True,
)


def profile_cache_key(profile_id: Any) -> str:
    return f"profile:{profile_id}"


def rate_limit_key(scope: str, client_ip: str) -> str:
    return f"ratelimit:{scope}:{client_ip}"


def dashboard_cache_key(user_id: Any, class_id: Any = None) -> str:
    return f"analytics:dashboard:{user_id}:{class_id or 'all'}"


class CacheManager:
    """
    Redis cache manager:
    - Connection pooling for performance
    - Automatic retry with exponential backoff on transient errors
    - Graceful degradation: every operation turns into a no-op when Redis is down
    - Fixed-window counters for rate limiting
    """

    def __init__(self, settings: Settings, client: Optional[redis.Redis] = None):
        """Initialize cache manager with settings.

        ``client`` lets callers hand in a ready Redis client instead of
        building a pool from settings.
        """
        self.settings = settings
        self.enabled = settings.CACHE_ENABLED
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = client
        self._is_connected = False

        logger.info(f"CacheManager initialized. Enabled: {self.enabled}")

    def connect(self) -> None:
        """Establish Redis connection with connection pooling."""
        if not self.enabled:
            logger.info("Cache is disabled. Skipping Redis connection.")
            return

        try:
            if self._client is None:
                self._pool = ConnectionPool(
                    host=self.settings.REDIS_HOST,
                    port=self.settings.REDIS_PORT,
                    db=self.settings.REDIS_DB,
                    password=self.settings.REDIS_PASSWORD or None,
                    max_connections=self.settings.REDIS_MAX_CONNECTIONS,
                    socket_keepalive=self.settings.REDIS_SOCKET_KEEPALIVE,
                    socket_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
                    socket_connect_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
                    retry_on_timeout=self.settings.REDIS_RETRY_ON_TIMEOUT,
                    health_check_interval=self.settings.REDIS_HEALTH_CHECK_INTERVAL,
                    decode_responses=True,
                )
                self._client = redis.Redis(connection_pool=self._pool)

            self._client.ping()
            self._is_connected = True
            logger.info(
                f"Redis cache connected successfully to {self.settings.REDIS_HOST}:{self.settings.REDIS_PORT}"
            )

        except RedisError as e:
            logger.error(f"Failed to connect to Redis cache: {e}")
            logger.warning("Cache will operate in degraded mode (no caching)")
            self._is_connected = False
            self.enabled = False

    def disconnect(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self._client:
            try:
                self._client.close()
                logger.info("Redis cache connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")

        if self._pool:
            self._pool.disconnect()
            logger.info("Redis connection pool disconnected")

        self._is_connected = False

    @property
    def available(self) -> bool:
        return self.enabled and self._is_connected and self._client is not None

    @redis_retry
    def _get_raw(self, key: str) -> Optional[str]:
        return self._client.get(key)

    @redis_retry
    def _setex_raw(self, key: str, ttl: int, value: str) -> bool:
        return bool(self._client.setex(key, ttl, value))

    @redis_retry
    def _delete_raw(self, key: str) -> int:
        return self._client.delete(key)

    @redis_retry
    def _incr_window_raw(self, key: str, window: int) -> int:
        count = int(self._client.incr(key))
        # The window is anchored at the first hit
        if count == 1:
            self._client.expire(key, window)
        return count

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value (deserialized from JSON) or None if not found/error
        """
        if not self.available:
            return None

        try:
            value = self._get_raw(key)
        except RedisError as e:
            logger.warning(f"Redis error getting key '{key}': {e}. Continuing without cache.")
            return None

        if value is None:
            logger.debug(f"Cache MISS: {key}")
            return None

        try:
            logger.debug(f"Cache HIT: {key}")
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to deserialize cached value for key '{key}': {e}")
            self.delete(key)
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with optional TTL (defaults to CACHE_DEFAULT_TTL)."""
        if not self.available:
            return False

        ttl = ttl or self.settings.CACHE_DEFAULT_TTL
        try:
            serialized_value = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize value for key '{key}': {e}")
            return False

        try:
            result = self._setex_raw(key, ttl, serialized_value)
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return result
        except RedisError as e:
            logger.warning(f"Redis error setting key '{key}': {e}. Continuing without cache.")
            return False

    def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if not self.available:
            return False

        try:
            result = self._delete_raw(key)
            logger.debug(f"Cache DELETE: {key}")
            return bool(result)
        except RedisError as e:
            logger.error(f"Redis error deleting key '{key}': {e}")
            return False

    def hit_window(self, key: str, window: int) -> Optional[int]:
        """
        Count one hit against a fixed window.

        Returns:
            Hits recorded in the current window, or None when the cache is
            unavailable and the caller should not enforce a limit.
        """
        if not self.available:
            return None

        try:
            return self._incr_window_raw(key, window)
        except RedisError as e:
            logger.warning(f"Redis error counting hits for '{key}': {e}. Skipping rate limit.")
            return None

    def get_stats(self) -> dict:
        """Get cache statistics."""
        if not self.available:
            return {
                "enabled": False,
                "connected": False,
            }

        try:
            info = self._client.info("stats")
            hits = info.get("keyspace_hits", 0)
            misses = info.get("keyspace_misses", 0)
            return {
                "enabled": True,
                "connected": self._is_connected,
                "keyspace_hits": hits,
                "keyspace_misses": misses,
                "hit_rate": hits / (hits + misses) if (hits + misses) > 0 else 0,
            }
        except RedisError as e:
            logger.error(f"Error getting cache stats: {e}")
            return {
                "enabled": True,
                "connected": False,
                "error": str(e),
            }
