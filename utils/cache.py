import redis
import json
import logging
from typing import Optional, Any

logger = logging.getLogger(__name__)

# Cache TTL settings (in seconds)
CACHE_TTL_SHORT = 300  # 5 minutes
CACHE_TTL_SWIPE = 7 * 24 * 3600  # 7 days
CACHE_TTL_LIKE = 30 * 24 * 3600  # 30 days
VIOLATIONS_TTL = 24 * 3600  # 24 hours


class CacheUnavailable(Exception):
    """Raised by the strict primitives when the shared store cannot be reached"""


def create_redis_client(url: str) -> Optional[redis.Redis]:
    """
    Connect to Redis and verify the connection.

    Returns:
        A connected client, or None if Redis is unreachable
    """
    try:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5
        )
        client.ping()
        logger.info(f"✓ Redis connected successfully at {url}")
        return client
    except redis.RedisError as e:
        logger.warning(f"⚠ Redis connection failed: {str(e)}. Caching and pair locks will be unavailable.")
        return None


class CacheManager:
    """
    Shared cache and counter store backed by Redis.

    Plain cache operations (get/set/exists/delete) degrade to a miss when Redis
    is down. The coordination primitives (set_if_absent, compare_and_delete,
    increment) raise CacheUnavailable instead so callers can fail closed.
    """

    def __init__(self, client: Optional[redis.Redis]):
        self.client = client

    def is_available(self) -> bool:
        """Check if Redis is configured"""
        return self.client is not None

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/error
        """
        if not self.is_available():
            return None

        try:
            value = self.client.get(key)
            if value is not None:
                return json.loads(value)
            return None
        except redis.RedisError as e:
            logger.error(f"Cache get error for key '{key}': {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: int = CACHE_TTL_SHORT) -> bool:
        """
        Set value in cache with TTL

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.is_available():
            return False

        try:
            self.client.setex(key, int(ttl), json.dumps(value, default=str))
            logger.debug(f"Cached key '{key}' with TTL {ttl}s")
            return True
        except redis.RedisError as e:
            logger.error(f"Cache set error for key '{key}': {str(e)}")
            return False

    def exists(self, key: str) -> bool:
        """Check whether a key is present; a Redis error reads as a miss"""
        if not self.is_available():
            return False

        try:
            return bool(self.client.exists(key))
        except redis.RedisError as e:
            logger.error(f"Cache exists error for key '{key}': {str(e)}")
            return False

    def delete(self, key: str) -> bool:
        """
        Delete a key from cache

        Returns:
            True if successful, False otherwise
        """
        if not self.is_available():
            return False

        try:
            self.client.delete(key)
            logger.debug(f"Deleted cache key '{key}'")
            return True
        except redis.RedisError as e:
            logger.error(f"Cache delete error for key '{key}': {str(e)}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern

        Args:
            pattern: Pattern to match (e.g., 'rate_limit:bucket:123:*')

        Returns:
            Number of keys deleted
        """
        if not self.is_available():
            return 0

        try:
            keys = list(self.client.scan_iter(match=pattern))
            if keys:
                deleted = self.client.delete(*keys)
                logger.debug(f"Deleted {deleted} cache keys matching '{pattern}'")
                return deleted
            return 0
        except redis.RedisError as e:
            logger.error(f"Cache delete pattern error for '{pattern}': {str(e)}")
            return 0

    # Coordination primitives

    def _require_client(self) -> redis.Redis:
        if not self.is_available():
            raise CacheUnavailable("Redis is not configured")
        return self.client

    def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """
        Atomically store value under key with a TTL, only if key is absent.

        Returns:
            True if the key was written, False if it already existed
        """
        client = self._require_client()
        try:
            return bool(client.set(key, value, nx=True, px=max(int(ttl_ms), 1)))
        except redis.RedisError as e:
            raise CacheUnavailable(str(e)) from e

    def compare_and_delete(self, key: str, expected: str) -> bool:
        """
        Delete key only if it still holds the expected value.

        Returns:
            True if the key was deleted, False if it held another value or was gone
        """
        client = self._require_client()
        try:
            with client.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        if pipe.get(key) != expected:
                            pipe.unwatch()
                            return False
                        pipe.multi()
                        pipe.delete(key)
                        pipe.execute()
                        return True
                    except redis.WatchError:
                        # Key changed between GET and DELETE; look again
                        continue
        except redis.RedisError as e:
            raise CacheUnavailable(str(e)) from e

    def increment(self, key: str, ttl: Optional[int] = None) -> int:
        """
        Increment an integer counter, setting its TTL when the key is created.

        Args:
            key: Counter key
            ttl: Expiry in seconds applied when the counter is first created

        Returns:
            The counter value after increment
        """
        client = self._require_client()
        try:
            value = client.incr(key)
            if ttl is not None and value == 1:
                client.expire(key, max(int(ttl), 1))
            return value
        except redis.RedisError as e:
            raise CacheUnavailable(str(e)) from e

    def get_int(self, key: str) -> Optional[int]:
        """Read an integer counter, or None if it is absent or Redis is down"""
        value = self.get(key)
        return int(value) if value is not None else None


# Cache key builders
def build_swipe_cache_key(from_user_id: str, to_user_id: str) -> str:
    """Build cache key marking that from_user_id already swiped to_user_id"""
    return f"matching:swipe:{from_user_id}:{to_user_id}"


def build_like_cache_key(from_user_id: str, to_user_id: str) -> str:
    """Build cache key marking a like edge"""
    return f"matching:like:{from_user_id}:{to_user_id}"


def build_stats_cache_key(user_id: str) -> str:
    """Build cache key for a user's matching statistics"""
    return f"matching:stats:{user_id}"


def build_daily_likes_cache_key(user_id: str, day) -> str:
    """Build cache key for a user's like counter on a local calendar day"""
    return f"matching:likes:daily:{user_id}:{day.isoformat()}"


def build_lock_key(resource_key: str) -> str:
    """Build the Redis key a distributed lock is stored under"""
    return f"lock:{resource_key}"


def build_violations_key(user_id: str) -> str:
    """Build key for a user's rate limit violation counter"""
    return f"rate_limit:violations:{user_id}"


def build_bucket_key(user_id: str, window_index: int) -> str:
    """Build key for a user's shared token bucket in one refill window"""
    return f"rate_limit:bucket:{user_id}:{window_index}"
