import logging
import threading
import time
from typing import Callable, Dict

from utils.cache import (
    CacheManager,
    CacheUnavailable,
    VIOLATIONS_TTL,
    build_bucket_key,
    build_violations_key,
)

logger = logging.getLogger(__name__)

BACKEND_SHARED = 'shared'
BACKEND_MEMORY = 'memory'


class TokenBucket:
    """
    Token bucket refilled to full capacity once per window.

    Refill happens in a batch at each window boundary rather than as a
    continuous drip.
    """

    def __init__(self, capacity: int, window_seconds: float, now: float):
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.tokens = capacity
        self.window_started = now
        self._lock = threading.Lock()

    def try_consume(self, now: float, tokens: int = 1) -> bool:
        with self._lock:
            elapsed = now - self.window_started
            if elapsed >= self.window_seconds:
                # Align to the boundary of the window `now` falls into
                windows_passed = int(elapsed // self.window_seconds)
                self.window_started += windows_passed * self.window_seconds
                self.tokens = self.capacity

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            return False


class RateLimiter:
    """
    Per-user action budget.

    With the shared backend every process counts against the same per-window
    counter in Redis, so the limit is exact across instances. The memory
    backend keeps buckets in this process only. If Redis is unreachable the
    shared backend falls back to process-local buckets.
    """

    def __init__(
        self,
        cache: CacheManager,
        requests_per_window: int = 30,
        window_seconds: int = 60,
        ban_threshold: int = 1000,
        backend: str = BACKEND_SHARED,
        clock: Callable[[], float] = time.time,
    ):
        if backend not in (BACKEND_SHARED, BACKEND_MEMORY):
            raise ValueError(f"Unknown rate limit backend: {backend}")

        self.cache = cache
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.ban_threshold = ban_threshold
        self.backend = backend
        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}
        self._buckets_lock = threading.Lock()

    def allow_action(self, user_id: str) -> bool:
        """
        Consume one token for user_id.

        Returns:
            True if the action is within budget, False if it must be rejected
        """
        if self.backend == BACKEND_SHARED and self.cache.is_available():
            try:
                allowed = self._consume_shared(user_id)
            except CacheUnavailable as e:
                logger.warning(f"Shared rate limit store unavailable, using local bucket: {str(e)}")
                allowed = self._consume_local(user_id)
        else:
            allowed = self._consume_local(user_id)

        if not allowed:
            logger.warning(f"Rate limit exceeded for user: {user_id}")
            self._record_violation(user_id)

        return allowed

    def _consume_shared(self, user_id: str) -> bool:
        window_index = int(self._clock() // self.window_seconds)
        used = self.cache.increment(
            build_bucket_key(user_id, window_index),
            ttl=self.window_seconds
        )
        return used <= self.requests_per_window

    def _consume_local(self, user_id: str) -> bool:
        now = self._clock()
        with self._buckets_lock:
            bucket = self._buckets.get(user_id)
            if bucket is None:
                bucket = TokenBucket(self.requests_per_window, self.window_seconds, now)
                self._buckets[user_id] = bucket
        return bucket.try_consume(now)

    def _record_violation(self, user_id: str):
        try:
            violations = self.cache.increment(build_violations_key(user_id), ttl=VIOLATIONS_TTL)
        except CacheUnavailable as e:
            logger.warning(f"Could not record rate limit violation for {user_id}: {str(e)}")
            return

        if violations >= self.ban_threshold:
            logger.error(f"User {user_id} exceeded ban threshold with {violations} violations")

    def violation_count(self, user_id: str) -> int:
        return self.cache.get_int(build_violations_key(user_id)) or 0

    def is_abusive(self, user_id: str) -> bool:
        """Whether the user's rejected attempts in the last 24h reached the ban threshold"""
        return self.violation_count(user_id) >= self.ban_threshold

    def reset_violations(self, user_id: str):
        self.cache.delete(build_violations_key(user_id))
        logger.info(f"Violations reset for user: {user_id}")

    def clear_bucket(self, user_id: str):
        """Drop the user's bucket so the next action starts with full capacity"""
        with self._buckets_lock:
            self._buckets.pop(user_id, None)
        self.cache.delete_pattern(build_bucket_key(user_id, '*'))
