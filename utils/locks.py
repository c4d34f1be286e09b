import logging
import time
import uuid
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from utils.cache import CacheManager, CacheUnavailable, build_lock_key
from utils.errors import LockTimeout, LockUnavailable

logger = logging.getLogger(__name__)

DEFAULT_HOLD_TIMEOUT = 10.0  # seconds
DEFAULT_WAIT_TIMEOUT = 5.0  # seconds
DEFAULT_POLL_INTERVAL = 0.05  # seconds


def pair_lock_key(user_id_1: str, user_id_2: str) -> str:
    """Lock key for an unordered pair of users; identical for (a, b) and (b, a)"""
    low, high = min(user_id_1, user_id_2), max(user_id_1, user_id_2)
    return f"match:{low}:{high}"


class DistributedLockManager:
    """
    Cross-process mutual exclusion on named resources, stored in Redis.

    A lock is a key holding a random owner token with a TTL. Acquisition is a
    SET NX PX retried at a fixed poll interval; release deletes the key only if
    it still holds the caller's token, so a holder whose lock already expired
    cannot release somebody else's.
    """

    def __init__(
        self,
        cache: CacheManager,
        hold_timeout: float = DEFAULT_HOLD_TIMEOUT,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cache = cache
        self.hold_timeout = hold_timeout
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def acquire(self, key: str, hold_timeout: Optional[float] = None,
                wait_timeout: Optional[float] = None) -> str:
        """
        Acquire the lock on key, waiting up to wait_timeout seconds.

        Args:
            key: Resource key (e.g. 'match:1:2')
            hold_timeout: Seconds before the lock expires on its own
            wait_timeout: Seconds to keep retrying; 0 means a single attempt

        Returns:
            The owner token to pass to release()

        Raises:
            LockTimeout: The lock stayed taken for the whole wait
            LockUnavailable: The lock backend could not be reached
        """
        hold = self.hold_timeout if hold_timeout is None else hold_timeout
        wait = self.wait_timeout if wait_timeout is None else wait_timeout
        full_key = build_lock_key(key)
        token = uuid.uuid4().hex
        deadline = self._clock() + wait

        while True:
            try:
                acquired = self.cache.set_if_absent(full_key, token, int(hold * 1000))
            except CacheUnavailable as e:
                logger.error(f"Lock backend unavailable while acquiring '{key}': {str(e)}")
                raise LockUnavailable(resource=key) from e

            if acquired:
                logger.debug(f"Lock acquired: {key}")
                return token

            if self._clock() >= deadline:
                logger.warning(f"Could not acquire lock '{key}' within {wait}s")
                raise LockTimeout(resource=key)

            self._sleep(self.poll_interval)

    def try_acquire(self, key: str, hold_timeout: Optional[float] = None) -> str:
        """Acquire without waiting; raises LockTimeout if the lock is taken"""
        return self.acquire(key, hold_timeout=hold_timeout, wait_timeout=0)

    def release(self, key: str, token: str) -> bool:
        """
        Release the lock on key if token still owns it.

        Returns:
            True if released, False if the caller no longer owns the lock
        """
        full_key = build_lock_key(key)
        try:
            released = self.cache.compare_and_delete(full_key, token)
        except CacheUnavailable:
            logger.error(f"Error releasing lock '{key}'")
            raise

        if released:
            logger.debug(f"Lock released: {key}")
        else:
            logger.warning(f"Lock '{key}' expired or changed owner before release")
        return released

    def is_locked(self, key: str) -> bool:
        return self.cache.exists(build_lock_key(key))

    @contextmanager
    def hold(self, key: str, hold_timeout: Optional[float] = None,
             wait_timeout: Optional[float] = None) -> Iterator[str]:
        """Hold the lock for the duration of a with-block, releasing on every exit path"""
        token = self.acquire(key, hold_timeout=hold_timeout, wait_timeout=wait_timeout)
        try:
            yield token
        finally:
            self.release(key, token)
