import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from utils.cache import CacheManager, CacheUnavailable, build_daily_likes_cache_key

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DailyLikeCounter:
    """
    Daily like budget per user.

    The day runs from local midnight to local midnight, local time being UTC
    shifted by a fixed number of hours. The Redis counter is advisory: on a miss
    it is rebuilt from the likes the user sent since local midnight.
    """

    def __init__(
        self,
        cache: CacheManager,
        like_store,
        max_daily_likes: int = 100,
        utc_offset_hours: int = 0,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.cache = cache
        self.like_store = like_store
        self.max_daily_likes = max_daily_likes
        self.tz = timezone(timedelta(hours=utc_offset_hours))
        self._clock = clock

    def _local_now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def current_day(self) -> date:
        return self._local_now().date()

    def window_start_utc(self) -> datetime:
        """Local midnight of the current day as a naive UTC timestamp"""
        local_midnight = datetime.combine(self.current_day(), datetime.min.time(), tzinfo=self.tz)
        return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)

    def seconds_until_reset(self) -> int:
        now = self._local_now()
        next_midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), tzinfo=self.tz)
        return max(int((next_midnight - now).total_seconds()), 1)

    def _key(self, user_id: str) -> str:
        return build_daily_likes_cache_key(user_id, self.current_day())

    def count(self, user_id: str) -> int:
        """Likes sent by user_id today"""
        key = self._key(user_id)
        cached = self.cache.get_int(key)
        if cached is not None:
            return cached

        count = self.like_store.count_sent_since(user_id, self.window_start_utc())
        self.cache.set(key, count, ttl=self.seconds_until_reset())
        return count

    def remaining(self, user_id: str) -> int:
        return max(self.max_daily_likes - self.count(user_id), 0)

    def is_exhausted(self, user_id: str) -> bool:
        return self.count(user_id) >= self.max_daily_likes

    def increment(self, user_id: str):
        """
        Account for one like the user just committed.

        When the counter is missing it is rebuilt from the store, which already
        includes the new like. A counter rebuilt by another request between our
        commit and this call already holds the like, so the increment can count
        it twice; once the counter reaches the budget it is checked against the
        store and lowered if it overshot.
        """
        key = self._key(user_id)
        if not self.cache.exists(key):
            self.count(user_id)
            return

        try:
            value = self.cache.increment(key, ttl=self.seconds_until_reset())
        except CacheUnavailable as e:
            logger.warning(f"Could not increment daily like counter for {user_id}: {str(e)}")
            return

        if value >= self.max_daily_likes:
            actual = self.like_store.count_sent_since(user_id, self.window_start_utc())
            if actual < value:
                logger.info(f"Daily like counter for {user_id} corrected from {value} to {actual}")
                self.cache.set(key, actual, ttl=self.seconds_until_reset())
