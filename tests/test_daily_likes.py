from __future__ import annotations

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from utils.cache import CacheManager, build_daily_likes_cache_key
from utils.daily_likes import DailyLikeCounter


class StubLikeStore:
    def __init__(self, count: int = 0) -> None:
        self.count = count
        self.calls: list[tuple[str, datetime]] = []

    def count_sent_since(self, user_id: str, since: datetime) -> int:
        self.calls.append((user_id, since))
        return self.count


@pytest.fixture
def cache() -> CacheManager:
    return CacheManager(fakeredis.FakeRedis(decode_responses=True))


def test_window_starts_at_local_midnight() -> None:
    now = datetime(2024, 3, 10, 22, 30, tzinfo=timezone.utc)
    counter = DailyLikeCounter(CacheManager(None), StubLikeStore(), utc_offset_hours=3, clock=lambda: now)

    # 22:30 UTC is 01:30 on the 11th at UTC+3
    assert counter.current_day().isoformat() == "2024-03-11"
    assert counter.window_start_utc() == datetime(2024, 3, 10, 21, 0)
    assert counter.seconds_until_reset() == int(timedelta(hours=22, minutes=30).total_seconds())


def test_count_is_rebuilt_from_store_and_cached(cache: CacheManager) -> None:
    store = StubLikeStore(count=2)
    counter = DailyLikeCounter(cache, store, max_daily_likes=3)

    assert counter.count("u1") == 2
    assert counter.count("u1") == 2
    assert len(store.calls) == 1
    assert counter.remaining("u1") == 1
    assert not counter.is_exhausted("u1")


def test_increment_reaches_budget(cache: CacheManager) -> None:
    store = StubLikeStore(count=2)
    counter = DailyLikeCounter(cache, store, max_daily_likes=3)
    counter.count("u1")

    store.count = 3
    counter.increment("u1")

    assert counter.count("u1") == 3
    assert counter.is_exhausted("u1")


def test_increment_corrects_a_like_counted_twice(cache: CacheManager) -> None:
    # Counter rebuilt after the like committed, so it already includes it
    store = StubLikeStore(count=2)
    counter = DailyLikeCounter(cache, store, max_daily_likes=3)
    counter.count("u1")

    counter.increment("u1")

    assert counter.count("u1") == 2
    assert not counter.is_exhausted("u1")
    assert len(store.calls) == 2


def test_increment_on_missing_counter_reads_the_store(cache: CacheManager) -> None:
    store = StubLikeStore(count=1)
    counter = DailyLikeCounter(cache, store)

    counter.increment("u1")

    assert counter.count("u1") == 1
    assert len(store.calls) == 1


def test_counter_expires_at_local_midnight(cache: CacheManager) -> None:
    now = datetime(2024, 3, 10, 23, 0, tzinfo=timezone.utc)
    counter = DailyLikeCounter(cache, StubLikeStore(count=1), clock=lambda: now)

    counter.count("u1")

    key = build_daily_likes_cache_key("u1", counter.current_day())
    assert 0 < cache.client.ttl(key) <= 3600


def test_without_redis_store_is_authoritative() -> None:
    store = StubLikeStore(count=5)
    counter = DailyLikeCounter(CacheManager(None), store, max_daily_likes=5)

    assert counter.is_exhausted("u1")
    counter.increment("u1")
    assert counter.count("u1") == 5
