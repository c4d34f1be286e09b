"""
Matching engine: turns swipes into likes, dislikes and matches.

Swipes on the same unordered pair are serialized by a distributed pair lock;
swipes on different pairs never wait on each other. The durable uniqueness
constraints on swipes, likes and matches stay the final word whatever the
caches or the lock say.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import db, Like, Match, Swipe, SwipeDecision
from repositories import LikeStore, MatchStore, SwipeLedger, UserRepository
from utils.cache import CacheManager, CacheUnavailable, CACHE_TTL_SHORT, build_stats_cache_key
from utils.daily_likes import DailyLikeCounter
from utils.errors import (
    AlreadySwiped,
    DailyLimitExceeded,
    InternalError,
    InvalidDecision,
    MatchingError,
    RateLimitExceeded,
    SelfSwipeError,
    UserNotFound,
)
from utils.locks import DistributedLockManager, pair_lock_key
from utils.notifications import NotificationDispatcher
from utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class SwipeResult:
    recorded: bool
    matched: bool
    match_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MatchingStatistics:
    sent_likes: int
    received_likes: int
    active_match_count: int

    def to_dict(self) -> dict:
        return asdict(self)


def parse_decision(decision) -> SwipeDecision:
    try:
        return SwipeDecision(decision)
    except ValueError:
        raise InvalidDecision(decision=str(decision))


class MatchingEngine:
    """Orchestrates swipes, matches and statistics over the stores"""

    def __init__(
        self,
        cache: CacheManager,
        locks: DistributedLockManager,
        rate_limiter: RateLimiter,
        daily_likes: DailyLikeCounter,
        users: UserRepository,
        swipes: SwipeLedger,
        likes: LikeStore,
        matches: MatchStore,
        notifier: Optional[NotificationDispatcher] = None,
        stats_ttl: int = CACHE_TTL_SHORT,
    ):
        self.cache = cache
        self.locks = locks
        self.rate_limiter = rate_limiter
        self.daily_likes = daily_likes
        self.users = users
        self.swipes = swipes
        self.likes = likes
        self.matches = matches
        self.notifier = notifier or NotificationDispatcher()
        self.stats_ttl = stats_ttl

    # Swipes

    def submit_swipe(self, from_user_id: str, to_user_id: str, decision,
                     message: Optional[str] = None) -> SwipeResult:
        """
        Record from_user_id's decision about to_user_id.

        Raises:
            SelfSwipeError, InvalidDecision, UserNotFound: invalid request
            RateLimitExceeded, DailyLimitExceeded, AlreadySwiped: policy rejection
            LockTimeout: the pair is busy; the caller may offer a retry
            InternalError: a store failed; nothing was written
        """
        decision = parse_decision(decision)
        if from_user_id == to_user_id:
            raise SelfSwipeError()

        if not self.rate_limiter.allow_action(from_user_id):
            raise RateLimitExceeded()

        try:
            self._require_users(from_user_id, to_user_id)

            # Budget staleness is acceptable, so this is checked without the lock
            if decision.is_like and self.daily_likes.is_exhausted(from_user_id):
                logger.info(f"Daily like limit reached for user {from_user_id}")
                raise DailyLimitExceeded(limit=self.daily_likes.max_daily_likes)

            if self.swipes.has_swiped(from_user_id, to_user_id):
                raise AlreadySwiped()

            # Do not keep a read transaction open while waiting on the pair lock
            db.session.commit()
        except MatchingError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Store error before swipe {from_user_id} -> {to_user_id}: {str(e)}")
            raise InternalError() from e

        lock_key = pair_lock_key(from_user_id, to_user_id)
        token = self.locks.acquire(lock_key)
        try:
            result = self._record_swipe(from_user_id, to_user_id, decision, message)
        finally:
            self._release_pair_lock(lock_key, token)

        self._after_commit(from_user_id, to_user_id, decision, result)
        return result

    def _release_pair_lock(self, lock_key: str, token: str):
        try:
            self.locks.release(lock_key, token)
        except CacheUnavailable:
            # The swipe outcome stands; the key expires after the hold timeout
            logger.error(
                f"Pair lock '{lock_key}' left to expire after {self.locks.hold_timeout}s",
                exc_info=True
            )

    def _require_users(self, *user_ids: str):
        for user_id in user_ids:
            if not self.users.exists(user_id):
                raise UserNotFound(user_id=user_id)

    def _record_swipe(self, from_user_id: str, to_user_id: str, decision: SwipeDecision,
                      message: Optional[str]) -> SwipeResult:
        """Runs under the pair lock; writes everything in one transaction"""
        try:
            # A concurrent request may have written between the cache check and the lock
            if self.swipes.exists(from_user_id, to_user_id):
                raise AlreadySwiped()

            self.swipes.record(from_user_id, to_user_id, decision)

            match = None
            if decision.is_like:
                self.likes.record(
                    from_user_id,
                    to_user_id,
                    is_super_like=decision is SwipeDecision.SUPER_LIKE,
                    message=message
                )
                if self.likes.has_like(to_user_id, from_user_id):
                    match = self.matches.create_if_absent(from_user_id, to_user_id)

            # An unmatched pair keeps its row; it is never revived
            matched = match is not None and match.is_active
            result = SwipeResult(
                recorded=True,
                matched=matched,
                match_id=str(match.id) if matched else None
            )
            db.session.commit()
        except MatchingError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Store error recording swipe {from_user_id} -> {to_user_id}: {str(e)}")
            raise InternalError() from e

        logger.info(f"User {from_user_id} swiped {decision.value} on user {to_user_id}")
        if result.matched:
            logger.info(f"Match {result.match_id} between users {from_user_id} and {to_user_id}")
        return result

    def _after_commit(self, from_user_id: str, to_user_id: str, decision: SwipeDecision,
                      result: SwipeResult):
        """Cache upkeep and notifications; the swipe is already durable, so failures are only logged"""
        try:
            self.swipes.remember(from_user_id, to_user_id)
            if decision.is_like:
                self.likes.remember(from_user_id, to_user_id)
                self.invalidate_statistics(from_user_id, to_user_id)
                self.daily_likes.increment(from_user_id)
        except (CacheUnavailable, SQLAlchemyError):
            db.session.rollback()
            logger.exception(f"Cache upkeep failed after swipe {from_user_id} -> {to_user_id}")

        if not decision.is_like:
            return

        if result.matched:
            self._notify(self.notifier.notify_match, from_user_id, to_user_id, result.match_id)
            self._notify(self.notifier.notify_match, to_user_id, from_user_id, result.match_id)
        elif decision is SwipeDecision.SUPER_LIKE:
            self._notify(self.notifier.notify_super_like, to_user_id, from_user_id)
        else:
            self._notify(self.notifier.notify_like, to_user_id, from_user_id)

    def _notify(self, send, *args):
        try:
            send(*args)
        except Exception:
            logger.exception(f"Error sending {send.__name__} notification")

    # Matches

    def unmatch(self, user_id: str, match_id) -> Match:
        """
        End an active match on behalf of one of its participants.

        Raises:
            MatchNotFound, Forbidden, MatchNotActive, InternalError
        """
        return self._change_match(self.matches.unmatch, user_id, match_id)

    def report_match(self, user_id: str, match_id) -> Match:
        return self._change_match(self.matches.report, user_id, match_id)

    def _change_match(self, change, user_id: str, match_id) -> Match:
        try:
            match = change(user_id, match_id)
            participants = (match.user_id_low, match.user_id_high)
            db.session.commit()
        except MatchingError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Store error updating match {match_id}: {str(e)}")
            raise InternalError() from e

        self.invalidate_statistics(*participants)
        return match

    def get_active_matches(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Match]:
        return self.matches.active_for_user(user_id, limit=limit, offset=offset)

    def has_match(self, user_id_1: str, user_id_2: str) -> bool:
        match = self.matches.find_by_pair(user_id_1, user_id_2)
        return match is not None and match.is_active

    # Likes

    def get_received_likes(self, user_id: str, since: Optional[datetime] = None) -> List[Like]:
        return self.likes.received_by(user_id, since=since)

    def get_sent_likes(self, user_id: str) -> List[Like]:
        return self.likes.sent_by(user_id)

    def get_swipe_history(self, user_id: str, since: Optional[datetime] = None) -> List[Swipe]:
        """Every decision user_id made, newest first"""
        return self.swipes.history(user_id, since=since)

    # Statistics

    def get_statistics(self, user_id: str) -> MatchingStatistics:
        """Like and match counters for a user, cached briefly and dropped on every write"""
        cache_key = build_stats_cache_key(user_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache HIT for statistics - user: {user_id}")
            return MatchingStatistics(**cached)

        logger.debug(f"Cache MISS for statistics - user: {user_id}")
        stats = MatchingStatistics(
            sent_likes=self.likes.count_sent(user_id),
            received_likes=self.likes.count_received(user_id),
            active_match_count=self.matches.count_active(user_id),
        )
        self.cache.set(cache_key, stats.to_dict(), ttl=self.stats_ttl)
        return stats

    def invalidate_statistics(self, *user_ids: str):
        for user_id in user_ids:
            self.cache.delete(build_stats_cache_key(user_id))
