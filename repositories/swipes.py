import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from models import Swipe, SwipeDecision
from utils.cache import CACHE_TTL_SWIPE, build_swipe_cache_key
from utils.errors import AlreadySwiped
from .base import BaseRepository

logger = logging.getLogger(__name__)


class SwipeLedger(BaseRepository):
    """
    Append-once record of every swipe decision, keyed by the ordered pair.

    The (from_user_id, to_user_id) uniqueness constraint is the source of truth
    for "already swiped". The Redis marker is only a fast path in front of it
    and is written after the durable write has committed.
    """

    def __init__(self, cache=None, cache_ttl: int = CACHE_TTL_SWIPE):
        super().__init__(cache)
        self.cache_ttl = cache_ttl

    def record(self, from_user_id: str, to_user_id: str, decision: SwipeDecision) -> Swipe:
        """
        Add a swipe to the current transaction.

        Raises:
            AlreadySwiped: A swipe for this ordered pair already exists
        """
        swipe = Swipe(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            decision=SwipeDecision(decision).value
        )
        try:
            with self.session.begin_nested():
                self.session.add(swipe)
        except IntegrityError as e:
            logger.info(f"Duplicate swipe rejected by constraint: {from_user_id} -> {to_user_id}")
            raise AlreadySwiped() from e

        logger.debug(f"Recorded swipe {from_user_id} -> {to_user_id} ({swipe.decision})")
        return swipe

    def exists(self, from_user_id: str, to_user_id: str) -> bool:
        """Durable existence check, bypassing the cache"""
        stmt = select(Swipe.id).where(
            Swipe.from_user_id == from_user_id,
            Swipe.to_user_id == to_user_id
        ).limit(1)
        return self.session.execute(stmt).first() is not None

    def is_cached(self, from_user_id: str, to_user_id: str) -> bool:
        """Fast-path check; a miss says nothing, a hit means the swipe is durable"""
        return self.cache.exists(build_swipe_cache_key(from_user_id, to_user_id))

    def has_swiped(self, from_user_id: str, to_user_id: str) -> bool:
        """Cache first, then the ledger; warms the cache on a durable hit"""
        if self.is_cached(from_user_id, to_user_id):
            return True
        found = self.exists(from_user_id, to_user_id)
        if found:
            self.remember(from_user_id, to_user_id)
        return found

    def remember(self, from_user_id: str, to_user_id: str):
        """Mark the swipe as existing in the cache. Call only after commit."""
        self.cache.set(build_swipe_cache_key(from_user_id, to_user_id), True, ttl=self.cache_ttl)

    def decision_for(self, from_user_id: str, to_user_id: str) -> Optional[SwipeDecision]:
        stmt = select(Swipe.decision).where(
            Swipe.from_user_id == from_user_id,
            Swipe.to_user_id == to_user_id
        )
        value = self.session.execute(stmt).scalar_one_or_none()
        return SwipeDecision(value) if value is not None else None

    def history(self, user_id: str, since: Optional[datetime] = None) -> List[Swipe]:
        """Swipes made by user_id, newest first, optionally only since a UTC timestamp"""
        stmt = select(Swipe).where(Swipe.from_user_id == user_id)
        if since is not None:
            stmt = stmt.where(Swipe.created_at >= since)
        stmt = stmt.order_by(Swipe.created_at.desc(), Swipe.id.desc())
        return list(self.session.scalars(stmt))
