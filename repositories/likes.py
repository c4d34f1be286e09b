import logging
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from models import Like
from utils.cache import CACHE_TTL_LIKE, build_like_cache_key
from utils.errors import AlreadySwiped
from .base import BaseRepository

logger = logging.getLogger(__name__)


class LikeStore(BaseRepository):
    """Like edges, one per ordered pair, used for reciprocity lookups and statistics."""

    def __init__(self, cache=None, cache_ttl: int = CACHE_TTL_LIKE):
        super().__init__(cache)
        self.cache_ttl = cache_ttl

    def record(self, from_user_id: str, to_user_id: str, is_super_like: bool = False,
               message: Optional[str] = None) -> Like:
        """
        Add a like edge to the current transaction.

        Raises:
            AlreadySwiped: A like for this ordered pair already exists
        """
        like = Like(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            is_super_like=is_super_like,
            message=message
        )
        try:
            with self.session.begin_nested():
                self.session.add(like)
        except IntegrityError as e:
            raise AlreadySwiped() from e

        logger.debug(f"Recorded like {from_user_id} -> {to_user_id} (super={is_super_like})")
        return like

    def exists(self, from_user_id: str, to_user_id: str) -> bool:
        """Durable existence check, bypassing the cache"""
        stmt = select(Like.id).where(
            Like.from_user_id == from_user_id,
            Like.to_user_id == to_user_id
        ).limit(1)
        return self.session.execute(stmt).first() is not None

    def has_like(self, from_user_id: str, to_user_id: str) -> bool:
        """Cache first, then the store; warms the cache on a durable hit"""
        if self.cache.exists(build_like_cache_key(from_user_id, to_user_id)):
            return True
        found = self.exists(from_user_id, to_user_id)
        if found:
            self.remember(from_user_id, to_user_id)
        return found

    def remember(self, from_user_id: str, to_user_id: str):
        """Mark the like as existing in the cache. Call only after commit."""
        self.cache.set(build_like_cache_key(from_user_id, to_user_id), True, ttl=self.cache_ttl)

    def likers_of(self, user_id: str, since: Optional[datetime] = None) -> Set[str]:
        """Ids of users who liked user_id, optionally only since a UTC timestamp"""
        stmt = select(Like.from_user_id).where(Like.to_user_id == user_id)
        if since is not None:
            stmt = stmt.where(Like.created_at >= since)
        return set(self.session.scalars(stmt))

    def received_by(self, user_id: str, since: Optional[datetime] = None) -> List[Like]:
        stmt = select(Like).where(Like.to_user_id == user_id)
        if since is not None:
            stmt = stmt.where(Like.created_at >= since)
        return list(self.session.scalars(stmt.order_by(Like.created_at.desc(), Like.id.desc())))

    def sent_by(self, user_id: str) -> List[Like]:
        stmt = select(Like).where(Like.from_user_id == user_id)
        return list(self.session.scalars(stmt.order_by(Like.created_at.desc(), Like.id.desc())))

    def count_sent(self, user_id: str) -> int:
        stmt = select(func.count(Like.id)).where(Like.from_user_id == user_id)
        return self.session.execute(stmt).scalar_one()

    def count_received(self, user_id: str) -> int:
        stmt = select(func.count(Like.id)).where(Like.to_user_id == user_id)
        return self.session.execute(stmt).scalar_one()

    def count_sent_since(self, user_id: str, since: datetime) -> int:
        stmt = select(func.count(Like.id)).where(
            Like.from_user_id == user_id,
            Like.created_at >= since
        )
        return self.session.execute(stmt).scalar_one()
