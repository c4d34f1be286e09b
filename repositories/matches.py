import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from models import Match, MatchStatus, canonical_pair
from models.base import utcnow
from utils.errors import Forbidden, MatchNotActive, MatchNotFound
from .base import BaseRepository

logger = logging.getLogger(__name__)


def _as_uuid(match_id: Union[str, uuid.UUID]) -> Optional[uuid.UUID]:
    if isinstance(match_id, uuid.UUID):
        return match_id
    try:
        return uuid.UUID(str(match_id))
    except ValueError:
        return None


class MatchStore(BaseRepository):
    """
    Confirmed matches, one row per unordered pair of users.

    create_if_absent is the only place a Match row is born.
    """

    def get(self, match_id) -> Optional[Match]:
        key = _as_uuid(match_id)
        if key is None:
            return None
        return self.session.get(Match, key)

    def find_by_pair(self, user_id_1: str, user_id_2: str) -> Optional[Match]:
        low, high = canonical_pair(user_id_1, user_id_2)
        stmt = select(Match).where(Match.user_id_low == low, Match.user_id_high == high)
        return self.session.scalars(stmt).first()

    def create_if_absent(self, user_id_1: str, user_id_2: str) -> Match:
        """
        Return the match for this pair, creating an ACTIVE one if none exists.

        Safe to call repeatedly and concurrently: a caller that loses the insert
        race on the pair constraint gets the winner's row.
        """
        existing = self.find_by_pair(user_id_1, user_id_2)
        if existing is not None:
            logger.debug(f"Match already exists: {existing.id}")
            return existing

        low, high = canonical_pair(user_id_1, user_id_2)
        match = Match(user_id_low=low, user_id_high=high, status=MatchStatus.ACTIVE.value)
        try:
            with self.session.begin_nested():
                self.session.add(match)
        except IntegrityError:
            existing = self.find_by_pair(low, high)
            if existing is None:
                raise
            logger.debug(f"Match for {low}:{high} created concurrently: {existing.id}")
            return existing

        logger.info(f"New match created: id={match.id}, user_low={low}, user_high={high}")
        return match

    def _participant_match(self, requesting_user_id: str, match_id) -> Match:
        match = self.get(match_id)
        if match is None:
            raise MatchNotFound(match_id=str(match_id))
        if not match.is_participant(requesting_user_id):
            raise Forbidden(match_id=str(match_id))
        if not match.is_active:
            raise MatchNotActive(match_id=str(match_id), status=match.status)
        return match

    def unmatch(self, requesting_user_id: str, match_id) -> Match:
        """
        Move an ACTIVE match to UNMATCHED. Irreversible.

        Raises:
            MatchNotFound, Forbidden, MatchNotActive
        """
        match = self._participant_match(requesting_user_id, match_id)
        match.status = MatchStatus.UNMATCHED.value
        match.unmatched_by = requesting_user_id
        match.unmatched_at = utcnow()
        self.session.flush()
        logger.info(f"Users unmatched: match_id={match.id}, unmatched_by={requesting_user_id}")
        return match

    def report(self, requesting_user_id: str, match_id) -> Match:
        """Move an ACTIVE match to REPORTED"""
        match = self._participant_match(requesting_user_id, match_id)
        match.status = MatchStatus.REPORTED.value
        match.reported_by = requesting_user_id
        match.reported_at = utcnow()
        self.session.flush()
        logger.info(f"Match reported: match_id={match.id}, reported_by={requesting_user_id}")
        return match

    def active_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Match]:
        stmt = select(Match).where(
            or_(Match.user_id_low == user_id, Match.user_id_high == user_id),
            Match.status == MatchStatus.ACTIVE.value
        ).order_by(Match.created_at.desc()).limit(limit).offset(offset)
        return list(self.session.scalars(stmt))

    def count_active(self, user_id: str) -> int:
        stmt = select(func.count(Match.id)).where(
            or_(Match.user_id_low == user_id, Match.user_id_high == user_id),
            Match.status == MatchStatus.ACTIVE.value
        )
        return self.session.execute(stmt).scalar_one()
