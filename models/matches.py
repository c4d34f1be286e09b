import enum
import uuid
from .base import db, utcnow
from sqlalchemy_serializer import SerializerMixin
from sqlalchemy import CheckConstraint


class MatchStatus(str, enum.Enum):
    ACTIVE = 'active'
    UNMATCHED = 'unmatched'
    REPORTED = 'reported'


def canonical_pair(user_id_1: str, user_id_2: str):
    """Order a pair of user ids so (a, b) and (b, a) map to the same key"""
    return min(user_id_1, user_id_2), max(user_id_1, user_id_2)


class Match(db.Model, SerializerMixin):
    __tablename__ = "matches"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id_low = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    user_id_high = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(
        db.Enum(*[s.value for s in MatchStatus], name='match_status'),
        nullable=False,
        default=MatchStatus.ACTIVE.value
    )
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    unmatched_by = db.Column(db.String, nullable=True)
    unmatched_at = db.Column(db.DateTime, nullable=True)
    reported_by = db.Column(db.String, nullable=True)
    reported_at = db.Column(db.DateTime, nullable=True)

    # One row per unordered pair, ever: user_id_low is always the smaller id
    __table_args__ = (
        db.UniqueConstraint('user_id_low', 'user_id_high', name='uq_match_pair'),
        CheckConstraint('user_id_low < user_id_high', name='check_user_order'),
        db.Index('idx_match_high_status', 'user_id_high', 'status'),
        db.Index('idx_match_low_status', 'user_id_low', 'status'),
    )

    serialize_only = (
        'id', 'user_id_low', 'user_id_high', 'status', 'created_at',
        'unmatched_by', 'unmatched_at',
    )

    @property
    def is_active(self) -> bool:
        return self.status == MatchStatus.ACTIVE.value

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.user_id_low, self.user_id_high)

    def other_user_id(self, user_id: str) -> str:
        if user_id == self.user_id_low:
            return self.user_id_high
        if user_id == self.user_id_high:
            return self.user_id_low
        raise ValueError(f"User {user_id} is not part of match {self.id}")

    def __repr__(self):
        return f'<Match {self.id} {self.user_id_low}:{self.user_id_high} {self.status}>'
