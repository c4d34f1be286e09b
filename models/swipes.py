import enum
from .base import db, utcnow
from sqlalchemy_serializer import SerializerMixin


class SwipeDecision(str, enum.Enum):
    LIKE = 'like'
    DISLIKE = 'dislike'
    SUPER_LIKE = 'super_like'

    @property
    def is_like(self) -> bool:
        return self is not SwipeDecision.DISLIKE


class Swipe(db.Model, SerializerMixin):
    """One swipe decision per ordered pair of users, written once and never updated"""
    __tablename__ = "swipes"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    from_user_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    to_user_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    decision = db.Column(
        db.Enum(*[d.value for d in SwipeDecision], name='swipe_decision'),
        nullable=False
    )
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    # A user may swipe another at most once, and never themselves
    __table_args__ = (
        db.UniqueConstraint('from_user_id', 'to_user_id', name='uq_swipe_pair'),
        db.CheckConstraint('from_user_id != to_user_id', name='no_self_swipe'),
        db.Index('idx_swipe_to_user', 'to_user_id'),
        db.Index('idx_swipe_created_at', 'created_at'),
    )

    serialize_only = ('from_user_id', 'to_user_id', 'decision', 'created_at')
