from .base import db, utcnow
from sqlalchemy_serializer import SerializerMixin


class Like(db.Model, SerializerMixin):
    """Like edge between two users; mirrors every like/super-like swipe"""
    __tablename__ = "likes"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    from_user_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    to_user_id = db.Column(db.String, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    is_super_like = db.Column(db.Boolean, nullable=False, default=False)
    message = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('from_user_id', 'to_user_id', name='uq_like_pair'),
        db.Index('idx_like_to_user_created', 'to_user_id', 'created_at'),
        db.Index('idx_like_from_user_created', 'from_user_id', 'created_at'),
    )

    serialize_only = ('from_user_id', 'to_user_id', 'is_super_like', 'message', 'created_at')
