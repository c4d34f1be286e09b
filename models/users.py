# models/users.py
from sqlalchemy import Column, String, DateTime, Index, func
from sqlalchemy_serializer import SerializerMixin
from .base import db, utcnow


class User(db.Model, SerializerMixin):
    __tablename__ = "users"

    # Primary Key (identity-provider user id, e.g. the bot account id)
    id = Column(String, primary_key=True)

    name = Column(String(150), nullable=False)
    email = Column(String(150), unique=True, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_users_email_lower", func.lower(email), unique=True),
    )

    serialize_only = ('id', 'name')

    def __repr__(self):
        return f'<User {self.id}>'
