from typing import Optional

from models import User
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Read access to users; accounts are created by the bot/onboarding layer."""

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def exists(self, user_id: str) -> bool:
        return self.find_by_id(user_id) is not None

    def create(self, user_id: str, name: str, email: Optional[str] = None) -> User:
        """Insert a user row. Used by seeding and tests."""
        user = User(id=user_id, name=name, email=email)
        self.session.add(user)
        self.session.flush()
        return user
