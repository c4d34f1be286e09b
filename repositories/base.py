from typing import Optional

from models import db
from utils.cache import CacheManager


class BaseRepository:
    """Base class for repositories."""

    def __init__(self, cache: Optional[CacheManager] = None):
        self._cache = cache or CacheManager(None)

    @property
    def session(self):
        return db.session

    @property
    def cache(self) -> CacheManager:
        return self._cache
