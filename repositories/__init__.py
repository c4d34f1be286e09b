"""
Data access for the matching engine.

Each repository is the only writer of its table.
"""

from .users import UserRepository
from .swipes import SwipeLedger
from .likes import LikeStore
from .matches import MatchStore

__all__ = [
    'UserRepository',
    'SwipeLedger',
    'LikeStore',
    'MatchStore',
]
