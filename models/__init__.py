from .base import db, metadata
from .users import User
from .swipes import Swipe, SwipeDecision
from .likes import Like
from .matches import Match, MatchStatus, canonical_pair

__all__ = [
    'db',
    'metadata',
    'User',
    'Swipe',
    'SwipeDecision',
    'Like',
    'Match',
    'MatchStatus',
    'canonical_pair',
]
