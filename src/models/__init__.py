"""ORM models."""

from models.base import Base
from models.match import Match, MatchEntry
from models.player import Player
from models.rating_history import RatingHistory
from models.system import RatingSystem

__all__ = [
    "Base",
    "Match",
    "MatchEntry",
    "Player",
    "RatingHistory",
    "RatingSystem",
]
