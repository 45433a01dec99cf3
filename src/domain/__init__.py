"""Rating-engine domain modules."""

from domain.ratings.common import MatchEntryInput, MatchParticipant, MatchResult

__all__ = ["MatchEntryInput", "MatchParticipant", "MatchResult"]
