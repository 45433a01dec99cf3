"""Shared types for the match rating engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class MatchParticipant:
    """One player's point total in a match."""

    player_id: int
    points: float


@dataclass(frozen=True)
class MatchResult:
    """Canonical match payload consumed by the calculator and the replayer."""

    match_id: int
    match_date: date
    created_at: datetime
    participants: tuple[MatchParticipant, ...]

    @property
    def chronological_key(self) -> tuple[date, datetime, int]:
        """Ordering key: match date, then creation time, then match id."""
        return (self.match_date, self.created_at, self.match_id)

    @property
    def event_time(self) -> datetime:
        return datetime.combine(self.match_date, datetime.min.time())

    def participant_ids(self) -> list[int]:
        return [participant.player_id for participant in self.participants]

    def points_by_participant(self) -> dict[int, float]:
        return {participant.player_id: participant.points for participant in self.participants}


@dataclass(frozen=True)
class MatchEntryInput:
    """Admin-supplied entry for a new or edited match."""

    player_id: int
    points: float
