"""Persistence helpers for players, matches and match entries."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from domain.ratings.common import MatchEntryInput, MatchParticipant, MatchResult
from models import Match, MatchEntry, Player, RatingHistory


@dataclass(frozen=True)
class MatchListingEntry:
    player_id: int
    player_name: str
    points: float


@dataclass(frozen=True)
class MatchListing:
    match_id: int
    match_date: date
    created_at: datetime
    entries: tuple[MatchListingEntry, ...]


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("player name must not be empty")
    return cleaned


def find_player_by_name(session: Session, name: str) -> Player | None:
    return session.execute(select(Player).where(Player.name == name.strip())).scalar_one_or_none()


def add_player(session: Session, name: str) -> Player:
    """Create a player; names are unique."""
    cleaned = _clean_name(name)
    if find_player_by_name(session, cleaned) is not None:
        raise ValueError(f"player name already exists: {cleaned!r}")
    player = Player(name=cleaned)
    session.add(player)
    session.flush()
    return player


def get_or_create_player(session: Session, name: str) -> Player:
    """Return the player with this name, creating it on first use."""
    player = find_player_by_name(session, _clean_name(name))
    if player is not None:
        return player
    return add_player(session, name)


def rename_player(session: Session, player_id: int, name: str) -> Player:
    player = session.get(Player, player_id)
    if player is None:
        raise LookupError(f"player_id={player_id} does not exist")
    cleaned = _clean_name(name)
    existing = find_player_by_name(session, cleaned)
    if existing is not None and existing.id != player_id:
        raise ValueError(f"player name already exists: {cleaned!r}")
    player.name = cleaned
    session.flush()
    return player


def list_players(session: Session) -> list[Player]:
    return list(session.execute(select(Player).order_by(Player.name, Player.id)).scalars())


def _validate_entries(session: Session, entries: Sequence[MatchEntryInput]) -> None:
    if len(entries) < 2:
        raise ValueError(f"a match needs at least two players, got {len(entries)}")

    player_ids = [entry.player_id for entry in entries]
    if len(set(player_ids)) != len(player_ids):
        raise ValueError(f"a player can appear only once per match: {player_ids}")

    for entry in entries:
        if isinstance(entry.points, bool) or not isinstance(entry.points, (int, float)):
            raise ValueError(f"player_id={entry.player_id} has non-numeric points={entry.points!r}")
        if not math.isfinite(entry.points):
            raise ValueError(f"player_id={entry.player_id} has non-finite points={entry.points!r}")

    known_ids = set(
        session.execute(select(Player.id).where(Player.id.in_(player_ids))).scalars()
    )
    unknown_ids = sorted(set(player_ids) - known_ids)
    if unknown_ids:
        raise LookupError(f"unknown player ids: {unknown_ids}")


def _get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if match is None:
        raise LookupError(f"match_id={match_id} does not exist")
    return match


def add_match(
    session: Session,
    *,
    match_date: date,
    entries: Sequence[MatchEntryInput],
    created_at: datetime | None = None,
) -> Match:
    """Insert a match with its entries. Ratings are not touched until the next replay."""
    _validate_entries(session, entries)

    match = Match(match_date=match_date)
    if created_at is not None:
        match.created_at = created_at
    match.entries = [
        MatchEntry(player_id=entry.player_id, points=float(entry.points)) for entry in entries
    ]
    session.add(match)
    session.flush()
    return match


def update_match(
    session: Session,
    match_id: int,
    *,
    match_date: date,
    entries: Sequence[MatchEntryInput],
) -> Match:
    """Move a match to a new date and replace all of its entries."""
    _validate_entries(session, entries)

    match = _get_match(session, match_id)
    match.match_date = match_date
    match.entries.clear()
    session.flush()
    match.entries.extend(
        MatchEntry(player_id=entry.player_id, points=float(entry.points)) for entry in entries
    )
    session.flush()
    return match


def delete_match(session: Session, match_id: int) -> None:
    """Remove a match, its entries and any history rows that point at it."""
    match = _get_match(session, match_id)
    session.execute(delete(RatingHistory).where(RatingHistory.match_id == match_id))
    session.delete(match)
    session.flush()


def list_matches(session: Session) -> list[MatchListing]:
    """All matches newest first, with entries and player names."""
    statement = (
        select(Match)
        .options(selectinload(Match.entries).selectinload(MatchEntry.player))
        .order_by(Match.match_date.desc(), Match.created_at.desc(), Match.id.desc())
    )
    listings: list[MatchListing] = []
    for match in session.execute(statement).scalars():
        entries = sorted(match.entries, key=lambda entry: (-entry.points, entry.player_id))
        listings.append(
            MatchListing(
                match_id=match.id,
                match_date=match.match_date,
                created_at=match.created_at,
                entries=tuple(
                    MatchListingEntry(
                        player_id=entry.player_id,
                        player_name=entry.player.name,
                        points=entry.points,
                    )
                    for entry in entries
                ),
            )
        )
    return listings


def fetch_match_results(session: Session) -> list[MatchResult]:
    """Fetch every match with its entries in deterministic chronological order.

    Order is match date, then creation time, then match id. Entries within a
    match are ordered by player id.
    """
    statement = (
        select(
            Match.id.label("match_id"),
            Match.match_date,
            Match.created_at,
            MatchEntry.player_id,
            MatchEntry.points,
        )
        .select_from(Match)
        .outerjoin(MatchEntry, MatchEntry.match_id == Match.id)
        .order_by(Match.match_date, Match.created_at, Match.id, MatchEntry.player_id)
    )
    rows = session.execute(statement).mappings().all()

    grouped: dict[int, dict[str, object]] = {}
    ordered_match_ids: list[int] = []

    for row in rows:
        match_id = int(row["match_id"])
        payload = grouped.get(match_id)
        if payload is None:
            payload = {
                "match_date": row["match_date"],
                "created_at": row["created_at"],
                "participants": [],
            }
            grouped[match_id] = payload
            ordered_match_ids.append(match_id)

        if row["player_id"] is not None:
            payload["participants"].append(  # type: ignore[union-attr]
                MatchParticipant(player_id=int(row["player_id"]), points=row["points"])
            )

    return [
        MatchResult(
            match_id=match_id,
            match_date=grouped[match_id]["match_date"],  # type: ignore[arg-type]
            created_at=grouped[match_id]["created_at"],  # type: ignore[arg-type]
            participants=tuple(grouped[match_id]["participants"]),  # type: ignore[arg-type]
        )
        for match_id in ordered_match_ids
    ]
