"""Persistence helpers for replayed rating history using SQLAlchemy."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from domain.ratings.calculator import RatingHistoryEvent
from models import Base, MatchEntry, Player, RatingHistory

RECENT_DELTA_WINDOW = 10

RATING_HISTORY_COPY_SQL = """
    COPY rating_history (
        match_id,
        player_id,
        match_index,
        event_time,
        match_created_at,
        points,
        pre_rating,
        pairwise_delta,
        performance_delta,
        delta,
        rating_after
    ) FROM STDIN
"""

_EVENT_FIELDS = (
    "match_id",
    "player_id",
    "match_index",
    "event_time",
    "match_created_at",
    "points",
    "pre_rating",
    "pairwise_delta",
    "performance_delta",
    "delta",
    "rating_after",
)
_COPY_SUPPORT_CACHE_KEY = "_rating_history_supports_copy"


@dataclass(frozen=True)
class PlayerRating:
    player_id: int
    name: str
    rating: float
    match_index: int | None


@dataclass(frozen=True)
class HistoryPoint:
    match_id: int
    player_id: int
    match_index: int
    event_time: datetime
    points: float
    delta: float
    rating_after: float


@dataclass(frozen=True)
class LeaderboardRow:
    player_id: int
    name: str
    rating: float
    games: int
    avg_points: float
    win_pct: float
    delta_last_10: float


def ensure_schema(engine: Engine) -> None:
    """Create every table and index if it does not exist."""
    with engine.begin() as connection:
        Base.metadata.create_all(bind=connection, checkfirst=True)


def delete_all_history(session: Session) -> None:
    session.execute(delete(RatingHistory))


def _event_to_row(event: RatingHistoryEvent) -> dict[str, Any]:
    return {field: getattr(event, field) for field in _EVENT_FIELDS}


def _event_to_copy_row(event: RatingHistoryEvent) -> tuple[Any, ...]:
    return tuple(getattr(event, field) for field in _EVENT_FIELDS)


def insert_history_events(session: Session, events: Sequence[RatingHistoryEvent]) -> None:
    """Bulk insert history rows using COPY on supported Postgres drivers."""
    if not events:
        return

    if _supports_copy_bulk_insert(session):
        raw_connection = session.connection().connection.driver_connection
        with raw_connection.cursor() as cursor:
            with cursor.copy(RATING_HISTORY_COPY_SQL) as copy:
                for event in events:
                    copy.write_row(_event_to_copy_row(event))
        return

    session.execute(insert(RatingHistory), [_event_to_row(event) for event in events])


def _supports_copy_bulk_insert(session: Session) -> bool:
    cached_value = session.info.get(_COPY_SUPPORT_CACHE_KEY)
    if cached_value is not None:
        return bool(cached_value)

    bind = session.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        session.info[_COPY_SUPPORT_CACHE_KEY] = False
        return False

    raw_connection = session.connection().connection.driver_connection
    with raw_connection.cursor() as cursor:
        supports_copy = hasattr(cursor, "copy")

    session.info[_COPY_SUPPORT_CACHE_KEY] = supports_copy
    return supports_copy


def count_history_rows(session: Session) -> int:
    return int(session.scalar(select(func.count()).select_from(RatingHistory)) or 0)


def _latest_history_subquery():
    ranked = select(
        RatingHistory.player_id,
        RatingHistory.rating_after,
        RatingHistory.match_index,
        func.row_number()
        .over(partition_by=RatingHistory.player_id, order_by=RatingHistory.match_index.desc())
        .label("rn"),
    ).subquery("ranked_history")
    return (
        select(ranked.c.player_id, ranked.c.rating_after, ranked.c.match_index)
        .where(ranked.c.rn == 1)
        .subquery("latest_history")
    )


def fetch_current_ratings(session: Session, *, initial_rating: float) -> list[PlayerRating]:
    """Every player with the rating_after of their latest match, or the initial rating."""
    latest = _latest_history_subquery()
    statement = (
        select(Player.id, Player.name, latest.c.rating_after, latest.c.match_index)
        .select_from(Player)
        .outerjoin(latest, latest.c.player_id == Player.id)
        .order_by(Player.id)
    )
    return [
        PlayerRating(
            player_id=int(row.id),
            name=row.name,
            rating=initial_rating if row.rating_after is None else float(row.rating_after),
            match_index=None if row.match_index is None else int(row.match_index),
        )
        for row in session.execute(statement)
    ]


def fetch_current_rating(session: Session, player_id: int, *, initial_rating: float) -> float:
    rating = session.scalar(
        select(RatingHistory.rating_after)
        .where(RatingHistory.player_id == player_id)
        .order_by(RatingHistory.match_index.desc())
        .limit(1)
    )
    return initial_rating if rating is None else float(rating)


def _to_history_point(row: RatingHistory) -> HistoryPoint:
    return HistoryPoint(
        match_id=row.match_id,
        player_id=row.player_id,
        match_index=row.match_index,
        event_time=row.event_time,
        points=row.points,
        delta=row.delta,
        rating_after=row.rating_after,
    )


def fetch_player_history(session: Session, player_id: int) -> list[HistoryPoint]:
    """One player's rating trajectory in match order."""
    statement = (
        select(RatingHistory)
        .where(RatingHistory.player_id == player_id)
        .order_by(RatingHistory.match_index)
    )
    return [_to_history_point(row) for row in session.execute(statement).scalars()]


def fetch_history_with_order(session: Session) -> list[HistoryPoint]:
    """All history rows with the global match index, for charting."""
    statement = select(RatingHistory).order_by(RatingHistory.match_index, RatingHistory.player_id)
    return [_to_history_point(row) for row in session.execute(statement).scalars()]


def _win_credits(session: Session) -> dict[int, float]:
    """First place per match counts 1, shared first place counts 0.5 each."""
    entries_by_match: dict[int, list[tuple[int, float]]] = defaultdict(list)
    for match_id, player_id, points in session.execute(
        select(MatchEntry.match_id, MatchEntry.player_id, MatchEntry.points)
    ):
        entries_by_match[match_id].append((player_id, points))

    credits: dict[int, float] = defaultdict(float)
    for entries in entries_by_match.values():
        max_points = max(points for _, points in entries)
        winners = [player_id for player_id, points in entries if points == max_points]
        credit = 1.0 if len(winners) == 1 else 0.5
        for player_id in winners:
            credits[player_id] += credit
    return credits


def _recent_delta_sums(session: Session) -> dict[int, float]:
    ranked = select(
        RatingHistory.player_id,
        RatingHistory.delta,
        func.row_number()
        .over(partition_by=RatingHistory.player_id, order_by=RatingHistory.match_index.desc())
        .label("rn"),
    ).subquery("ranked_deltas")
    statement = (
        select(ranked.c.player_id, func.sum(ranked.c.delta))
        .where(ranked.c.rn <= RECENT_DELTA_WINDOW)
        .group_by(ranked.c.player_id)
    )
    return {int(player_id): float(total) for player_id, total in session.execute(statement)}


def fetch_leaderboard(session: Session, *, initial_rating: float) -> list[LeaderboardRow]:
    """Players with at least one match, ranked by current rating."""
    games_statement = select(
        MatchEntry.player_id,
        func.count().label("games"),
        func.avg(MatchEntry.points).label("avg_points"),
    ).group_by(MatchEntry.player_id)
    games = {
        int(row.player_id): (int(row.games), float(row.avg_points))
        for row in session.execute(games_statement)
    }
    wins = _win_credits(session)
    recent_deltas = _recent_delta_sums(session)

    rows: list[LeaderboardRow] = []
    for player in fetch_current_ratings(session, initial_rating=initial_rating):
        if player.player_id not in games:
            continue
        game_count, avg_points = games[player.player_id]
        rows.append(
            LeaderboardRow(
                player_id=player.player_id,
                name=player.name,
                rating=player.rating,
                games=game_count,
                avg_points=avg_points,
                win_pct=wins.get(player.player_id, 0.0) / game_count,
                delta_last_10=recent_deltas.get(player.player_id, 0.0),
            )
        )

    rows.sort(key=lambda row: (-row.rating, row.player_id))
    return rows
