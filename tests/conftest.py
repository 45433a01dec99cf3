"""Shared fixtures: a per-test SQLite file store with the full schema."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date, datetime
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory
from domain.ratings.common import MatchEntryInput
from models import Match
from repositories.match_repository import add_match, add_player
from repositories.rating_history_repository import ensure_schema


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite+pysqlite:///{tmp_path / 'ratings.db'}")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def players(session_factory: sessionmaker[Session]) -> dict[str, int]:
    """Four registered players keyed by name."""
    with session_factory() as session:
        ids = {name: add_player(session, name).id for name in ("alice", "bob", "carol", "dave")}
        session.commit()
    return ids


@pytest.fixture
def record_match(session_factory: sessionmaker[Session]) -> Callable[..., int]:
    """Insert one match outside of any replay and return its id."""

    def _record(
        match_date: date,
        points: dict[int, float],
        *,
        created_at: datetime | None = None,
    ) -> int:
        with session_factory() as session:
            match: Match = add_match(
                session,
                match_date=match_date,
                entries=[
                    MatchEntryInput(player_id=player_id, points=value)
                    for player_id, value in points.items()
                ],
                created_at=created_at,
            )
            session.commit()
            return match.id

    return _record
