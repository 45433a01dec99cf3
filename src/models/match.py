"""matches and match_entries table models."""

from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base
from models.player import Player


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Match(Base):
    """One played game; replay order is (match_date, created_at, id)."""

    __tablename__ = "matches"
    __table_args__ = (Index("idx_matches_chronological", "match_date", "created_at", "id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        default=_utcnow,
    )

    entries: Mapped[list[MatchEntry]] = relationship(
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="MatchEntry.player_id",
    )


class MatchEntry(Base):
    """Points scored by one player in one match."""

    __tablename__ = "match_entries"
    __table_args__ = (Index("idx_match_entries_player", "player_id"),)

    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"),
        primary_key=True,
    )
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        primary_key=True,
    )
    points: Mapped[float] = mapped_column(Float, nullable=False)

    match: Mapped[Match] = relationship(back_populates="entries")
    player: Mapped[Player] = relationship()
