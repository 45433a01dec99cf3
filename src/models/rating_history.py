"""rating_history table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class RatingHistory(Base):
    """Replayed rating events (one row per player per match).

    Rows are owned by the history replay and rewritten as a whole on every
    recomputation.
    """

    __tablename__ = "rating_history"
    __table_args__ = (
        UniqueConstraint("match_id", "player_id", name="uq_rating_history_match_player"),
        Index("idx_rating_history_player_order", "player_id", "match_index"),
        Index("idx_rating_history_match", "match_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
    )
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
    )
    match_index: Mapped[int] = mapped_column(Integer, nullable=False)
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    match_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    points: Mapped[float] = mapped_column(Float, nullable=False)
    pre_rating: Mapped[float] = mapped_column(Float, nullable=False)
    pairwise_delta: Mapped[float] = mapped_column(Float, nullable=False)
    performance_delta: Mapped[float] = mapped_column(Float, nullable=False)
    delta: Mapped[float] = mapped_column(Float, nullable=False)
    rating_after: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
