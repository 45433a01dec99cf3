"""Full rating-history replay.

The history table is a pure function of (matches, entries, parameters). Every
replay reloads all matches in chronological order, recomputes every rating
from scratch and swaps the stored history in one transaction.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.ratings.calculator import MatchRatingCalculator, RatingHistoryEvent, RatingParameters
from domain.ratings.common import MatchResult
from domain.ratings.errors import ReplayError, ReplayTimeoutError
from repositories.match_repository import fetch_match_results
from repositories.rating_history_repository import delete_all_history, insert_history_events

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2
REPLAY_ADVISORY_LOCK_KEY = 7_042_019

_replay_lock = threading.Lock()

T = TypeVar("T")


@dataclass(frozen=True)
class ReplayedHistory:
    """In-memory outcome of replaying an ordered match sequence."""

    events: list[RatingHistoryEvent]
    processed_match_ids: tuple[int, ...]
    skipped_match_ids: tuple[int, ...]
    final_ratings: dict[int, float]


@dataclass(frozen=True)
class ReplaySummary:
    """Outcome of one persisted (or dry-run) recomputation."""

    processed_matches: int
    skipped_matches: int
    inserted_events: int
    tracked_players: int
    dry_run: bool


def replay_match_history(
    results: Sequence[MatchResult],
    params: RatingParameters,
    *,
    deadline: float | None = None,
) -> ReplayedHistory:
    """Replay matches in the given order from the initial rating.

    ``results`` must already be in chronological order. Matches with fewer
    than two participants are skipped.
    """
    calculator = MatchRatingCalculator(params)
    events: list[RatingHistoryEvent] = []
    processed: list[int] = []
    skipped: list[int] = []

    for result in results:
        _check_deadline(deadline)
        if len(result.participants) < MIN_PARTICIPANTS:
            logger.info(
                "skipping match_id=%s with %d participant(s); at least %d are required",
                result.match_id,
                len(result.participants),
                MIN_PARTICIPANTS,
            )
            skipped.append(result.match_id)
            continue

        match_events = calculator.process_match(result)
        logger.debug(
            "processed match_id=%s match_index=%d participants=%d",
            result.match_id,
            match_events[0].match_index,
            len(match_events),
        )
        events.extend(match_events)
        processed.append(result.match_id)

    return ReplayedHistory(
        events=events,
        processed_match_ids=tuple(processed),
        skipped_match_ids=tuple(skipped),
        final_ratings=calculator.ratings(),
    )


def recompute_all_rating_history(
    *,
    session_factory: Callable[[], Session],
    params: RatingParameters,
    lock_timeout_seconds: float = 30.0,
    timeout_seconds: float = 120.0,
    batch_size: int = 5000,
    dry_run: bool = False,
    echo: Callable[[str], None] | None = None,
) -> ReplaySummary:
    """Rebuild the whole rating_history table from all stored matches."""
    _, summary = _run_replay(
        session_factory=session_factory,
        params=params,
        mutate=None,
        lock_timeout_seconds=lock_timeout_seconds,
        timeout_seconds=timeout_seconds,
        batch_size=batch_size,
        dry_run=dry_run,
        echo=echo,
    )
    return summary


def apply_and_recompute(
    mutate: Callable[[Session], T],
    *,
    session_factory: Callable[[], Session],
    params: RatingParameters,
    lock_timeout_seconds: float = 30.0,
    timeout_seconds: float = 120.0,
    batch_size: int = 5000,
    dry_run: bool = False,
    echo: Callable[[str], None] | None = None,
) -> tuple[T, ReplaySummary]:
    """Run a match/entry mutation and the replay it triggers in one transaction.

    Readers never see the mutated matches alongside the stale history.
    """
    return _run_replay(
        session_factory=session_factory,
        params=params,
        mutate=mutate,
        lock_timeout_seconds=lock_timeout_seconds,
        timeout_seconds=timeout_seconds,
        batch_size=batch_size,
        dry_run=dry_run,
        echo=echo,
    )


def _run_replay(
    *,
    session_factory: Callable[[], Session],
    params: RatingParameters,
    mutate: Callable[[Session], Any] | None,
    lock_timeout_seconds: float,
    timeout_seconds: float,
    batch_size: int,
    dry_run: bool,
    echo: Callable[[str], None] | None,
) -> tuple[Any, ReplaySummary]:
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than 0")
    if lock_timeout_seconds <= 0 or timeout_seconds <= 0:
        raise ValueError("timeouts must be greater than 0")

    deadline = time.monotonic() + timeout_seconds
    if not _replay_lock.acquire(timeout=lock_timeout_seconds):
        raise ReplayTimeoutError(
            f"another rating replay is still running after {lock_timeout_seconds}s"
        )

    try:
        with session_factory() as session:
            try:
                _acquire_store_lock(session, lock_timeout_seconds=lock_timeout_seconds)
                mutation_result = mutate(session) if mutate is not None else None

                results = fetch_match_results(session)
                replayed = replay_match_history(results, params, deadline=deadline)

                if dry_run:
                    session.rollback()
                    summary = ReplaySummary(
                        processed_matches=len(replayed.processed_match_ids),
                        skipped_matches=len(replayed.skipped_match_ids),
                        inserted_events=0,
                        tracked_players=len(replayed.final_ratings),
                        dry_run=True,
                    )
                    if echo is not None:
                        echo(
                            f"[dry-run] processed_matches={summary.processed_matches} "
                            f"skipped_matches={summary.skipped_matches} "
                            f"tracked_players={summary.tracked_players}"
                        )
                    return mutation_result, summary

                inserted_events = _replace_history(
                    session,
                    replayed.events,
                    batch_size=batch_size,
                    deadline=deadline,
                )
                _check_deadline(deadline)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise ReplayError("rating history replay failed; nothing was committed") from exc
            except Exception:
                session.rollback()
                raise
    finally:
        _replay_lock.release()

    summary = ReplaySummary(
        processed_matches=len(replayed.processed_match_ids),
        skipped_matches=len(replayed.skipped_match_ids),
        inserted_events=inserted_events,
        tracked_players=len(replayed.final_ratings),
        dry_run=False,
    )
    logger.info(
        "rating history replaced: processed_matches=%d skipped_matches=%d inserted_events=%d",
        summary.processed_matches,
        summary.skipped_matches,
        summary.inserted_events,
    )
    if echo is not None:
        echo(
            "completed "
            f"processed_matches={summary.processed_matches} "
            f"skipped_matches={summary.skipped_matches} "
            f"inserted_events={summary.inserted_events} "
            f"tracked_players={summary.tracked_players}"
        )
    return mutation_result, summary


def _replace_history(
    session: Session,
    events: Sequence[RatingHistoryEvent],
    *,
    batch_size: int,
    deadline: float,
) -> int:
    delete_all_history(session)

    inserted_events = 0
    for start in range(0, len(events), batch_size):
        _check_deadline(deadline)
        payload = events[start : start + batch_size]
        insert_history_events(session, payload)
        inserted_events += len(payload)
    return inserted_events


def _acquire_store_lock(session: Session, *, lock_timeout_seconds: float) -> None:
    """Serialize replays across processes sharing one Postgres database."""
    bind = session.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return

    session.execute(
        text("SELECT set_config('lock_timeout', :value, true)"),
        {"value": f"{int(lock_timeout_seconds * 1000)}ms"},
    )
    session.execute(
        text("SELECT pg_advisory_xact_lock(:key)"),
        {"key": REPLAY_ADVISORY_LOCK_KEY},
    )


def _check_deadline(deadline: float | None) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise ReplayTimeoutError("rating history replay exceeded its configured timeout")


__all__ = [
    "ReplaySummary",
    "ReplayedHistory",
    "apply_and_recompute",
    "recompute_all_rating_history",
    "replay_match_history",
]
