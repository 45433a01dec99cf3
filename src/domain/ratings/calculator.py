"""Multi-player match rating logic.

Each match is scored as a round robin of pairwise Elo exchanges between all
participants, followed by a bounded performance adjustment that rewards
players in proportion to how far their points sit from the match average.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from domain.ratings.common import MatchResult
from domain.ratings.errors import MatchValidationError

RATING_DIVISOR = 400.0


@dataclass(frozen=True)
class RatingParameters:
    initial_rating: float = 1000.0
    k_factor: float = 24.0
    k_perf: float = 10.0
    scale: float = 20.0


@dataclass(frozen=True)
class RatingHistoryEvent:
    match_id: int
    player_id: int
    match_index: int
    event_time: datetime
    match_created_at: datetime
    points: float
    pre_rating: float
    pairwise_delta: float
    performance_delta: float
    delta: float
    rating_after: float


def calculate_expected_score(rating: float, opponent_rating: float) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / RATING_DIVISOR))


def _actual_score(points: float, opponent_points: float) -> float:
    if points > opponent_points:
        return 1.0
    if points < opponent_points:
        return 0.0
    return 0.5


def _as_finite_number(value: object, *, label: str, player_id: object) -> float:
    if value is None:
        raise MatchValidationError(f"player_id={player_id!r} is missing {label}")
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise MatchValidationError(
            f"player_id={player_id!r} has non-numeric {label}={value!r}"
        )
    number = float(value)
    if not math.isfinite(number):
        raise MatchValidationError(f"player_id={player_id!r} has non-finite {label}={value!r}")
    return number


def _validate_match_input(
    participant_ids: Sequence[int],
    points_by_participant: Mapping[int, object],
    rating_by_participant: Mapping[int, object],
    params: RatingParameters,
) -> tuple[list[int], dict[int, float], dict[int, float]]:
    participants = list(participant_ids)
    if len(participants) < 2:
        raise MatchValidationError(
            f"a match needs at least two participants, got {len(participants)}"
        )
    if len(set(participants)) != len(participants):
        raise MatchValidationError(f"duplicate participant ids in match: {participants}")

    points: dict[int, float] = {}
    ratings: dict[int, float] = {}
    for player_id in participants:
        points[player_id] = _as_finite_number(
            points_by_participant.get(player_id),
            label="points",
            player_id=player_id,
        )
        ratings[player_id] = _as_finite_number(
            rating_by_participant.get(player_id, params.initial_rating),
            label="rating",
            player_id=player_id,
        )
    return participants, points, ratings


def pairwise_deltas(
    participant_ids: Sequence[int],
    points: Mapping[int, float],
    ratings: Mapping[int, float],
    k_factor: float,
) -> dict[int, float]:
    """Zero-sum Elo exchange over every unordered pair of participants."""
    deltas = {player_id: 0.0 for player_id in participant_ids}
    for index, player_a in enumerate(participant_ids):
        for player_b in participant_ids[index + 1 :]:
            actual_a = _actual_score(points[player_a], points[player_b])
            expected_a = calculate_expected_score(ratings[player_a], ratings[player_b])
            pair_delta = k_factor * (actual_a - expected_a)
            deltas[player_a] += pair_delta
            deltas[player_b] -= pair_delta
    return deltas


def performance_adjustments(
    participant_ids: Sequence[int],
    points: Mapping[int, float],
    *,
    k_perf: float,
    scale: float,
) -> dict[int, float]:
    """Bonus in (-k_perf, +k_perf) from each player's distance to the match average."""
    average = sum(points[player_id] for player_id in participant_ids) / len(participant_ids)
    return {
        player_id: k_perf * math.tanh((points[player_id] - average) / scale)
        for player_id in participant_ids
    }


def compute_match_deltas(
    participant_ids: Sequence[int],
    points_by_participant: Mapping[int, object],
    rating_by_participant: Mapping[int, object],
    params: RatingParameters,
) -> dict[int, float]:
    """Return the rating delta for every participant of one match.

    Participants without a rating start from ``params.initial_rating``.
    Raises ``MatchValidationError`` before any rating math when the input is
    malformed.
    """
    participants, points, ratings = _validate_match_input(
        participant_ids,
        points_by_participant,
        rating_by_participant,
        params,
    )
    pairwise = pairwise_deltas(participants, points, ratings, params.k_factor)
    performance = performance_adjustments(
        participants,
        points,
        k_perf=params.k_perf,
        scale=params.scale,
    )
    return {player_id: pairwise[player_id] + performance[player_id] for player_id in participants}


class MatchRatingCalculator:
    """Stateful match-by-match calculator holding the running rating per player."""

    def __init__(self, params: RatingParameters) -> None:
        self.params = params
        self._ratings: dict[int, float] = {}
        self._processed_matches = 0

    def get_rating(self, player_id: int) -> float:
        return self._ratings.get(player_id, self.params.initial_rating)

    def tracked_player_count(self) -> int:
        return len(self._ratings)

    def processed_match_count(self) -> int:
        return self._processed_matches

    def ratings(self) -> dict[int, float]:
        """Return a snapshot of current player ratings."""
        return dict(self._ratings)

    def process_match(self, match_result: MatchResult) -> list[RatingHistoryEvent]:
        participant_ids = match_result.participant_ids()
        participant_ids, points, pre_ratings = _validate_match_input(
            participant_ids,
            match_result.points_by_participant(),
            {player_id: self.get_rating(player_id) for player_id in participant_ids},
            self.params,
        )

        pairwise = pairwise_deltas(participant_ids, points, pre_ratings, self.params.k_factor)
        performance = performance_adjustments(
            participant_ids,
            points,
            k_perf=self.params.k_perf,
            scale=self.params.scale,
        )

        self._processed_matches += 1
        match_index = self._processed_matches

        events: list[RatingHistoryEvent] = []
        for player_id in participant_ids:
            pre_rating = pre_ratings[player_id]
            delta = pairwise[player_id] + performance[player_id]
            rating_after = pre_rating + delta
            self._ratings[player_id] = rating_after

            events.append(
                RatingHistoryEvent(
                    match_id=match_result.match_id,
                    player_id=player_id,
                    match_index=match_index,
                    event_time=match_result.event_time,
                    match_created_at=match_result.created_at,
                    points=points[player_id],
                    pre_rating=pre_rating,
                    pairwise_delta=pairwise[player_id],
                    performance_delta=performance[player_id],
                    delta=delta,
                    rating_after=rating_after,
                )
            )

        return events
