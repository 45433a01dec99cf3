"""Unit tests for multi-player match delta calculations."""

from __future__ import annotations

import math

import pytest

from domain.ratings.calculator import (
    RatingParameters,
    calculate_expected_score,
    compute_match_deltas,
    pairwise_deltas,
    performance_adjustments,
)
from domain.ratings.errors import MatchValidationError

PARAMS = RatingParameters(initial_rating=1000.0, k_factor=24.0, k_perf=10.0, scale=20.0)


def test_rating_parameters_defaults_are_expected_constants() -> None:
    params = RatingParameters()
    assert params.initial_rating == pytest.approx(1000.0)
    assert params.k_factor == pytest.approx(24.0)
    assert params.k_perf == pytest.approx(10.0)
    assert params.scale == pytest.approx(20.0)


def test_expected_score_equal_ratings_is_half() -> None:
    assert calculate_expected_score(1000.0, 1000.0) == pytest.approx(0.5)


def test_expected_scores_sum_to_one() -> None:
    expected_a = calculate_expected_score(1100.0, 1000.0)
    expected_b = calculate_expected_score(1000.0, 1100.0)
    assert expected_a + expected_b == pytest.approx(1.0)


def test_expected_score_400_point_gap() -> None:
    assert calculate_expected_score(1400.0, 1000.0) == pytest.approx(10.0 / 11.0)


def test_two_player_scenario() -> None:
    deltas = compute_match_deltas([1, 2], {1: 40, 2: 30}, {1: 1000.0, 2: 1000.0}, PARAMS)

    bonus = 10.0 * math.tanh(5.0 / 20.0)
    assert bonus == pytest.approx(2.449, abs=1e-3)
    assert deltas[1] == pytest.approx(12.0 + bonus)
    assert deltas[2] == pytest.approx(-12.0 - bonus)
    assert 1000.0 + deltas[1] == pytest.approx(1014.449, abs=1e-3)
    assert 1000.0 + deltas[2] == pytest.approx(985.551, abs=1e-3)


def test_missing_ratings_default_to_initial_rating() -> None:
    with_defaults = compute_match_deltas([1, 2], {1: 40, 2: 30}, {}, PARAMS)
    explicit = compute_match_deltas([1, 2], {1: 40, 2: 30}, {1: 1000.0, 2: 1000.0}, PARAMS)
    assert with_defaults == pytest.approx(explicit)


def test_full_tie_is_a_no_op() -> None:
    deltas = compute_match_deltas(
        [1, 2, 3],
        {1: 50, 2: 50, 3: 50},
        {1: 1000.0, 2: 1000.0, 3: 1000.0},
        PARAMS,
    )
    assert deltas == {1: 0.0, 2: 0.0, 3: 0.0}


def test_full_tie_with_unequal_ratings_still_balances_pairwise() -> None:
    ratings = {1: 1200.0, 2: 1000.0, 3: 850.0}
    points = {1: 50.0, 2: 50.0, 3: 50.0}
    deltas = compute_match_deltas([1, 2, 3], points, ratings, PARAMS)

    assert sum(deltas.values()) == pytest.approx(0.0, abs=1e-12)
    assert deltas[1] < 0.0 < deltas[3]
    assert performance_adjustments([1, 2, 3], points, k_perf=10.0, scale=20.0) == {
        1: 0.0,
        2: 0.0,
        3: 0.0,
    }


def test_partial_tie_scores_half_between_tied_players() -> None:
    pairwise = pairwise_deltas([1, 2], {1: 45.0, 2: 45.0}, {1: 1000.0, 2: 1000.0}, 24.0)
    assert pairwise == {1: 0.0, 2: 0.0}

    pairwise = pairwise_deltas(
        [1, 2, 3],
        {1: 45.0, 2: 45.0, 3: 30.0},
        {1: 1000.0, 2: 1000.0, 3: 1000.0},
        24.0,
    )
    assert pairwise[1] == pytest.approx(12.0)
    assert pairwise[2] == pytest.approx(12.0)
    assert pairwise[3] == pytest.approx(-24.0)


@pytest.mark.parametrize(
    ("points", "ratings"),
    [
        ({1: 61.0, 2: 42.0, 3: 55.0, 4: 38.0}, {1: 1012.0, 2: 987.5, 3: 1040.0, 4: 960.0}),
        ({1: 10.0, 2: 80.0, 3: 10.0, 4: 5.5}, {1: 1300.0, 2: 700.0, 3: 1000.0, 4: 1000.0}),
        ({1: -3.0, 2: 0.0, 3: 2.5, 4: 2.5}, {1: 1000.0, 2: 1000.0, 3: 1000.0, 4: 1000.0}),
    ],
)
def test_pairwise_exchange_is_zero_sum(points: dict[int, float], ratings: dict[int, float]) -> None:
    pairwise = pairwise_deltas([1, 2, 3, 4], points, ratings, 24.0)
    assert sum(pairwise.values()) == pytest.approx(0.0, abs=1e-9)


def test_performance_adjustment_is_bounded_by_k_perf() -> None:
    adjustments = performance_adjustments(
        [1, 2, 3],
        {1: 10_000.0, 2: 0.0, 3: -10_000.0},
        k_perf=10.0,
        scale=20.0,
    )
    assert all(abs(value) <= 10.0 for value in adjustments.values())
    assert adjustments[1] == pytest.approx(10.0)
    assert adjustments[3] == pytest.approx(-10.0)


def test_performance_adjustment_breaks_zero_sum_for_skewed_scores() -> None:
    deltas = compute_match_deltas(
        [1, 2, 3],
        {1: 90.0, 2: 40.0, 3: 38.0},
        {1: 1000.0, 2: 1000.0, 3: 1000.0},
        PARAMS,
    )
    assert sum(deltas.values()) != pytest.approx(0.0, abs=1e-6)


def test_swapping_two_participants_swaps_their_deltas() -> None:
    points = {1: 52.0, 2: 47.0, 3: 33.0}
    ratings = {1: 1030.0, 2: 1075.0, 3: 990.0}
    deltas = compute_match_deltas([1, 2, 3], points, ratings, PARAMS)

    swapped_points = {1: points[2], 2: points[1], 3: points[3]}
    swapped_ratings = {1: ratings[2], 2: ratings[1], 3: ratings[3]}
    swapped = compute_match_deltas([1, 2, 3], swapped_points, swapped_ratings, PARAMS)

    assert swapped[1] == pytest.approx(deltas[2])
    assert swapped[2] == pytest.approx(deltas[1])
    assert swapped[3] == pytest.approx(deltas[3])


def test_participant_order_does_not_change_deltas() -> None:
    points = {7: 52.0, 3: 47.0, 9: 33.0}
    ratings = {7: 1030.0, 3: 1075.0, 9: 990.0}
    forward = compute_match_deltas([7, 3, 9], points, ratings, PARAMS)
    backward = compute_match_deltas([9, 3, 7], points, ratings, PARAMS)
    for player_id in points:
        assert forward[player_id] == pytest.approx(backward[player_id])


def test_underdog_winner_gains_more_than_favourite_winner() -> None:
    underdog = compute_match_deltas([1, 2], {1: 40, 2: 30}, {1: 900.0, 2: 1100.0}, PARAMS)
    favourite = compute_match_deltas([1, 2], {1: 40, 2: 30}, {1: 1100.0, 2: 900.0}, PARAMS)
    assert underdog[1] > favourite[1]


def test_fewer_than_two_participants_is_rejected() -> None:
    with pytest.raises(MatchValidationError, match="at least two participants"):
        compute_match_deltas([1], {1: 40.0}, {1: 1000.0}, PARAMS)
    with pytest.raises(MatchValidationError):
        compute_match_deltas([], {}, {}, PARAMS)


def test_duplicate_participants_are_rejected() -> None:
    with pytest.raises(MatchValidationError, match="duplicate"):
        compute_match_deltas([1, 1], {1: 40.0}, {}, PARAMS)


def test_missing_points_are_rejected() -> None:
    with pytest.raises(MatchValidationError, match="missing points"):
        compute_match_deltas([1, 2], {1: 40.0}, {}, PARAMS)


@pytest.mark.parametrize("bad_points", [float("nan"), float("inf"), "40", True, None])
def test_invalid_points_are_rejected(bad_points: object) -> None:
    with pytest.raises(MatchValidationError):
        compute_match_deltas([1, 2], {1: 40.0, 2: bad_points}, {}, PARAMS)


def test_non_finite_rating_is_rejected() -> None:
    with pytest.raises(MatchValidationError, match="rating"):
        compute_match_deltas([1, 2], {1: 40.0, 2: 30.0}, {1: float("nan")}, PARAMS)


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        compute_match_deltas([1, 2], {1: 40.0, 2: float("nan")}, {}, PARAMS)
