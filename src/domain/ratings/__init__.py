"""Match rating calculator, parameters and config loading."""

from domain.ratings.calculator import (
    MatchRatingCalculator,
    RatingHistoryEvent,
    RatingParameters,
    calculate_expected_score,
    compute_match_deltas,
    pairwise_deltas,
    performance_adjustments,
)
from domain.ratings.common import MatchEntryInput, MatchParticipant, MatchResult
from domain.ratings.config import (
    RatingSystemConfig,
    ReplaySettings,
    load_rating_system_config,
    load_rating_system_configs,
)
from domain.ratings.errors import (
    MatchValidationError,
    RatingError,
    ReplayError,
    ReplayTimeoutError,
)

__all__ = [
    "MatchEntryInput",
    "MatchParticipant",
    "MatchRatingCalculator",
    "MatchResult",
    "MatchValidationError",
    "RatingError",
    "RatingHistoryEvent",
    "RatingParameters",
    "RatingSystemConfig",
    "ReplayError",
    "ReplaySettings",
    "ReplayTimeoutError",
    "calculate_expected_score",
    "compute_match_deltas",
    "load_rating_system_config",
    "load_rating_system_configs",
    "pairwise_deltas",
    "performance_adjustments",
]
