"""Exceptions raised by the rating engine."""

from __future__ import annotations


class RatingError(Exception):
    """Base class for rating engine failures."""


class MatchValidationError(RatingError, ValueError):
    """Match input cannot be rated (missing or non-numeric points, too few players)."""


class ReplayError(RatingError):
    """History replay failed; nothing was committed."""


class ReplayTimeoutError(ReplayError):
    """Replay could not acquire the lock or finish within the configured time."""


__all__ = ["MatchValidationError", "RatingError", "ReplayError", "ReplayTimeoutError"]
