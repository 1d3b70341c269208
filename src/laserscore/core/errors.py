"""
Exception hierarchy for LaserScore.

All errors raised by the scoring core derive from LaserScoreError so callers
processing many games can catch one type per game and carry on with the rest.
"""

from typing import Any


class LaserScoreError(Exception):
    """Base class for all LaserScore errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        details = ", ".join(f"{key}={value!r}" for key, value in self.context.items())
        return f"{message} ({details})"


class InsufficientDataError(LaserScoreError):
    """Not enough historical rows to fit a regression baseline."""

    def __init__(self, message: str, rows: int = 0, **context: Any):
        super().__init__(message, rows=rows, **context)
        self.rows = rows


class GameModeNotFoundError(LaserScoreError):
    """Mode resolution fell through even the generic fallback."""


class ValidationError(LaserScoreError):
    """Entity data breaks one of the model constraints."""


class ResultsParseError(LaserScoreError):
    """A vendor event could not be applied to the game."""


class PersistenceError(LaserScoreError):
    """The baseline store or history source is unavailable."""
