"""Core constants, configuration, errors and helpers."""

from laserscore.core.constants import GameModeType, Statistic, SystemType, Trophy
from laserscore.core.errors import (
    GameModeNotFoundError,
    InsufficientDataError,
    LaserScoreError,
    PersistenceError,
    ResultsParseError,
    ValidationError,
)

__all__ = [
    "GameModeType",
    "Statistic",
    "SystemType",
    "Trophy",
    "GameModeNotFoundError",
    "InsufficientDataError",
    "LaserScoreError",
    "PersistenceError",
    "ResultsParseError",
    "ValidationError",
]
