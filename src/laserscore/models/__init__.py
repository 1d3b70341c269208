"""
LaserScore domain model.

This module contains:
- game: Game, Team, Player and per-target hits
- settings: scoring, timing and mode value objects
- serialization: lossless dict round-trip of games
"""

from laserscore.models.game import Game, Player, PlayerHit, Target, Team, normalize_counters
from laserscore.models.settings import GameModeRow, ModeSettings, Scoring, Timing

__all__ = [
    "Game",
    "GameModeRow",
    "ModeSettings",
    "Player",
    "PlayerHit",
    "Scoring",
    "Target",
    "Team",
    "Timing",
    "normalize_counters",
]
