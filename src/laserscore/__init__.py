"""
LaserScore - Laser Game Results Engine

Scores, ranks and rates players of laser-tag games imported from different
vendor systems (Evo5, Evo6, LaserForce), resolves game-mode specific win
conditions and assigns trophies.

Usage:
    from laserscore import GameProcessor

    result = GameProcessor().process(game)
    for player in game.players_sorted:
        print(f"{player.name}: {player.score} ({player.skill})")
"""

__version__ = "0.3.0"
__author__ = "LaserScore Contributors"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    if name == "GameProcessor":
        from laserscore.pipeline import GameProcessor
        return GameProcessor
    elif name == "GameModeRegistry":
        from laserscore.modes.registry import GameModeRegistry
        return GameModeRegistry
    elif name == "ScoringEngine":
        from laserscore.scoring import ScoringEngine
        return ScoringEngine
    elif name == "StatBaselineStore":
        from laserscore.stats.baselines import StatBaselineStore
        return StatBaselineStore
    elif name == "RegressionStatEngine":
        from laserscore.stats.engine import RegressionStatEngine
        return RegressionStatEngine
    elif name == "TrophyEvaluator":
        from laserscore.trophies import TrophyEvaluator
        return TrophyEvaluator
    elif name == "Game":
        from laserscore.models.game import Game
        return Game
    raise AttributeError(f"module 'laserscore' has no attribute '{name}'")
