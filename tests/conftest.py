"""Shared fixtures: small games built from raw counters."""

from datetime import datetime, timedelta

import pytest

from laserscore.core.constants import GameModeType, SystemType
from laserscore.models.game import Game, Player, Team
from laserscore.models.settings import Scoring
from laserscore.modes.registry import GameModeRegistry, register_builtin_modes

GAME_START = datetime(2024, 5, 1, 18, 0, 0)


def build_game(
    code: str = "A1B2",
    system: SystemType = SystemType.EVO5,
    game_type: GameModeType = GameModeType.TEAM,
    minutes: float = 15.0,
    scoring: Scoring | None = None,
    **kwargs,
) -> Game:
    end = GAME_START + timedelta(minutes=minutes)
    return Game(
        code=code,
        system=system,
        game_type=game_type,
        start=GAME_START,
        end=end,
        import_time=end,
        scoring=scoring,
        **kwargs,
    )


def add_player(game: Game, name: str, vest, team: Team | None = None, **counters) -> Player:
    return game.add_player(Player(name=name, vest=vest, **counters), team)


@pytest.fixture
def make_game():
    return build_game


@pytest.fixture
def make_player():
    return add_player


@pytest.fixture
def scoring():
    return Scoring(hit_other=100, death_other=-50, hit_own=-25, death_own=-25)


@pytest.fixture
def registry():
    return register_builtin_modes(GameModeRegistry())


@pytest.fixture
def team_game(scoring):
    """Evo5 game, two teams of two, enemy/teammate split filled in."""
    game = build_game(scoring=scoring)
    red = game.add_team(Team(color=0, name="Red"))
    blue = game.add_team(Team(color=1, name="Blue"))
    alpha = add_player(
        game, "Alpha", 1, red, shots=40, hits_other=10, hits_own=1, deaths_other=4
    )
    bravo = add_player(
        game, "Bravo", 2, red, shots=30, hits_other=6, deaths_other=8, deaths_own=1
    )
    charlie = add_player(game, "Charlie", 3, blue, shots=50, hits_other=8, deaths_other=9)
    delta = add_player(game, "Delta", 4, blue, shots=20, hits_other=4, deaths_other=7)

    alpha.add_hits(charlie, 6)
    alpha.add_hits(delta, 4)
    alpha.add_hits(bravo, 1)
    bravo.add_hits(charlie, 3)
    bravo.add_hits(delta, 3)
    charlie.add_hits(alpha, 2)
    charlie.add_hits(bravo, 6)
    delta.add_hits(alpha, 2)
    delta.add_hits(bravo, 2)
    return game


@pytest.fixture
def solo_game(scoring):
    """Evo5 deathmatch with three players."""
    game = build_game(game_type=GameModeType.SOLO, scoring=scoring)
    alpha = add_player(game, "Alpha", 1, shots=10, hits=5, deaths=2)
    bravo = add_player(game, "Bravo", 2, shots=20, hits=3, deaths=5)
    charlie = add_player(game, "Charlie", 3, shots=15, hits=3, deaths=4)
    alpha.add_hits(bravo, 3)
    alpha.add_hits(charlie, 2)
    bravo.add_hits(alpha, 1)
    bravo.add_hits(charlie, 2)
    charlie.add_hits(alpha, 1)
    charlie.add_hits(bravo, 2)
    return game
