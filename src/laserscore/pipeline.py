"""
Game processing pipeline.

Runs the full results calculation for one imported game:

    normalize counters -> recalculate scores -> mode results hook
    -> ammo bookkeeping -> after-import customization -> reorder
    -> skills -> winner -> trophies

Processing is atomic per game. If any step fails every score, skill,
position and counter field touched by the pipeline is restored and the
error propagates, so a batch can log the game and move on.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from laserscore.core.config import LaserScoreConfig, get_config
from laserscore.core.utils import PerformanceMonitor
from laserscore.models.game import Game, Player, Team, normalize_counters
from laserscore.modes.base import (
    AmmoBookkeepingMode,
    CustomizeAfterImport,
    GameMode,
    ModifyResultsMode,
)
from laserscore.modes.registry import GameModeRegistry, default_registry
from laserscore.stats.baselines import StatBaselineStore
from laserscore.stats.player_stats import calculate_game_skills
from laserscore.trophies import TrophyEvaluator

logger = logging.getLogger(__name__)

# Fields the pipeline writes, restored when processing fails
PLAYER_FIELDS = (
    "hits",
    "deaths",
    "hits_other",
    "hits_own",
    "deaths_other",
    "deaths_own",
    "accuracy",
    "score",
    "skill",
    "position",
    "score_bonus",
    "score_mines",
    "score_powers",
    "ammo_rest",
)
TEAM_FIELDS = ("score", "position")


@dataclass
class ProcessedGame:
    """Outcome of processing one game."""

    game: Game
    mode: GameMode
    winner: Team | Player | None = None
    skills: dict[int | str, int] = field(default_factory=dict)
    trophies: dict[int | str, str] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def is_draw(self) -> bool:
        return self.winner is None

    def to_dict(self) -> dict[str, Any]:
        winner = None
        if isinstance(self.winner, Team):
            winner = {"team": self.winner.color, "name": self.winner.name}
        elif isinstance(self.winner, Player):
            winner = {"player": self.winner.vest, "name": self.winner.name}
        return {
            "code": self.game.code,
            "mode": self.mode.key,
            "winner": winner,
            "players": [
                {
                    "vest": p.vest,
                    "name": p.name,
                    "position": p.position,
                    "score": p.score,
                    "skill": p.skill,
                    "trophy": str(self.trophies.get(p.vest, "")),
                }
                for p in self.game.players_sorted
            ],
            "teams": [
                {"color": t.color, "name": t.name, "position": t.position, "score": t.score}
                for t in self.game.teams_sorted
            ],
        }


class GameSnapshot:
    """Copy of the pipeline-owned fields of a game."""

    def __init__(self, game: Game):
        self.game = game
        self.players = [(p, {f: getattr(p, f) for f in PLAYER_FIELDS}) for p in game.players]
        self.teams = [(t, {f: getattr(t, f) for f in TEAM_FIELDS}) for t in game.teams]
        self.mode = game.mode

    def restore(self) -> None:
        for player, values in self.players:
            for name, value in values.items():
                setattr(player, name, value)
        for team, values in self.teams:
            for name, value in values.items():
                setattr(team, name, value)
        self.game.mode = self.mode


class GameProcessor:
    """Runs the results pipeline on imported games."""

    def __init__(
        self,
        registry: GameModeRegistry | None = None,
        baselines: StatBaselineStore | None = None,
        config: LaserScoreConfig | None = None,
        trophies: TrophyEvaluator | None = None,
    ):
        self.registry = registry or default_registry()
        self.baselines = baselines
        self.config = config or get_config()
        self.trophies = trophies or TrophyEvaluator()

    def resolve_mode(self, game: Game) -> GameMode:
        """Mode of a game, resolved from its mode name when not set yet."""
        if game.mode is not None:
            return game.mode
        if game.mode_name:
            mode = self.registry.find(game.mode_name, game.game_type, game.system)
        else:
            mode = self.registry.resolve(game.system, None, game.game_type)
        game.mode = mode
        return mode

    def process(self, game: Game) -> ProcessedGame:
        """
        Calculate all results of a game in place.

        Raises:
            LaserScoreError: A step failed; the game is left as it was
        """
        snapshot = GameSnapshot(game)
        try:
            with PerformanceMonitor(f"Processing game {game.code}") as monitor:
                result = self._run(game)
            result.elapsed = monitor.elapsed
            return result
        except Exception:
            snapshot.restore()
            logger.exception(f"Processing game {game.code} failed, results restored")
            raise

    def process_many(self, games: list[Game]) -> tuple[list[ProcessedGame], dict[str, str]]:
        """Process games one by one. A failing game does not stop the rest."""
        processed = []
        failed = {}
        for game in games:
            try:
                processed.append(self.process(game))
            except Exception as e:
                failed[game.code] = str(e)
        logger.info(f"Processed {len(processed)} games, {len(failed)} failed")
        return processed, failed

    def _run(self, game: Game) -> ProcessedGame:
        mode = self.resolve_mode(game)

        normalize_counters(game)
        mode.recalculate_scores(game)

        if isinstance(mode, ModifyResultsMode):
            mode.modify_results(game)
            for team in game.teams:
                team.sum_score()
        if isinstance(mode, AmmoBookkeepingMode):
            mode.update_ammo(game)
        if isinstance(mode, CustomizeAfterImport):
            mode.process_imported_game(game)

        mode.reorder_game(game)
        skills = calculate_game_skills(game, self.baselines, self.config.skill)
        winner = mode.get_win(game)
        trophies = self.trophies.evaluate(game.players)

        logger.debug(f"Game {game.code} processed with mode {mode.key}")
        return ProcessedGame(
            game=game, mode=mode, winner=winner, skills=skills, trophies=trophies
        )
