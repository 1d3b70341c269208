"""
Regression baselines from historical player statistics.

RegressionStatEngine turns historical rows into a CoefficientModel. It is
pure: rows come from an injected HistoricalStatSource and nothing is stored.

Historical rows are per player and game. Before fitting they are aggregated
to the median value per (game, enemies, teammates) so a single game with
many players does not dominate the baseline.
"""

import logging
from typing import Any, Protocol

import pandas as pd

from laserscore.core.config import RegressionConfig
from laserscore.core.constants import STAT_COLUMNS, GameModeType, Statistic
from laserscore.core.errors import InsufficientDataError, ValidationError
from laserscore.models.game import Game
from laserscore.stats.regression import CoefficientModel, fit_best_model

logger = logging.getLogger(__name__)

# Columns of an aggregated regression frame
REGRESSION_COLUMNS = ["enemies", "teammates", "game_length", "value"]

# Columns of raw per-player history rows
STAT_ROW_COLUMNS = [
    "game_code",
    "game_type",
    "teams",
    "mode_id",
    "rankable",
    "arena_id",
    "enemies",
    "teammates",
    "game_length",
    "hits",
    "deaths",
    "hits_other",
    "deaths_other",
    "hits_own",
    "deaths_own",
]


class ModeLike(Protocol):
    id: int | None

    @property
    def rankable(self) -> bool: ...


class HistoricalStatSource(Protocol):
    """Provides aggregated regression rows."""

    def fetch(
        self,
        statistic: Statistic,
        game_type: GameModeType,
        team_count: int | None = None,
        mode_id: int | None = None,
        arena_id: int | None = None,
    ) -> pd.DataFrame:
        """
        Rows with columns enemies, teammates, game_length, value.

        ``mode_id`` None means all rankable games, otherwise only games of
        that mode. ``team_count`` only applies to team games.
        """
        ...


def aggregate_rows(
    frame: pd.DataFrame, statistic: Statistic, game_type: GameModeType
) -> pd.DataFrame:
    """
    Median-aggregate raw per-player rows per (game, enemies, teammates).

    Args:
        frame: Raw rows with the STAT_ROW_COLUMNS layout
        statistic: Statistic to aggregate
        game_type: Selects the stat column (team games use the enemy split)

    Returns:
        DataFrame with REGRESSION_COLUMNS
    """
    column = STAT_COLUMNS[game_type].get(statistic)
    if column is None:
        raise ValidationError(
            "Statistic is only tracked in team games",
            statistic=statistic.value,
            game_type=game_type.value,
        )
    if frame.empty:
        return pd.DataFrame(columns=REGRESSION_COLUMNS)

    grouped = frame.groupby(["game_code", "enemies", "teammates"], sort=False, as_index=False).agg(
        game_length=("game_length", "first"),
        value=(column, "median"),
    )
    return grouped[REGRESSION_COLUMNS].reset_index(drop=True)


def game_stat_rows(
    game: Game,
    mode_id: int | None = None,
    rankable: bool = True,
    arena_id: int | None = None,
) -> list[dict[str, Any]]:
    """History rows of one finished game, one per player."""
    rows = []
    team_game = game.is_team
    length = game.real_game_length
    for player in game.players:
        if team_game:
            team_size = player.team.player_count if player.team is not None else 1
            enemies = game.player_count - team_size
            teammates = team_size - 1
        else:
            enemies = game.player_count - 1
            teammates = 0
        rows.append(
            {
                "game_code": game.code,
                "game_type": GameModeType.TEAM.value if team_game else GameModeType.SOLO.value,
                "teams": len(game.teams),
                "mode_id": mode_id,
                "rankable": rankable,
                "arena_id": arena_id if arena_id is not None else game.arena_id,
                "enemies": enemies,
                "teammates": teammates,
                "game_length": length,
                "hits": player.hits,
                "deaths": player.deaths,
                "hits_other": player.hits_other,
                "deaths_other": player.deaths_other,
                "hits_own": player.hits_own,
                "deaths_own": player.deaths_own,
            }
        )
    return rows


def filter_rows(
    frame: pd.DataFrame,
    game_type: GameModeType,
    team_count: int | None = None,
    mode_id: int | None = None,
    arena_id: int | None = None,
) -> pd.DataFrame:
    """Select the raw rows a baseline is fitted on."""
    if frame.empty:
        return frame
    mask = frame["game_type"] == game_type.value
    if game_type == GameModeType.TEAM and team_count is not None:
        mask &= frame["teams"] == team_count
    if mode_id is not None:
        mask &= frame["mode_id"] == mode_id
    else:
        mask &= frame["rankable"].astype(bool)
    if arena_id is not None:
        mask &= frame["arena_id"] == arena_id
    return frame[mask]


class DataFrameStatSource:
    """HistoricalStatSource over an in-memory frame of raw per-player rows."""

    def __init__(self, frame: pd.DataFrame | None = None):
        self.frame = frame if frame is not None else pd.DataFrame(columns=STAT_ROW_COLUMNS)

    @classmethod
    def from_csv(cls, path) -> "DataFrameStatSource":
        return cls(pd.read_csv(path))

    @classmethod
    def from_games(cls, games: list[Game], **kwargs) -> "DataFrameStatSource":
        rows = [row for game in games for row in game_stat_rows(game, **kwargs)]
        return cls(pd.DataFrame(rows, columns=STAT_ROW_COLUMNS))

    def fetch(
        self,
        statistic: Statistic,
        game_type: GameModeType,
        team_count: int | None = None,
        mode_id: int | None = None,
        arena_id: int | None = None,
    ) -> pd.DataFrame:
        selected = filter_rows(self.frame, game_type, team_count, mode_id, arena_id)
        return aggregate_rows(selected, statistic, game_type)


class RegressionStatEngine:
    """Fits regression baselines from a historical stat source."""

    def __init__(self, source: HistoricalStatSource, config: RegressionConfig | None = None):
        self.source = source
        self.config = config or RegressionConfig()

    def compute_model(
        self,
        statistic: Statistic,
        game_type: GameModeType,
        mode: ModeLike | None = None,
        team_count: int = 2,
        arena: int | None = None,
    ) -> CoefficientModel:
        """
        Fit the best baseline for a statistic.

        Args:
            statistic: hits, deaths, hitsOwn or deathsOwn
            game_type: TEAM or SOLO (own statistics are team only)
            mode: Non-rankable modes get their own baseline, others share one
            team_count: Number of teams, team games only
            arena: Restrict history to one arena

        Raises:
            InsufficientDataError: Fewer rows than the configured minimum
            ValidationError: Own statistic requested for a solo game
            PersistenceError: The history source is unavailable
        """
        if statistic.team_only and game_type != GameModeType.TEAM:
            raise ValidationError(
                "Statistic is only tracked in team games", statistic=statistic.value
            )

        mode_id = mode.id if mode is not None and not mode.rankable else None
        data = self.source.fetch(
            statistic,
            game_type,
            team_count=team_count if game_type == GameModeType.TEAM else None,
            mode_id=mode_id,
            arena_id=arena,
        )

        if len(data) < self.config.min_rows:
            raise InsufficientDataError(
                f"Not enough data for the {statistic.value} model",
                rows=len(data),
                statistic=statistic.value,
                game_type=game_type.value,
            )

        model = fit_best_model(
            data["enemies"].to_numpy(),
            data["teammates"].to_numpy(),
            data["game_length"].to_numpy(),
            data["value"].to_numpy(),
            game_type,
            r2_tolerance=self.config.r2_tolerance,
        )
        logger.debug(
            f"Fitted {statistic.value} {game_type.value} model on {len(data)} rows: "
            f"{model.expansion.value} R²={model.r_squared:.4f}"
        )
        return model
