"""
Game mode variants.

A GameMode decides how a game is scored, ranked and won. Optional behaviour
is expressed as capability mixins a variant opts into:

- ModifyResultsMode: adjust scores after recalculation (survivor bonuses)
- AmmoBookkeepingMode: update remaining ammo after results are final
- CustomLoadMode: change team/player assignment before a game is loaded
- CustomEventsMode: handle vendor mode-action events
- CustomizeAfterImport: run extra processing once a game is imported
- CustomResultsMode: use a dedicated results template
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from laserscore.core.constants import GameModeType, SystemType
from laserscore.models.game import Game, Player, Team
from laserscore.models.settings import GameModeRow, ModeSettings
from laserscore.scoring import ScoringEngine
from laserscore.vendors import get_vendor_profile

if TYPE_CHECKING:
    from laserscore.events import Event

logger = logging.getLogger(__name__)


class GameMode:
    """Default behaviour: highest score wins, two-team score tie is a draw."""

    name: str = ""
    description: str = ""
    type: GameModeType = GameModeType.TEAM
    # Keys of the registered variant to use when the game is played the other way
    team_alternative: str | None = None
    solo_alternative: str | None = None

    def __init__(self, row: GameModeRow | None = None, system: SystemType | None = None):
        self.row = row
        self.system = system
        # Registry key, assigned on resolution
        self.key: str = type(self).__name__
        # System the variant was registered for, None for generic variants
        self.scope: SystemType | None = None
        self.id: int | None = row.id if row is not None else None
        self.settings: ModeSettings = row.settings if row is not None else ModeSettings()
        if row is not None and row.name:
            self.name = row.name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} key={self.key!r} system={self.system} id={self.id}>"

    @property
    def rankable(self) -> bool:
        return self.row.rankable if self.row is not None else True

    def is_team(self) -> bool:
        return self.type == GameModeType.TEAM

    def is_solo(self) -> bool:
        return not self.is_team()

    # ------------------------------------------------------------------
    # Scoring and ranking
    # ------------------------------------------------------------------

    def scoring_engine(self) -> ScoringEngine:
        return ScoringEngine(get_vendor_profile(self.system).scoring_rules)

    def recalculate_scores(self, game: Game) -> None:
        self.scoring_engine().recalculate(game, team_game=self.is_team())

    def reorder_game(self, game: Game) -> None:
        """Assign 1-based positions by score, best first."""
        for position, player in enumerate(game.players_sorted, start=1):
            player.position = position
        for position, team in enumerate(game.teams_sorted, start=1):
            team.position = position

    def get_win(self, game: Game) -> Team | Player | None:
        """Winning team or player, None for a draw."""
        if self.is_team():
            teams = game.teams_sorted
            if not teams:
                return None
            if len(teams) == 2 and teams[0].total_score == teams[-1].total_score:
                return None
            return teams[0]
        players = game.players_sorted
        return players[0] if players else None


# ============================================================================
# Capabilities
# ============================================================================


class ModifyResultsMode(ABC):
    """Adjusts results after scores were recalculated."""

    @abstractmethod
    def modify_results(self, game: Game) -> None:
        ...


class AmmoBookkeepingMode(ABC):
    """Tracks remaining ammo once the final results are known."""

    @abstractmethod
    def update_ammo(self, game: Game) -> None:
        ...


class CustomizeAfterImport(ABC):
    @abstractmethod
    def process_imported_game(self, game: Game) -> None:
        ...


class CustomResultsMode(ABC):
    @property
    @abstractmethod
    def results_template(self) -> str:
        ...


class CustomEventsMode(ABC):
    """Handles mode-action events the generic event mapping ignores."""

    @abstractmethod
    def process_event(self, event: Event) -> None:
        ...


@dataclass
class LoadPlayer:
    vest: int | str
    name: str = ""
    team: str | None = None
    vip: bool = False


@dataclass
class LoadTeam:
    key: str
    name: str = ""
    player_count: int = 0


@dataclass
class LoadData:
    """Game setup sent to the vendor console before a game starts."""

    players: list[LoadPlayer] = field(default_factory=list)
    teams: list[LoadTeam] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    solo_team: int | None = None
    hidden_teams: bool = False


class CustomLoadMode(ABC):
    """Alters team/player assignment before a game is loaded."""

    new_game_script: str = ""

    @abstractmethod
    def modify_load_data(self, data: LoadData) -> LoadData:
        ...
