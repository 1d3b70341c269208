"""
Game, team and player model shared by all vendor systems.

Vendor differences live in a handful of optional counter groups on Player
(Evo5 bonus pickups, Evo6 counters, LaserForce counters) and in the
VendorProfile picked by ``Game.system``; there is no per-vendor subclass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from laserscore.core.constants import UNLIMITED, GameModeType, SystemType
from laserscore.core.errors import ValidationError
from laserscore.core.utils import percentage
from laserscore.models.settings import (
    BonusCounts,
    Evo6Counters,
    LaserForceCounters,
    Scoring,
    Timing,
)

if TYPE_CHECKING:
    from laserscore.modes.base import GameMode

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class PlayerHit:
    """How many times ``shooter`` hit ``target`` in one game."""

    shooter: Player
    target: Player
    count: int = 0

    def __post_init__(self):
        if self.count < 0:
            raise ValidationError("Hit count cannot be negative", count=self.count)


@dataclass(eq=False)
class Target:
    """A non-player LaserForce target (base, beacon)."""

    identifier: str
    name: str = ""
    hits: int = 0
    destroyed: int = 0


@dataclass(eq=False)
class Player:
    """Raw per-game counters of one player plus the computed results."""

    name: str
    vest: int | str
    shots: int = 0
    hits: int = 0
    deaths: int = 0
    accuracy: float = 0.0
    position: int = 0
    hits_other: int = 0
    hits_own: int = 0
    deaths_other: int = 0
    deaths_own: int = 0
    score: int = 0
    skill: int = 0

    # LaserMaxx counters
    shot_points: int = 0
    score_bonus: int = 0
    score_powers: int = 0
    score_mines: int = 0
    ammo_rest: int = 0
    mines_hits: int = 0
    vip: bool = False
    bonus: BonusCounts = field(default_factory=BonusCounts)
    evo6: Evo6Counters | None = None

    laserforce: LaserForceCounters | None = None

    team: Team | None = field(default=None, repr=False)
    game: Game | None = field(default=None, repr=False)
    hit_players: dict[int | str, PlayerHit] = field(default_factory=dict, repr=False)

    @property
    def miss(self) -> int:
        return self.shots - self.hits

    @property
    def remaining_lives(self) -> int:
        lives = self.game.lives if self.game is not None else UNLIMITED
        return lives - self.deaths

    @property
    def respawns(self) -> int:
        """Evo6 respawns: lives bought back after the first set ran out."""
        if self.game is None or self.game.respawn_lives <= 0 or self.deaths < self.game.lives:
            return 0
        return (self.deaths - self.game.lives) // self.game.respawn_lives

    def add_hits(self, target: Player, count: int = 1) -> PlayerHit:
        """Accumulate hits on ``target``. One record per (shooter, target) pair."""
        if count < 0:
            raise ValidationError(
                "Hit count cannot be negative", shooter=self.vest, target=target.vest, count=count
            )
        record = self.hit_players.get(target.vest)
        if record is None:
            record = PlayerHit(shooter=self, target=target, count=0)
            self.hit_players[target.vest] = record
        record.count += count
        return record

    def hits_on(self, target: Player) -> int:
        record = self.hit_players.get(target.vest)
        return record.count if record is not None else 0

    def is_teammate(self, other: Player) -> bool:
        return self.team is not None and other.team is self.team


@dataclass(eq=False)
class Team:
    """A team of one game. ``score`` is derived from its players."""

    color: int
    name: str = ""
    score: int = 0
    bonus: int | None = None
    position: int = 0
    players: list[Player] = field(default_factory=list, repr=False)
    game: Game | None = field(default=None, repr=False)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def total_score(self) -> int:
        """Score including a manually awarded bonus."""
        return self.score + (self.bonus or 0)

    @property
    def hits(self) -> int:
        return sum(p.hits for p in self.players)

    @property
    def deaths(self) -> int:
        return sum(p.deaths for p in self.players)

    @property
    def shots(self) -> int:
        return sum(p.shots for p in self.players)

    @property
    def accuracy(self) -> float:
        return percentage(self.hits, self.shots)

    def hits_against(self, other: Team) -> int:
        """Total hits of this team's players on members of ``other``."""
        return sum(
            record.count
            for player in self.players
            for record in player.hit_players.values()
            if record.target.team is other
        )

    def sum_score(self) -> int:
        """Recompute ``score`` as the sum of member scores."""
        self.score = sum(p.score for p in self.players)
        return self.score


@dataclass(eq=False)
class Game:
    """One match with its teams, players and resolved mode."""

    code: str
    system: SystemType
    game_type: GameModeType = GameModeType.TEAM
    start: datetime | None = None
    end: datetime | None = None
    import_time: datetime | None = None
    mode: GameMode | None = field(default=None, repr=False)
    mode_name: str = ""
    scoring: Scoring | None = None
    timing: Timing | None = None
    lives: int = UNLIMITED
    ammo: int = UNLIMITED
    respawn_lives: int = 0
    arena_id: int | None = None
    sync: bool = False
    rounds: int = 0
    meta: dict[str, Any] = field(default_factory=dict)
    teams: list[Team] = field(default_factory=list, repr=False)
    players: list[Player] = field(default_factory=list, repr=False)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_team(self, team: Team) -> Team:
        team.game = self
        self.teams.append(team)
        return team

    def add_player(self, player: Player, team: Team | None = None) -> Player:
        for existing in self.players:
            if existing.vest == player.vest:
                raise ValidationError("Duplicate vest in game", code=self.code, vest=player.vest)
        player.game = self
        self.players.append(player)
        if team is not None:
            if team.game is not self:
                self.add_team(team)
            player.team = team
            team.players.append(player)
        return player

    def vest_player(self, vest: int | str) -> Player | None:
        for player in self.players:
            if player.vest == vest:
                return player
        return None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_team(self) -> bool:
        if self.mode is not None:
            return self.mode.is_team()
        return self.game_type == GameModeType.TEAM

    @property
    def is_solo(self) -> bool:
        return not self.is_team

    @property
    def is_finished(self) -> bool:
        return self.end is not None and self.import_time is not None

    @property
    def is_started(self) -> bool:
        return self.start is not None

    @property
    def real_game_length(self) -> float:
        """Played length in minutes, 0 for unfinished games."""
        if self.start is None or not self.is_finished:
            return 0.0
        return (self.end - self.start).total_seconds() / 60

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def players_sorted(self) -> list[Player]:
        """Players by score, best first. Ties keep import order."""
        return sorted(self.players, key=lambda p: p.score, reverse=True)

    @property
    def teams_sorted(self) -> list[Team]:
        return sorted(self.teams, key=lambda t: t.total_score, reverse=True)

    @property
    def is_mines_on(self) -> bool:
        """Whether any player scored on mines or picked up a bonus."""
        from laserscore.vendors import get_vendor_profile

        profile = get_vendor_profile(self.system)
        return any(
            p.mines_hits != 0 or p.score_mines != 0 or profile.bonus_count(p) > 0
            for p in self.players
        )

    def get_best_player(self, prop: str) -> Player | None:
        """
        Best player at a results-board property.

        ``shots`` is best when lowest, ``hitsOwn``/``deathsOwn`` only consider
        players with a positive value and ``mines`` needs mines to have been on.
        Ties go to the player imported first.
        """
        from laserscore.vendors import get_vendor_profile

        profile = get_vendor_profile(self.system)
        if prop == "mines" and not self.is_mines_on:
            return None

        def value(player: Player) -> float:
            return profile.stat_value(player, prop)

        candidates = list(self.players)
        if prop in ("hitsOwn", "deathsOwn"):
            candidates = [p for p in candidates if value(p) > 0]
        if not candidates:
            return None
        if prop == "shots":
            return min(candidates, key=value)
        return sorted(candidates, key=value, reverse=True)[0]


def normalize_counters(game: Game) -> None:
    """
    Reconcile the own/other split with the totals and refresh accuracy.

    Solo games use the totals directly and zero the own-team counters. Team
    games rebuild totals from a present split, or treat every hit as an enemy
    hit when the vendor sent totals only.
    """
    team_game = game.is_team
    for player in game.players:
        if not team_game:
            player.hits_other = player.hits
            player.deaths_other = player.deaths
            player.hits_own = 0
            player.deaths_own = 0
        else:
            if player.hits_other or player.hits_own:
                player.hits = player.hits_other + player.hits_own
            else:
                player.hits_other = player.hits
            if player.deaths_other or player.deaths_own:
                player.deaths = player.deaths_other + player.deaths_own
            else:
                player.deaths_other = player.deaths
        player.accuracy = percentage(player.hits, player.shots)
    logger.debug(f"Normalized counters of {game.player_count} players in game {game.code}")
