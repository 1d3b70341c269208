"""
LaserMaxx (Evo5 / Evo6) game modes.

Scoring for these modes comes from the LaserMaxx vendor profile, so the
variants here only add win rules and results hooks.
"""

import logging
import random
from collections.abc import Callable

from laserscore.core.constants import SURVIVAL_BONUS, GameModeType
from laserscore.models.game import Game, Player, Team
from laserscore.modes.base import (
    AmmoBookkeepingMode,
    CustomizeAfterImport,
    CustomLoadMode,
    CustomResultsMode,
    GameMode,
    LoadData,
    ModifyResultsMode,
)
from laserscore.modes.generic import Deathmatch, TeamDeathmatch
from laserscore.vendors import get_vendor_profile

logger = logging.getLogger(__name__)


class CSGO(GameMode, CustomResultsMode):
    """Last team standing wins. With both teams alive, more hits wins."""

    name = "CSGO"
    type = GameModeType.TEAM
    results_template = ""

    def total_lives(self, team: Team) -> int:
        return team.player_count * team.game.lives

    def remaining_lives(self, team: Team) -> int:
        return max(self.total_lives(team) - team.deaths, 0)

    def get_win(self, game: Game) -> Team | None:
        teams = game.teams
        if len(teams) == 2:
            team1, team2 = teams
            remaining1 = self.remaining_lives(team1)
            remaining2 = self.remaining_lives(team2)
            if remaining1 == 0 and remaining2 > 0:
                return team2
            if remaining1 > 0 and remaining2 == 0:
                return team1
            if remaining1 > 0 and remaining2 > 0:
                if team1.hits > team2.hits:
                    return team1
                if team2.hits > team1.hits:
                    return team2
            return None

        # More teams - alive team with the most hits
        best_hits = 0
        winner = None
        for team in teams:
            if self.remaining_lives(team) == 0:
                continue
            if team.hits > best_hits:
                best_hits = team.hits
                winner = team
        return winner


def shield_pickups(player: Player) -> int:
    return player.bonus.shield


class Zakladny(GameMode, CustomResultsMode):
    """
    Bases: each team defends a base, destroying the enemy base wins.

    How many times a team's base was destroyed is the highest base counter
    among its players, and the team with the higher count loses. Evo5 counts
    shield pickups, Evo6 counts bonuses.
    """

    name = "Základny"
    type = GameModeType.TEAM
    results_template = "zakladny"

    def __init__(self, *args, base_counter: Callable[[Player], int] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.base_counter = base_counter

    def bases_destroyed(self, team: Team) -> int:
        counter = self.base_counter or get_vendor_profile(self.system).bonus_count
        return max((counter(p) for p in team.players), default=0)

    def get_win(self, game: Game) -> Team | None:
        if not game.teams:
            return None
        team1 = game.teams[0]
        team2 = game.teams[-1]
        bases1 = self.bases_destroyed(team1)
        bases2 = self.bases_destroyed(team2)
        if bases1 > bases2:
            return team2
        if bases1 < bases2:
            return team1
        return None


class Survival(Deathmatch, ModifyResultsMode, AmmoBookkeepingMode, CustomResultsMode):
    """Players that still have lives and ammo at the end get a flat bonus."""

    name = "Survival"
    team_alternative = "TeamSurvival"
    results_template = "survival"

    def modify_results(self, game: Game) -> None:
        for player in game.players:
            if player.ammo_rest > 0 and player.remaining_lives > 0:
                player.score_bonus += SURVIVAL_BONUS
                player.score += SURVIVAL_BONUS

    def update_ammo(self, game: Game) -> None:
        for player in game.players:
            player.ammo_rest = max(game.ammo - player.shots, 0)


class TeamSurvival(Survival):
    name = "Team Survival"
    type = GameModeType.TEAM
    team_alternative = None
    solo_alternative = "Survival"


class SensorTag(Deathmatch, ModifyResultsMode):
    """Every player with lives left at the end gets a flat bonus."""

    name = "Sensor Tag"

    def modify_results(self, game: Game) -> None:
        for player in game.players:
            if player.remaining_lives > 0:
                player.score_bonus += SURVIVAL_BONUS
                player.score += SURVIVAL_BONUS


class M100Naboju(Deathmatch, CustomResultsMode):
    name = "100 nábojů"
    results_template = "naboju"


class Apokalypsa(GameMode):
    name = "Apokalypsa"
    type = GameModeType.TEAM


class Revolver(Deathmatch):
    name = "Revolver"
    team_alternative = "TeamRevolver"


class TeamRevolver(Revolver):
    name = "Team Revolver"
    type = GameModeType.TEAM
    team_alternative = None
    solo_alternative = "Revolver"


class KamenNuzkyPapir(TeamDeathmatch):
    name = "Kámen, Nůžky, Papír"


class Barvicky(GameMode, CustomLoadMode, CustomizeAfterImport):
    """
    Colours: players change colour when hit, so every player plays for
    themselves although the game is loaded with teams. Hidden teams are
    shuffled round-robin before loading.
    """

    name = "Barvičky"
    type = GameModeType.SOLO
    new_game_script = "barvicky"

    def __init__(self, *args, rng: random.Random | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.rng = rng or random.Random()

    def modify_load_data(self, data: LoadData) -> LoadData:
        if data.hidden_teams and data.teams:
            players = list(data.players)
            self.rng.shuffle(players)
            for team in data.teams:
                team.player_count = 0
            for i, player in enumerate(players):
                team = data.teams[i % len(data.teams)]
                player.team = team.key
                team.player_count += 1

        for player in data.players:
            data.meta[f"p{player.vest}-startTeam"] = player.team
        return data

    def process_imported_game(self, game: Game) -> None:
        self.recalculate_scores(game)
        self.reorder_game(game)


class _SingleTeamLoad(CustomLoadMode):
    def modify_load_data(self, data: LoadData) -> LoadData:
        for player in data.players:
            player.team = "0"  # Red team
        data.solo_team = 0
        return data


class Tma(_SingleTeamLoad, TeamDeathmatch):
    """Darkness: everyone is loaded into the red team."""

    name = "T.M.A."


class TmaSolo(_SingleTeamLoad, Deathmatch):
    name = "T.M.A. - solo"


class Gladiator(Deathmatch, CustomLoadMode):
    """Every player is loaded as a VIP."""

    name = "Gladiator"
    new_game_script = "gladiator"

    def modify_load_data(self, data: LoadData) -> LoadData:
        for player in data.players:
            player.vip = True
        return data
