"""
Player trophies.

Every player gets one headline trophy, picked by checking the groups in
order: special, rare, the vendor's classic best-of-game list, then the other
trophies, falling back to 'average'. ``get_all`` lists every trophy the
player satisfies.
"""

import logging
from collections.abc import Callable

from laserscore.core.constants import (
    OTHER_TROPHIES,
    RARE_TROPHIES,
    SPECIAL_TROPHIES,
    TROPHY_THRESHOLDS,
    Trophy,
)
from laserscore.models.game import Player
from laserscore.stats.player_stats import favourite_target, favourite_target_of
from laserscore.vendors import get_vendor_profile

logger = logging.getLogger(__name__)

# Display data. Names are English defaults, translations happen in the UI layer.
TROPHY_INFO: dict[str, dict[str, str]] = {
    Trophy.SCORE: {"name": "Absolute winner", "icon": "crown"},
    Trophy.HITS: {"name": "Biggest terminator", "icon": "predator"},
    Trophy.DEATHS: {"name": "Object of greatest interest", "icon": "skull"},
    Trophy.ACCURACY: {"name": "Best aim", "icon": "target"},
    Trophy.SHOTS: {"name": "Most economical shooter", "icon": "bullet"},
    Trophy.MISS: {"name": "Biggest misser", "icon": "bullets"},
    Trophy.HITS_OWN: {"name": "Own team killer", "icon": "kill"},
    Trophy.DEATHS_OWN: {"name": "Biggest own goal", "icon": "skull"},
    Trophy.MINES: {"name": "Mine crusher", "icon": "base_2"},
    Trophy.ZERO_DEATHS: {"name": "Untouchable", "icon": "shield"},
    Trophy.ACCURACY_100: {"name": "Sniper", "icon": "target"},
    Trophy.ACCURACY_50: {"name": "Half sniper", "icon": "target"},
    Trophy.ACCURACY_5: {"name": "Hits sometimes", "icon": "target"},
    Trophy.KD_1: {"name": "Balanced", "icon": "balance"},
    Trophy.KD_2: {"name": "Killer", "icon": "kill"},
    Trophy.KD_0_5: {"name": "Target", "icon": "dead"},
    Trophy.ZERO: {"name": "Zero", "icon": "zero"},
    Trophy.TEAM_50: {"name": "Team carry", "icon": "star"},
    Trophy.FAVOURITE_TARGET: {"name": "Fixated", "icon": "death"},
    Trophy.FAVOURITE_TARGET_OF: {"name": "Hunted", "icon": "death"},
    Trophy.DEVIL: {"name": "Devil", "icon": "devil"},
    Trophy.NOT_FOUND: {"name": "Score not found", "icon": "magnifying-glass"},
    Trophy.NOT_FOUND_SHOTS: {"name": "Shots not found", "icon": "magnifying-glass"},
    Trophy.FAIR: {"name": "Fair player", "icon": "balance"},
    Trophy.AVERAGE: {"name": "Player", "icon": "Vesta"},
}


def _kd(player: Player) -> float | None:
    if player.deaths == 0:
        return None
    return player.hits / player.deaths


class TrophyEvaluator:
    """Checks trophies for the players of one processed game."""

    def __init__(self, thresholds: dict | None = None):
        self.thresholds = {**TROPHY_THRESHOLDS, **(thresholds or {})}
        self._checks: dict[str, Callable[[Player], bool]] = {
            Trophy.ACCURACY_100: self._accuracy_100,
            Trophy.ZERO_DEATHS: self._zero_deaths,
            Trophy.DEVIL: self._devil,
            Trophy.NOT_FOUND: self._not_found,
            Trophy.NOT_FOUND_SHOTS: self._not_found_shots,
            Trophy.ZERO: self._zero,
            Trophy.TEAM_50: self._team_50,
            Trophy.FAVOURITE_TARGET: self._favourite_target,
            Trophy.FAVOURITE_TARGET_OF: self._favourite_target_of,
            Trophy.KD_1: self._kd_1,
            Trophy.KD_2: self._kd_2,
            Trophy.ACCURACY_50: self._accuracy_50,
            Trophy.ACCURACY_5: self._accuracy_5,
            Trophy.KD_0_5: self._kd_0_5,
            Trophy.FAIR: self._fair,
        }

    @staticmethod
    def classic_bests(player: Player) -> tuple[str, ...]:
        system = player.game.system if player.game is not None else None
        return get_vendor_profile(system).classic_bests

    def check(self, player: Player, trophy: str) -> bool:
        """Whether the player earned a trophy."""
        if trophy in self.classic_bests(player):
            if player.game is None:
                return False
            return player.game.get_best_player(trophy) is player
        check = self._checks.get(trophy)
        if check is None:
            return False
        return check(player)

    def get_one(self, player: Player) -> Trophy:
        """Headline trophy of a player."""
        for group in (SPECIAL_TROPHIES, RARE_TROPHIES, self.classic_bests(player), OTHER_TROPHIES):
            for trophy in group:
                if self.check(player, trophy):
                    return Trophy(trophy)
        return Trophy.AVERAGE

    def get_all(self, player: Player) -> list[Trophy]:
        """Every trophy the player satisfies, 'average' excluded."""
        return [t for t in Trophy if t != Trophy.AVERAGE and self.check(player, t)]

    def evaluate(self, players: list[Player]) -> dict[int | str, Trophy]:
        return {p.vest: self.get_one(p) for p in players}

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _solo(self, player: Player) -> bool:
        return player.game is not None and player.game.is_solo

    def _accuracy_100(self, player: Player) -> bool:
        return player.accuracy >= self.thresholds["accuracy_special"]

    def _zero_deaths(self, player: Player) -> bool:
        return player.deaths < self.thresholds["zero_deaths"]

    def _devil(self, player: Player) -> bool:
        return (
            player.score in self.thresholds["devil_scores"]
            or player.shots == self.thresholds["devil_shots"]
        )

    def _not_found(self, player: Player) -> bool:
        return player.score in self.thresholds["not_found_scores"]

    def _not_found_shots(self, player: Player) -> bool:
        return player.shots == self.thresholds["not_found_shots"]

    def _zero(self, player: Player) -> bool:
        return player.score == 0

    def _team_50(self, player: Player) -> bool:
        team = player.team
        if self._solo(player) or team is None or player.score <= 0:
            return False
        if team.score == 0 or team.player_count <= 1:
            return False
        return player.score / team.score > self.thresholds["team_share"]

    def _favourite_target(self, player: Player) -> bool:
        target = favourite_target(player)
        if target is None or player.hits == 0:
            return False
        return player.hits_on(target) / player.hits > self.thresholds["favourite_share"]

    def _favourite_target_of(self, player: Player) -> bool:
        shooter = favourite_target_of(player)
        if shooter is None or player.deaths == 0:
            return False
        return shooter.hits_on(player) / player.deaths > self.thresholds["favourite_share"]

    def _kd_1(self, player: Player) -> bool:
        kd = _kd(player)
        return kd is not None and abs(kd - 1) < self.thresholds["kd_1_tolerance"]

    def _kd_2(self, player: Player) -> bool:
        kd = _kd(player)
        return kd is not None and kd > self.thresholds["kd_2"]

    def _kd_0_5(self, player: Player) -> bool:
        kd = _kd(player)
        return kd is not None and kd <= self.thresholds["kd_0_5"]

    def _accuracy_50(self, player: Player) -> bool:
        return player.accuracy >= self.thresholds["accuracy_50"]

    def _accuracy_5(self, player: Player) -> bool:
        return player.accuracy < self.thresholds["accuracy_5"]

    def _fair(self, player: Player) -> bool:
        """Hits spread evenly over enemies (teammates ignored in team games)."""
        solo = self._solo(player)
        counts = [
            record.count
            for record in player.hit_players.values()
            if solo or not player.is_teammate(record.target)
        ]
        if not counts:
            return False
        average = sum(counts) / len(counts)
        max_delta = max(abs(count - average) for count in counts)
        return max_delta < self.thresholds["fair_max_deviation"]
