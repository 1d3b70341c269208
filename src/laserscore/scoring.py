"""
Score recalculation.

One engine serves every vendor. What differs between systems is data, a
ScoringRules value saying which parts of the game's Scoring apply:

    score = hits * hitOther + deaths * deathOther + shots * shot      (basic)

LaserMaxx systems split hits and deaths into enemy/teammate parts in team
games and add mine and power-up points:

    score = hitsOther * hitOther + hitsOwn * hitOwn
          + deathsOther * deathOther + deathsOwn * deathOwn
          + shots * shot + minesHits * hitPod + powers

Team score is always the sum of member scores.
"""

import logging
from dataclasses import dataclass

from laserscore.models.game import Game, Player
from laserscore.models.settings import Scoring

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringRules:
    """Which scoring components a vendor's counters support."""

    name: str
    own_other_split: bool = False
    mine_points: bool = False
    power_points: bool = False


BASIC_RULES = ScoringRules(name="basic")
LASERMAXX_RULES = ScoringRules(
    name="lasermaxx", own_other_split=True, mine_points=True, power_points=True
)


def power_points(player: Player, scoring: Scoring) -> int:
    """Points for Evo5 power-up pickups."""
    bonus = player.bonus
    return (
        bonus.agent * scoring.agent
        + bonus.shield * scoring.shield
        + bonus.invisibility * scoring.invisibility
        + bonus.machine_gun * scoring.machine_gun
    )


class ScoringEngine:
    """Recompute player and team scores from raw counters."""

    def __init__(self, rules: ScoringRules = BASIC_RULES):
        self.rules = rules

    def player_score(self, player: Player, scoring: Scoring, team_game: bool) -> int:
        """Score of one player. Also refreshes the mine and power sub-scores."""
        rules = self.rules
        if rules.own_other_split and team_game:
            score = (
                player.hits_other * scoring.hit_other
                + player.hits_own * scoring.hit_own
                + player.deaths_other * scoring.death_other
                + player.deaths_own * scoring.death_own
            )
        else:
            score = player.hits * scoring.hit_other + player.deaths * scoring.death_other

        score += player.shots * scoring.shot

        if rules.mine_points:
            player.score_mines = player.mines_hits * scoring.hit_pod
            score += player.score_mines
        if rules.power_points:
            player.score_powers = power_points(player, scoring)
            score += player.score_powers

        return score

    def recalculate(self, game: Game, team_game: bool | None = None) -> None:
        """
        Recalculate all scores of a game in place.

        Players are skipped when the game carries no scoring (their imported
        score stays). Teams are always re-summed. Running this twice on the
        same counters gives the same result.
        """
        if team_game is None:
            team_game = game.is_team

        if game.scoring is None:
            logger.debug(f"Game {game.code} has no scoring, keeping imported player scores")
        else:
            for player in game.players:
                player.score = self.player_score(player, game.scoring, team_game)

        for team in game.teams:
            team.sum_score()

        logger.debug(f"Recalculated scores of game {game.code} with {self.rules.name} rules")
